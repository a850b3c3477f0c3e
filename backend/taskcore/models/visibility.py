"""
Visibility predicate value object.

Declarative description of the resources a user may see. Repositories turn it
into one SQL clause; ``matches`` evaluates the same rule in memory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from taskcore.models.enums import ResourceType


@dataclass(frozen=True)
class VisibilityPredicate:
    resource_type: ResourceType
    user_id: str
    shared_uids: frozenset[str] = field(default_factory=frozenset)
    shared_project_ids: frozenset[UUID] = field(default_factory=frozenset)
    # Set when grants could not be read; matches nothing
    denied: bool = False

    @classmethod
    def deny(cls, resource_type: ResourceType, user_id: str) -> "VisibilityPredicate":
        return cls(resource_type=resource_type, user_id=user_id, denied=True)

    def matches(self, resource: Any) -> bool:
        if self.denied:
            return False
        if getattr(resource, "user_id", None) == self.user_id:
            return True
        if getattr(resource, "uid", None) in self.shared_uids:
            return True
        project_id = getattr(resource, "project_id", None)
        return project_id is not None and project_id in self.shared_project_ids
