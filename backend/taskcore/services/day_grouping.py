"""
Day grouping for the upcoming view.

Buckets tasks by the calendar day of their due date in the user's timezone.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional, Sequence, Union

from taskcore.core.exceptions import ValidationError
from taskcore.models.task import Task
from taskcore.utils.datetime_utils import get_user_today, utc_to_user_date

TODAY_LABEL = "Today"
TOMORROW_LABEL = "Tomorrow"
NO_DUE_DATE_LABEL = "No Due Date"

# (today, tomorrow, no due date) per UI language
_LABELS: dict[str, tuple[str, str, str]] = {
    "en": (TODAY_LABEL, TOMORROW_LABEL, NO_DUE_DATE_LABEL),
    "ar": ("اليوم", "غداً", "لا يوجد تاريخ استحقاق"),
    "bg": ("Днес", "Утре", "Няма краен срок"),
    "da": ("I dag", "I morgen", "Ingen frist"),
    "de": ("Heute", "Morgen", "Kein Fälligkeitsdatum"),
    "el": ("Σήμερα", "Αύριο", "Χωρίς προθεσμία"),
    "es": ("Hoy", "Mañana", "Sin fecha de vencimiento"),
    "fi": ("Tänään", "Huomenna", "Ei määräaikaa"),
    "fr": ("Aujourd'hui", "Demain", "Pas de date d'échéance"),
    "id": ("Hari ini", "Besok", "Tidak ada tanggal jatuh tempo"),
    "it": ("Oggi", "Domani", "Nessuna scadenza"),
    "jp": ("今日", "明日", "期限なし"),
    "ko": ("오늘", "내일", "마감일 없음"),
    "nl": ("Vandaag", "Morgen", "Geen deadline"),
    "no": ("I dag", "I morgen", "Ingen frist"),
    "pl": ("Dzisiaj", "Jutro", "Brak terminu"),
    "pt": ("Hoje", "Amanhã", "Sem prazo"),
    "ro": ("Astăzi", "Mâine", "Fără termen limită"),
    "ru": ("Сегодня", "Завтра", "Нет срока"),
    "sl": ("Danes", "Jutri", "Ni roka"),
    "sv": ("Idag", "Imorgon", "Ingen deadline"),
    "tr": ("Bugün", "Yarın", "Son tarih yok"),
    "ua": ("Сьогодні", "Завтра", "Немає терміну"),
    "vi": ("Hôm nay", "Ngày mai", "Không có hạn"),
    "zh": ("今天", "明天", "无截止日期"),
}

# ISO 639-1 codes for languages the table keys differently
_LANGUAGE_ALIASES = {"ja": "jp", "uk": "ua", "nb": "no"}

DEFAULT_ORDER: tuple[tuple[str, str], ...] = (("priority", "desc"), ("due_date", "asc"))

OrderBy = Union[str, Sequence[str], None]

_SORT_KEYS: dict[str, Callable[[Task], Any]] = {
    "priority": lambda task: int(task.priority),
    "due_date": lambda task: task.due_date,
    "created_at": lambda task: task.created_at,
    "updated_at": lambda task: task.updated_at,
    "name": lambda task: task.name.casefold() if task.name else None,
    "status": lambda task: task.status.value,
}


def parse_order_by(order_by: OrderBy) -> list[tuple[str, str]]:
    """
    Parse "field:direction" keys.

    Accepts one comma-separated string or a list of keys. Direction defaults
    to asc.

    Raises:
        ValidationError: On an unknown field or direction
    """
    if not order_by:
        return list(DEFAULT_ORDER)
    raw = order_by.split(",") if isinstance(order_by, str) else list(order_by)

    keys: list[tuple[str, str]] = []
    for item in raw:
        item = item.strip()
        if not item:
            continue
        field, _, direction = item.partition(":")
        direction = (direction or "asc").lower()
        if field not in _SORT_KEYS:
            raise ValidationError(f"Unknown sort field: {field}", details={"order_by": item})
        if direction not in ("asc", "desc"):
            raise ValidationError(
                f"Unknown sort direction: {direction}", details={"order_by": item}
            )
        keys.append((field, direction))
    return keys or list(DEFAULT_ORDER)


def sort_tasks_by_order(tasks: Sequence[Task], order_by: OrderBy = None) -> list[Task]:
    """Sort tasks by order keys; missing values sort last in either direction."""
    result = list(tasks)
    for field, direction in reversed(parse_order_by(order_by)):
        key = _SORT_KEYS[field]
        present = [task for task in result if key(task) is not None]
        missing = [task for task in result if key(task) is None]
        present.sort(key=key, reverse=direction == "desc")
        result = present + missing
    return result


def _labels_for(language: Optional[str]) -> tuple[str, str, str]:
    """Fixed labels for a language tag such as "de" or "pt-BR"; English when unknown."""
    code = (language or "en").replace("_", "-").split("-")[0].lower()
    code = _LANGUAGE_ALIASES.get(code, code)
    return _LABELS.get(code, _LABELS["en"])


def day_label(day: date, today: date, language: Optional[str] = "en") -> str:
    today_label, tomorrow_label, _ = _labels_for(language)
    if day == today:
        return today_label
    if day == today + timedelta(days=1):
        return tomorrow_label
    label = f"{day:%A}, {day:%B} {day.day}"
    if day.year != today.year:
        label = f"{label}, {day.year}"
    return label


def group_by_day(
    tasks: Sequence[Task],
    timezone: Optional[str] = "UTC",
    max_days: int = 7,
    order_by: OrderBy = None,
    now: Optional[datetime] = None,
    include_no_due_date: bool = True,
    language: Optional[str] = "en",
) -> dict[str, list[Task]]:
    """
    Group tasks into ordered day buckets.

    Buckets follow ascending date order and a "No Due Date" bucket comes
    last. Tasks due after the end of ``today + max_days`` are dropped; overdue
    tasks keep their own date bucket. The Today, Tomorrow and No Due Date
    labels follow ``language``; other days are labelled in English.

    Example:
        >>> list(group_by_day(tasks, "Asia/Tokyo", max_days=1))
        ['Today', 'Tomorrow']
    """
    today = get_user_today(timezone, now=now)
    cutoff = today + timedelta(days=max(max_days, 0))

    by_day: dict[date, list[Task]] = {}
    undated: list[Task] = []
    for task in tasks:
        if task.due_date is None:
            undated.append(task)
            continue
        due_day = utc_to_user_date(task.due_date, timezone)
        if due_day > cutoff:
            continue
        by_day.setdefault(due_day, []).append(task)

    grouped: dict[str, list[Task]] = {}
    for day in sorted(by_day):
        grouped[day_label(day, today, language)] = sort_tasks_by_order(by_day[day], order_by)
    if undated and include_no_due_date:
        grouped[_labels_for(language)[2]] = sort_tasks_by_order(undated, order_by)
    return grouped
