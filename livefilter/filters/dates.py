"""Named date ranges ("last 7 days", "this month", ...) for date filters."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone

from livefilter.filters.operators import FieldType

PRESETS: tuple[str, ...] = (
    "today",
    "tomorrow",
    "yesterday",
    "last_7_days",
    "next_7_days",
    "last_30_days",
    "next_30_days",
    "this_month",
    "last_month",
    "this_year",
    "last_year",
)

PRESET_LABELS: dict[str, str] = {
    "today": "Today",
    "tomorrow": "Tomorrow",
    "yesterday": "Yesterday",
    "last_7_days": "Last 7 days",
    "next_7_days": "Next 7 days",
    "last_30_days": "Last 30 days",
    "next_30_days": "Next 30 days",
    "this_month": "This month",
    "last_month": "Last month",
    "this_year": "This year",
    "last_year": "Last year",
}

_END_OF_DAY = time(23, 59, 59)


def _month_bounds(day: date) -> tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def date_range_for_preset(preset: str, today: date | None = None) -> tuple[date, date] | None:
    """Resolve a preset name to an inclusive ``(start, end)`` date pair.

    Args:
        preset: One of ``PRESETS``.
        today: Reference date; defaults to the current UTC date.

    Returns:
        The date pair, or None for an unknown preset.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()

    if preset == "today":
        return today, today
    if preset == "tomorrow":
        day = today + timedelta(days=1)
        return day, day
    if preset == "yesterday":
        day = today - timedelta(days=1)
        return day, day
    if preset == "last_7_days":
        return today - timedelta(days=6), today
    if preset == "next_7_days":
        return today, today + timedelta(days=6)
    if preset == "last_30_days":
        return today - timedelta(days=29), today
    if preset == "next_30_days":
        return today, today + timedelta(days=29)
    if preset == "this_month":
        return _month_bounds(today)
    if preset == "last_month":
        return _month_bounds(today.replace(day=1) - timedelta(days=1))
    if preset == "this_year":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    if preset == "last_year":
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
    return None


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, _END_OF_DAY, tzinfo=timezone.utc)


def range_for_type(
    bounds: tuple[date, date], field_type: FieldType
) -> tuple[date, date] | tuple[datetime, datetime]:
    """Adapt a date pair to a date or datetime field.

    Datetime fields get full timestamps covering both end days; datetime
    bounds on a date field are truncated to their dates.
    """
    start, end = bounds
    if field_type is FieldType.DATETIME:
        if not isinstance(start, datetime):
            start = start_of_day(start)
        if not isinstance(end, datetime):
            end = end_of_day(end)
        return start, end
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    return start, end


def resolve_date_range(
    value: str | tuple[date, date] | None,
    field_type: FieldType = FieldType.DATE,
    today: date | None = None,
) -> tuple[date, date] | tuple[datetime, datetime] | None:
    """Turn a preset name or explicit pair into bounds for ``field_type``."""
    if value is None:
        return None
    if isinstance(value, str):
        bounds = date_range_for_preset(value, today=today)
        if bounds is None:
            return None
    else:
        bounds = tuple(value)
    return range_for_type(bounds, field_type)
