"""
Date helpers: day descriptors, Spanish range labels and record day keys.
"""

import logging
from datetime import date, datetime, timedelta, timezone

from core.config import ENTRY_DATE_OFFSET_HOURS
from models.hours import DayDescriptor

logger = logging.getLogger(__name__)

WEEKDAY_LABELS = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]
WEEKDAY_SHORT_LABELS = ["lun", "mar", "mié", "jue", "vie", "sáb", "dom"]
MONTH_SHORT_LABELS = [
    "ene", "feb", "mar", "abr", "may", "jun",
    "jul", "ago", "sept", "oct", "nov", "dic",
]


def format_date_key(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def ensure_range_order(start: date, end: date) -> tuple[date, date]:
    if start <= end:
        return start, end
    return end, start


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:] if value else value


def build_day_descriptors(start: date, end: date) -> list[DayDescriptor]:
    """One descriptor per calendar day, inclusive, in ascending order."""
    start, end = ensure_range_order(start, end)
    descriptors = []
    current = start
    while current <= end:
        label = _capitalize(WEEKDAY_LABELS[current.weekday()])
        descriptors.append(
            DayDescriptor(
                date=current,
                date_key=format_date_key(current),
                label=label,
                short_label=_capitalize(WEEKDAY_SHORT_LABELS[current.weekday()]),
                compact_label=label[:1].upper(),
                day_of_month=current.day,
            )
        )
        current += timedelta(days=1)
    return descriptors


def format_short_date(value: date) -> str:
    """'2024-01-07' -> '7 ene 2024'."""
    return f"{value.day} {MONTH_SHORT_LABELS[value.month - 1]} {value.year}"


def format_date_range(start: date, end: date) -> str:
    start, end = ensure_range_order(start, end)
    start_label = format_short_date(start)
    end_label = format_short_date(end)
    if start_label == end_label:
        return start_label
    return f"{start_label} - {end_label}"


def format_sheet_date(value: date) -> str:
    """Date column of worker detail sheets: DD/MM/YYYY."""
    return value.strftime("%d/%m/%Y")


def format_date_key_to_api_datetime(date_key: str) -> str:
    """'2024-01-03' -> '2024-01-03T00:00:00+00:00' as the save endpoint expects."""
    return f"{date_key}T00:00:00+00:00"


def parse_record_datetime(value) -> datetime | None:
    """Parse an ISO timestamp from the API. Naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def record_day_key(value, offset_hours: float = ENTRY_DATE_OFFSET_HOURS) -> str | None:
    """
    Day key for a record timestamp after the fixed offset is applied.

    The offset pushes late-UTC timestamps onto the local calendar day.
    """
    parsed = parse_record_datetime(value)
    if parsed is None:
        if value:
            logger.debug("Unparseable record date %r", value)
        return None
    return format_date_key(parsed + timedelta(hours=offset_hours))
