"""
Loose value normalization for records coming from the schedule API.

Records arrive with inconsistent field names and types (numbers as strings,
comma decimals, nested company objects). Everything here is total: bad input
becomes None or 0, never an exception.
"""

import math
import re
from datetime import datetime
from typing import Any

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_NUMERIC_STRIP = re.compile(r"[^0-9,.\-]")


def trim_to_none(value: Any) -> str | None:
    """Return the trimmed string, or None if empty or not a string/number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        value = str(value)
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _lookup(record: dict, key: str) -> Any:
    """Resolve a possibly dotted key ('company.id') against nested dicts."""
    current: Any = record
    for part in key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def pick_first_defined(record: dict | None, candidate_keys: list[str]) -> Any:
    """
    Return the first value among candidate_keys that is present and not None.

    Dotted keys walk nested objects, so 'company.name' reads
    record["company"]["name"]. Empty strings count as missing.
    """
    if not isinstance(record, dict):
        return None
    for key in candidate_keys:
        value = _lookup(record, key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def pick_first_string(record: dict | None, candidate_keys: list[str]) -> str | None:
    """Like pick_first_defined but only accepts values usable as strings."""
    if not isinstance(record, dict):
        return None
    for key in candidate_keys:
        value = trim_to_none(_lookup(record, key))
        if value is not None:
            return value
    return None


def parse_numeric(value: Any) -> float | None:
    """
    Parse a number that may arrive as '12,50 €' or ' 8.5 '.

    Returns None when nothing numeric can be extracted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    cleaned = _NUMERIC_STRIP.sub("", value).replace(",", ".")
    if not cleaned:
        return None
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_hour(value: Any) -> float:
    """Parse a manually entered hour value ('3,5' -> 3.5). Invalid input is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if not isinstance(value, str):
        return 0.0
    normalized = value.strip().replace(",", ".")
    if not normalized:
        return 0.0
    # Accept a leading numeric prefix like "3.5h"
    match = re.match(r"^[+-]?(\d+(\.\d*)?|\.\d+)", normalized)
    if not match:
        return 0.0
    try:
        parsed = float(match.group(0))
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def round_to_decimals(value: float, decimals: int = 2) -> float:
    if not math.isfinite(value):
        return value
    factor = 10 ** decimals
    rounded = math.floor(value * factor + 0.5) / factor
    # Avoid -0.0 leaking into spreadsheets
    return 0.0 if rounded == 0 else rounded


def parse_time_to_minutes(value: Any) -> int | None:
    """
    Parse 'HH:MM' (optionally ':SS') or an ISO datetime into minutes of day.

    Returns None when the value is not a recognizable time.
    """
    text = trim_to_none(value)
    if text is None:
        return None

    match = _TIME_PATTERN.match(text)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2))
        if minutes > 59:
            return None
        return hours * 60 + minutes

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed.hour * 60 + parsed.minute


def parse_clock_time(value: Any) -> int | None:
    """Strict HH:MM parser used for user-edited segments."""
    text = trim_to_none(value)
    if text is None:
        return None
    match = re.match(r"^(\d{1,2}):(\d{2})$", text)
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_minutes_to_time(minutes: float) -> str:
    normalized = max(0, round(minutes))
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def extract_clock_time(value: Any) -> str | None:
    """Normalize a shift boundary ('08:00:00', ISO datetime) to 'HH:MM'."""
    minutes = parse_time_to_minutes(value)
    if minutes is None:
        return None
    return format_minutes_to_time(minutes)
