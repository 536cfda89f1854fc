"""
Time and duration helpers for timeline items.
"""

from datetime import datetime, timezone
from typing import Optional
import re

_TIME_12H = re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)", re.IGNORECASE)
_TIME_24H = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_AM_PM = re.compile(r"am|pm", re.IGNORECASE)
_TIME_H_MM = re.compile(r"^\d{1,2}:\d{2}$")


def convert_to_24_hour(time_str: str) -> str:
    """
    Normalise "h:mm AM/PM" or "H:mm" to zero-padded "HH:mm".

    "2:30 PM" -> "14:30", "12:00 AM" -> "00:00", "9:00" -> "09:00".
    Input that cannot be parsed is returned stripped but otherwise unchanged,
    so applying the function twice gives the same result as applying it once.
    """
    if not time_str:
        return ""
    time = time_str.strip()

    if not _AM_PM.search(time):
        return time.rjust(5, "0") if _TIME_H_MM.match(time) else time

    match = _TIME_12H.search(time)
    if not match:
        return time

    hours = int(match.group(1))
    minutes = match.group(2)
    period = match.group(3).lower()

    if period == "pm" and hours != 12:
        hours += 12
    elif period == "am" and hours == 12:
        hours = 0

    return f"{hours:02d}:{minutes}"


def convert_to_12_hour(time24: str) -> str:
    """"14:30" -> "2:30 PM". Unparseable input is returned unchanged."""
    if not time24:
        return ""
    parts = time24.split(":")
    if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
        return time24

    hours, minutes = int(parts[0]), int(parts[1])
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"{display_hours}:{minutes:02d} {period}"


def format_duration(minutes: int) -> str:
    """45 -> "45 min", 150 -> "2h 30min", 120 -> "2h"."""
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


def parse_duration(duration: str) -> Optional[int]:
    """First integer found in a duration string ("60 min" -> 60), else None."""
    if not duration:
        return None
    match = re.search(r"(\d+)", duration)
    return int(match.group(1)) if match else None


def is_valid_time_24(time: str) -> bool:
    return bool(time) and bool(_TIME_24H.match(time))


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def time_sort_key(time: Optional[str]) -> tuple:
    """
    Sort key: valid times in clock order, then free-text times ("TBD"),
    then items without a time.
    """
    if not time:
        return (2, "")
    normalized = convert_to_24_hour(time)
    if is_valid_time_24(normalized):
        return (0, normalized)
    return (1, normalized)
