"""
Time-of-day arithmetic for shift envelopes.

Times are naive strings: "HH:MM:SS", "HH:MM", or "HH:MM:SS.fff" (the
fraction is ignored). Hours and minutes may be unpadded ("8:05"). A shift
may cross midnight once.
"""
import re
from typing import Optional

import pandas as pd

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?(?:\.\d+)?\s*$")


def _parse_parts(value) -> Optional[tuple]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return None

    match = _TIME_PATTERN.match(str(value))
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    return hours, minutes, seconds


def time_of_day_to_decimal_hours(value) -> float:
    """
    Convert a time of day to decimal hours ("01:30:00" -> 1.5, "8:15" -> 8.25).

    Seconds are optional and fractional seconds are dropped. Empty, missing
    or unparseable input returns 0.0.
    """
    parts = _parse_parts(value)
    if parts is None:
        return 0.0
    hours, minutes, seconds = parts
    return hours + minutes / 60 + seconds / 3600


def elapsed_hours(start, end) -> float:
    """
    Hours between two times of day, rounded to 2 decimals.

    Each endpoint may be "HH:MM:SS", "HH:MM" or carry fractional seconds,
    which are ignored ("08:00" -> "09:30:00.500" is 1.5).

    An end earlier than the start is treated as the next day (22:00 -> 02:00
    is 4.0). Shifts longer than 24 hours are not representable. Returns 0.0
    when either endpoint is missing.
    """
    if _parse_parts(start) is None or _parse_parts(end) is None:
        return 0.0

    start_h = time_of_day_to_decimal_hours(start)
    end_h = time_of_day_to_decimal_hours(end)

    if end_h < start_h:
        end_h += 24

    return round(end_h - start_h, 2)


def normalise_time_of_day(value) -> str:
    """Zero-pad a time of day to "HH:MM:SS"; "" when unparseable."""
    parts = _parse_parts(value)
    if parts is None:
        return ""
    return "%02d:%02d:%02d" % parts
