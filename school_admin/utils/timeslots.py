import re
from datetime import time
from typing import Optional, Union

from school_admin.utils.errors import ValidationError

DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# "mon" -> "Monday", "monday" -> "Monday"
_DAY_LOOKUP = {}
for _d in DAYS_OF_WEEK:
    _DAY_LOOKUP[_d.lower()] = _d
    _DAY_LOOKUP[_d[:3].lower()] = _d

_TIME_PAT = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def normalize_day(value: Optional[str]) -> Optional[str]:
    """
    "mon" / "Mon" / "monday" -> "Monday"
    None / "" -> None
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    day = _DAY_LOOKUP.get(s.lower())
    if day is None:
        raise ValidationError(
            f"day_of_week must be one of: {', '.join(DAYS_OF_WEEK)}",
            error="Invalid day_of_week",
        )
    return day


def normalize_time(value: Union[str, time, None]) -> Optional[str]:
    """
    "9:00" -> "09:00:00", "09:00" -> "09:00:00", time(9, 0) -> "09:00:00"
    Fixed width so that string order == chronological order.
    """
    if value is None:
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    s = str(value).strip()
    if not s:
        return None
    m = _TIME_PAT.match(s)
    if not m:
        raise ValidationError(
            f"{s!r} is not a valid time, expected HH:MM or HH:MM:SS",
            error="Invalid time format",
        )
    h, mi, sec = m.groups()
    return f"{int(h):02d}:{mi}:{sec or '00'}"


def check_time_range(start: str, end: str):
    if start >= end:
        raise ValidationError(
            f"start_time ({start}) must be earlier than end_time ({end})",
            error="Invalid time range",
        )


def day_index(day: str) -> int:
    # 排序用
    return DAYS_OF_WEEK.index(day) if day in DAYS_OF_WEEK else len(DAYS_OF_WEEK)
