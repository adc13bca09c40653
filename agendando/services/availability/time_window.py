# ===== agendando/services/availability/time_window.py =====
"""
Wall-clock / instant conversions and interval arithmetic.

Wall-clock times are "HH:MM" strings interpreted in an IANA timezone. DST
ambiguity is resolved with fold=0 (the earlier of two repeated times, and the
pre-transition offset for skipped times).
"""
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from agendando.core.exceptions import InvalidInputException


@lru_cache(maxsize=256)
def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name or raise InvalidInputException"""
    if not name:
        raise InvalidInputException("Timezone is required")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise InvalidInputException(f"Invalid timezone: {name}", details={"timezone": name})


def is_valid_timezone(name: str) -> bool:
    try:
        get_zone(name)
    except InvalidInputException:
        return False
    return True


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" (00:00 to 23:59)"""
    if not isinstance(value, str) or len(value) != 5 or value[2] != ":":
        raise InvalidInputException(f"Invalid time format: {value!r}, expected HH:MM")
    hours, minutes = value[:2], value[3:]
    if not (hours.isdigit() and minutes.isdigit()):
        raise InvalidInputException(f"Invalid time format: {value!r}, expected HH:MM")
    h, m = int(hours), int(minutes)
    if h > 23 or m > 59:
        raise InvalidInputException(f"Invalid time: {value!r}")
    return time(h, m)


def day_of_week(d: date) -> int:
    """Weekday with Sunday=0 ... Saturday=6"""
    return (d.weekday() + 1) % 7


def to_instant(d: date, hhmm: str, tz_name: str) -> datetime:
    """Wall-clock date + "HH:MM" in tz_name -> aware UTC datetime"""
    local = datetime.combine(d, parse_hhmm(hhmm), tzinfo=get_zone(tz_name))
    return local.astimezone(timezone.utc)


def from_instant(instant: datetime, tz_name: str) -> Tuple[date, str]:
    """Aware datetime -> (local date, "HH:MM") in tz_name"""
    if instant.tzinfo is None:
        raise InvalidInputException("Datetime must include a timezone offset")
    local = instant.astimezone(get_zone(tz_name))
    return local.date(), local.strftime("%H:%M")


def local_today(tz_name: str, now: datetime) -> date:
    return now.astimezone(get_zone(tz_name)).date()


def day_bounds(d: date, tz_name: str) -> Tuple[datetime, datetime]:
    """UTC instants of local midnight on d and on the following day"""
    return to_instant(d, "00:00", tz_name), to_instant(d + timedelta(days=1), "00:00", tz_name)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap; touching intervals do not overlap"""
    return a_start < b_end and b_start < a_end
