"""
Quiet hours evaluation.

Quiet hours are an account-level setting: while a user is inside their
window, passed deals for all of their channels are queued rather than
sent, and the queue is flushed shortly after the window ends. Times are
HH:mm in the user's IANA timezone and a window may span midnight
(e.g. 22:00 - 08:00).
"""

from datetime import datetime, tzinfo
from typing import Optional

from dateutil import tz

from ..models.config import UserSettings, validate_quiet_hours
from ..utils.logging import get_logger

logger = get_logger("quiet_hours")

DEFAULT_TIMEZONE = "UTC"
MINUTES_PER_DAY = 1440

__all__ = [
    "DEFAULT_TIMEZONE",
    "current_minutes_in_timezone",
    "did_quiet_hours_just_end",
    "format_quiet_hours",
    "is_within_quiet_hours",
    "parse_time_to_minutes",
    "resolve_timezone",
    "validate_quiet_hours",
]


def parse_time_to_minutes(value: str) -> int:
    """Parse "HH:mm" into minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def resolve_timezone(tz_name: Optional[str]) -> tzinfo:
    """Look up an IANA timezone, falling back to UTC for unknown names."""
    zone = tz.gettz(tz_name or DEFAULT_TIMEZONE)
    if zone is None:
        logger.warning(
            "Unknown timezone, using UTC", extra={"timezone": tz_name}
        )
        return tz.UTC
    return zone


def current_minutes_in_timezone(
    tz_name: Optional[str], now: Optional[datetime] = None
) -> int:
    """
    Current wall-clock time in a timezone, as minutes since midnight.

    Args:
        tz_name: IANA timezone name; None means UTC
        now: Aware datetime to evaluate instead of the current time
    """
    zone = resolve_timezone(tz_name)
    if now is None:
        local = datetime.now(zone)
    else:
        if now.tzinfo is None:
            now = now.replace(tzinfo=tz.UTC)
        local = now.astimezone(zone)
    return local.hour * 60 + local.minute


def _has_quiet_hours(settings: Optional[UserSettings]) -> bool:
    return bool(
        settings
        and settings.quiet_hours_enabled
        and settings.quiet_hours_start
        and settings.quiet_hours_end
    )


def is_within_quiet_hours(
    settings: Optional[UserSettings], now: Optional[datetime] = None
) -> bool:
    """
    Whether the user is currently inside their quiet hours.

    The window is [start, end); when start > end it wraps past midnight.
    Equal start and end never matches.
    """
    if not _has_quiet_hours(settings):
        return False

    current = current_minutes_in_timezone(settings.quiet_hours_timezone, now)
    start = parse_time_to_minutes(settings.quiet_hours_start)
    end = parse_time_to_minutes(settings.quiet_hours_end)

    if start > end:
        return current >= start or current < end
    return start <= current < end


def did_quiet_hours_just_end(
    settings: Optional[UserSettings],
    window_minutes: int = 2,
    now: Optional[datetime] = None,
) -> bool:
    """Whether quiet hours ended less than window_minutes ago."""
    if not _has_quiet_hours(settings):
        return False

    current = current_minutes_in_timezone(settings.quiet_hours_timezone, now)
    end = parse_time_to_minutes(settings.quiet_hours_end)

    minutes_since_end = (current - end + MINUTES_PER_DAY) % MINUTES_PER_DAY
    return 0 <= minutes_since_end < window_minutes


def format_quiet_hours(settings: Optional[UserSettings]) -> Optional[str]:
    """Human-readable window, e.g. "22:00 - 08:00 (London)"."""
    if not _has_quiet_hours(settings):
        return None

    timezone = settings.quiet_hours_timezone or DEFAULT_TIMEZONE
    short_timezone = timezone.split("/")[-1]
    return f"{settings.quiet_hours_start} - {settings.quiet_hours_end} ({short_timezone})"
