"""Business date resolution for point-of-sale and time-clock queries.

Restaurants and retail locations close their books well after midnight, so a
shift worked at 1:30 AM still belongs to the previous day. Queries for shifts,
sales, tips and till sessions therefore target a "business date" rather than
the calendar date.
"""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "America/Denver"
ROLLOVER_HOUR = 3

Clock = Callable[[], datetime]


class InvalidTimezone(ValueError):
    """Timezone identifier is not a known IANA zone."""

    def __init__(self, tz_name: object):
        self.tz_name = tz_name
        super().__init__(f"Unknown timezone: {tz_name!r}")


def load_timezone(tz_name: str) -> ZoneInfo:
    """Return the ZoneInfo for tz_name or raise InvalidTimezone."""
    if not isinstance(tz_name, str) or not tz_name.strip():
        raise InvalidTimezone(tz_name)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezone(tz_name) from exc


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_business_date(now: datetime, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Resolve the business date for an instant.

    Args:
        now: Current instant. Naive datetimes are treated as UTC.
        tz_name: IANA timezone of the location (default America/Denver)

    Returns:
        ISO date string (YYYY-MM-DD). Before 03:00 local time this is
        yesterday's calendar date in tz_name.

    Raises:
        InvalidTimezone: If tz_name is not a known zone
    """
    zone = load_timezone(tz_name)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local = now.astimezone(zone)
    business_day = local.date()
    if local.hour < ROLLOVER_HOUR:
        business_day -= timedelta(days=1)
    return business_day.isoformat()


class BusinessDateResolver:
    """Resolve business dates against an injected time source.

    Usage:
        resolver = BusinessDateResolver()
        resolver.today()                      # America/Denver
        resolver.resolve(None, "America/Phoenix")
        resolver.resolve("2024-05-01")        # explicit dates pass through
    """

    def __init__(self, clock: Optional[Clock] = None, default_timezone: str = DEFAULT_TIMEZONE):
        load_timezone(default_timezone)
        self.clock: Clock = clock or utc_now
        self.default_timezone = default_timezone

    def today(self, tz_name: Optional[str] = None) -> str:
        return resolve_business_date(self.clock(), tz_name if tz_name is not None else self.default_timezone)

    def resolve(self, explicit: Optional[str] = None, tz_name: Optional[str] = None) -> str:
        """Return explicit when the caller supplied a date, else today's business date."""
        if explicit:
            return explicit
        return self.today(tz_name)
