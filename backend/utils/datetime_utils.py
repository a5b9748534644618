from collections.abc import Iterator
from datetime import datetime, date, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_zone(tz_name: str | None) -> tzinfo:
    """Return the named zone, falling back to UTC for empty or unknown names."""
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return timezone.utc


def system_zone() -> tzinfo:
    return datetime.now().astimezone().tzinfo or timezone.utc


def today_for_tz(tz_name: str | None, now: datetime | None = None) -> date:
    """Return today's date in the user's timezone."""
    current = now or utcnow()
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(resolve_zone(tz_name)).date()


def adjust_date_for_time_zone(
    value: date | datetime,
    tz_name: str | None,
    now: datetime | None = None,
    local_tz: tzinfo | None = None,
) -> date:
    """
    Return the effective calendar date of ``value`` for a user in ``tz_name``.

    When ``value`` falls on today's date in the process's local zone, the result
    is today's date as observed in the user's zone. At 2015-03-01 01:00 UTC a
    user in America/New_York is still on 2015-02-28, so an update requested for
    "today" starts there. Historic dates are returned unchanged.

    A historic date requested while the local and user zones straddle midnight
    can still be shifted by a day; that only costs one extra day of work.
    """
    local_zone = local_tz or system_zone()
    current = now or utcnow()
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value_day = value.date()
        else:
            value_day = value.astimezone(local_zone).date()
    else:
        value_day = value

    local_today = current.astimezone(local_zone).date()
    if value_day == local_today:
        return current.astimezone(resolve_zone(tz_name)).date()
    return value_day


def iter_dates(start_day: date, end_day: date) -> Iterator[date]:
    """Yield each calendar date from start_day through end_day inclusive."""
    current = start_day
    while current <= end_day:
        yield current
        current = current + timedelta(days=1)
