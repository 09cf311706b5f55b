"""Expiry policy for profiles and chat rooms.

All functions are pure; callers pass ``now`` so the same instant is used for
every check in one request. Timestamps without tzinfo (SQLite returns those)
are read as UTC.
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from app.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def profile_expires_at(now: datetime) -> datetime:
    return now + timedelta(hours=settings.PROFILE_EXPIRY_HOURS)


def room_expires_at(now: datetime) -> datetime:
    return now + timedelta(hours=settings.CHAT_ROOM_EXPIRY_HOURS)


def invitation_expires_at(now: datetime) -> datetime:
    return now + timedelta(days=settings.INVITATION_EXPIRY_DAYS)


def is_expired(expires_at: datetime | None, now: datetime) -> bool:
    """A missing deadline never expires."""
    if expires_at is None:
        return False
    return as_utc(expires_at) < as_utc(now)


def remaining(expires_at: datetime | None, now: datetime) -> timedelta | None:
    if expires_at is None:
        return None
    return max(as_utc(expires_at) - as_utc(now), timedelta(0))


def start_of_local_day(now: datetime, tz_name: str | None = None) -> datetime:
    """Local midnight for ``now`` in the service timezone, returned in UTC."""
    tz = ZoneInfo(tz_name or settings.TIMEZONE)
    local = as_utc(now).astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)
