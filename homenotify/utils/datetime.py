"""Helpers for working with UTC timestamps and the display timezone."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from homenotify.config import get_settings

_DEFAULT_TIMEZONE: Final[str] = "America/New_York"
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured display timezone.

    The timezone is resolved from the ``APP_TIMEZONE`` setting. Fixed offsets
    such as ``UTC-05:00`` are accepted as well; unknown names fall back to
    ``America/New_York``.
    """

    settings = get_settings()
    tz_name = (settings.app_timezone or "").strip() or _DEFAULT_TIMEZONE
    return _resolve_timezone(tz_name)


def utcnow() -> datetime:
    """Return the current time as a naive UTC ``datetime``.

    Every timestamp column in the pipeline stores naive UTC values so that
    comparisons behave the same on SQLite, PostgreSQL and SQL Server.
    """

    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def ensure_naive_utc(value: datetime | None) -> datetime | None:
    """Convert ``value`` into naive UTC, assuming naive input is already UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_app_timezone(value: datetime | None) -> datetime | None:
    """Express a stored naive UTC ``value`` in the display timezone."""

    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_app_timezone())


def _resolve_timezone(tz_name: str) -> tzinfo:
    """Resolve ``tz_name`` into a ``timezone`` instance."""

    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        match = _OFFSET_PATTERN.match(tz_name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            offset = timedelta(hours=hours, minutes=minutes)
            return timezone(sign * offset)
    return ZoneInfo(_DEFAULT_TIMEZONE)
