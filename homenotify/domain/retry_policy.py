"""Retry backoff schedule for failed domain events."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Final

# attempts -> minutes to wait after the last failure
BACKOFF_MINUTES: Final[dict[int, int]] = {1: 1, 2: 2, 3: 5, 4: 10, 5: 30}
MAX_BACKOFF_MINUTES: Final[int] = 60


def compute_backoff_minutes(attempts: int) -> int:
    """Return the minimum wait, in minutes, before an event may be claimed again.

    The schedule is stepped rather than exponential: 1, 2, 5, 10 and 30
    minutes for the first five attempts, then a flat hour. Events that never
    got claimed (``attempts <= 0``) wait for nothing.
    """

    if attempts <= 0:
        return 0
    return BACKOFF_MINUTES.get(attempts, MAX_BACKOFF_MINUTES)


def retry_cutoff(attempts: int, now: datetime) -> datetime:
    """Return the latest failure time that is retryable at ``now``.

    A failure recorded at ``failed_at`` after ``attempts`` claims may be
    retried once ``failed_at <= retry_cutoff(attempts, now)``.
    """

    return now - timedelta(minutes=compute_backoff_minutes(attempts))


def backoff_steps() -> list[int]:
    """Return every attempt count that has its own step, then the first capped one."""

    return [*sorted(BACKOFF_MINUTES), max(BACKOFF_MINUTES) + 1]


__all__ = [
    "BACKOFF_MINUTES",
    "MAX_BACKOFF_MINUTES",
    "backoff_steps",
    "compute_backoff_minutes",
    "retry_cutoff",
]
