"""Tests for the stepped retry backoff schedule."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from homenotify.domain.retry_policy import (
    backoff_steps,
    compute_backoff_minutes,
    retry_cutoff,
)


@pytest.mark.parametrize(
    ("attempts", "minutes"),
    [(-3, 0), (0, 0), (1, 1), (2, 2), (3, 5), (4, 10), (5, 30), (6, 60), (7, 60), (50, 60)],
)
def test_compute_backoff_minutes(attempts: int, minutes: int) -> None:
    assert compute_backoff_minutes(attempts) == minutes


def test_backoff_is_monotonic_and_capped() -> None:
    values = [compute_backoff_minutes(attempts) for attempts in range(0, 20)]

    assert values == sorted(values)
    assert max(values) == 60


def test_retry_cutoff_subtracts_the_backoff() -> None:
    now = datetime(2026, 3, 1, 12, 0, 0)

    assert retry_cutoff(3, now) == now - timedelta(minutes=5)
    assert retry_cutoff(9, now) == now - timedelta(minutes=60)
    assert retry_cutoff(0, now) == now


def test_backoff_steps_end_at_the_first_capped_attempt() -> None:
    steps = backoff_steps()

    assert steps == [1, 2, 3, 4, 5, 6]
    assert compute_backoff_minutes(steps[-1]) == 60
    assert compute_backoff_minutes(steps[-2]) < 60
