"""Domain entity for single-run leases held by scheduled jobs."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class JobLease:
    """Exclusive right of one ``holder`` to run the job ``name`` until ``expires_at``."""

    name: str
    holder: str
    acquired_at: datetime
    expires_at: datetime


__all__ = ["JobLease"]
