"""Utility helpers for reusable functionality."""

from .datetime import ensure_naive_utc, get_app_timezone, to_app_timezone, utcnow

__all__ = [
    "ensure_naive_utc",
    "get_app_timezone",
    "to_app_timezone",
    "utcnow",
]
