"""Shared utilities."""

from .timestamps import ensure_utc, utc_now, window_start

__all__ = [
    "ensure_utc",
    "utc_now",
    "window_start",
]
