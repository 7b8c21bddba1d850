"""Passive revenue watcher and its append-only log."""

from .records import RevenueLog, RevenueRecord
from .watcher import RevenueWatcher, TickResult, WatcherCursor

__all__ = [
    "RevenueWatcher",
    "RevenueLog",
    "RevenueRecord",
    "TickResult",
    "WatcherCursor",
]
