"""Sync planning and execution."""

from __future__ import annotations

from .executor import SyncExecutor, group_batches
from .planner import SyncPlanner
from .session import CancellationToken, SyncSession

__all__ = [
    "CancellationToken",
    "SyncExecutor",
    "SyncPlanner",
    "SyncSession",
    "group_batches",
]
