"""Reduce per-session extraction results into a monitor snapshot."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from indicator.models import MonitorSnapshot, SessionInfo


def reduce_sessions(sessions: Iterable[SessionInfo], now: datetime, window_seconds: float) -> MonitorSnapshot:
    """Keep sessions modified within the recency window and OR their attention flags.

    Input order is preserved.
    """
    cutoff = now - timedelta(seconds=window_seconds)
    recent = [s for s in sessions if s.lastModified >= cutoff]
    return MonitorSnapshot(
        sessions=recent,
        anyNeedsAttention=any(s.needsAttention for s in recent),
        checkedAt=now,
        windowSeconds=window_seconds,
    )
