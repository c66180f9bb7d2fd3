"""API router for the monitor's current attention state."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from indicator.models import (
    MonitorSnapshot,
    MonitorStatus,
    SessionGroups,
    TimeWindowSettings,
    TimeWindowUpdate,
)
from indicator.monitor.scheduler import SessionMonitor
from indicator.presentation import format_time_window, group_sessions, is_preset_window, window_presets

logger = logging.getLogger("ccindicator")

status_router = APIRouter(prefix="/api", tags=["status"])


def _get_monitor(request: Request) -> SessionMonitor:
    monitor = getattr(request.app.state, "monitor", None)
    if not monitor:
        raise HTTPException(status_code=503, detail="Session monitor not initialized")
    return monitor


def _require_snapshot(monitor: SessionMonitor) -> MonitorSnapshot:
    snapshot = monitor.snapshot
    if snapshot is None:
        raise HTTPException(status_code=503, detail="No sessions checked yet")
    return snapshot


def _status(monitor: SessionMonitor, snapshot: MonitorSnapshot) -> MonitorStatus:
    return MonitorStatus(
        anyNeedsAttention=snapshot.anyNeedsAttention,
        checkedAt=snapshot.checkedAt,
        sessionCount=len(snapshot.sessions),
        attentionCount=len(snapshot.attention_sessions),
        windowSeconds=snapshot.windowSeconds,
        watching=monitor.is_watching,
    )


def _window_settings(monitor: SessionMonitor) -> TimeWindowSettings:
    minutes = int(monitor.window_seconds // 60)
    return TimeWindowSettings(
        minutes=minutes,
        label=format_time_window(minutes),
        presets=window_presets(),
    )


@status_router.get("/status", response_model=MonitorStatus)
async def get_status(request: Request):
    """Whether any recent session is waiting on a human."""
    monitor = _get_monitor(request)
    return _status(monitor, _require_snapshot(monitor))


@status_router.get("/sessions", response_model=SessionGroups)
async def list_sessions(request: Request):
    """Recent sessions, split into those needing attention and the rest."""
    monitor = _get_monitor(request)
    return group_sessions(_require_snapshot(monitor))


@status_router.post("/sessions/refresh", response_model=MonitorStatus)
async def refresh_sessions(request: Request):
    """Recheck every session now and return the new status."""
    monitor = _get_monitor(request)
    logger.info("Manual refresh requested")
    try:
        snapshot = await monitor.check_now("manual")
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _status(monitor, snapshot)


@status_router.get("/settings/window", response_model=TimeWindowSettings)
async def get_time_window(request: Request):
    return _window_settings(_get_monitor(request))


@status_router.put("/settings/window", response_model=TimeWindowSettings)
async def set_time_window(payload: TimeWindowUpdate, request: Request):
    """Switch the recency window to one of the presets."""
    monitor = _get_monitor(request)
    if not is_preset_window(payload.minutes):
        raise HTTPException(status_code=400, detail=f"Unsupported time window: {payload.minutes} minutes")
    monitor.set_window(payload.minutes * 60)
    monitor.request_recheck("settings")
    logger.info("Session time window set to %s", format_time_window(payload.minutes))
    return _window_settings(monitor)
