from __future__ import annotations

import types
import unittest
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException

from indicator.models import MonitorSnapshot, QuestionKind, SessionInfo, TimeWindowUpdate
from indicator.routers import status as status_router

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _session(name: str, needs_attention: bool, kind=None) -> SessionInfo:
    return SessionInfo(
        filePath=f"/sessions/-work-{name}/{name}.jsonl",
        projectPath=f"/work/{name}",
        sessionId=name,
        needsAttention=needs_attention,
        lastModified=NOW - timedelta(minutes=1),
        questionKind=kind,
    )


class _FakeMonitor:
    def __init__(self, snapshot: MonitorSnapshot | None) -> None:
        self.snapshot = snapshot
        self.window_seconds = 3600.0
        self.is_watching = True
        self.requested: list[str] = []
        self.checked: list[str] = []

    def set_window(self, window_seconds: float) -> None:
        self.window_seconds = window_seconds

    def request_recheck(self, trigger: str = "manual") -> bool:
        self.requested.append(trigger)
        return True

    async def check_now(self, trigger: str = "manual") -> MonitorSnapshot:
        self.checked.append(trigger)
        self.snapshot = MonitorSnapshot(sessions=[], anyNeedsAttention=False, checkedAt=NOW, windowSeconds=self.window_seconds)
        return self.snapshot


class StatusRouterTests(unittest.IsolatedAsyncioTestCase):
    def _request(self, monitor):
        return types.SimpleNamespace(app=types.SimpleNamespace(state=types.SimpleNamespace(monitor=monitor)))

    def _snapshot(self) -> MonitorSnapshot:
        sessions = [
            _session("ask", True, QuestionKind.ASK_USER_QUESTION),
            _session("idle", False),
            _session("prompt", True, QuestionKind.USER_PROMPT),
        ]
        return MonitorSnapshot(sessions=sessions, anyNeedsAttention=True, checkedAt=NOW, windowSeconds=3600)

    async def test_status_summarizes_snapshot(self) -> None:
        monitor = _FakeMonitor(self._snapshot())

        status = await status_router.get_status(self._request(monitor))

        self.assertTrue(status.anyNeedsAttention)
        self.assertEqual(status.sessionCount, 3)
        self.assertEqual(status.attentionCount, 2)
        self.assertEqual(status.windowSeconds, 3600)
        self.assertTrue(status.watching)

    async def test_status_before_first_snapshot_is_unavailable(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await status_router.get_status(self._request(_FakeMonitor(None)))
        self.assertEqual(ctx.exception.status_code, 503)

    async def test_missing_monitor_is_unavailable(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await status_router.list_sessions(self._request(None))
        self.assertEqual(ctx.exception.status_code, 503)

    async def test_sessions_are_grouped_with_indicators(self) -> None:
        groups = await status_router.list_sessions(self._request(_FakeMonitor(self._snapshot())))

        self.assertEqual([row.projectName for row in groups.attention], ["ask", "prompt"])
        self.assertEqual([row.indicator for row in groups.attention], ["❓", "🔴"])
        self.assertEqual([row.projectName for row in groups.other], ["idle"])
        self.assertEqual(groups.other[0].indicator, "")

    async def test_refresh_runs_recheck(self) -> None:
        monitor = _FakeMonitor(self._snapshot())

        status = await status_router.refresh_sessions(self._request(monitor))

        self.assertEqual(monitor.checked, ["manual"])
        self.assertFalse(status.anyNeedsAttention)
        self.assertEqual(status.sessionCount, 0)

    async def test_refresh_dropped_by_shutdown_is_unavailable(self) -> None:
        monitor = _FakeMonitor(self._snapshot())

        async def stopped(trigger: str = "manual") -> MonitorSnapshot:
            raise RuntimeError("Session monitor stopped")

        monitor.check_now = stopped

        with self.assertRaises(HTTPException) as ctx:
            await status_router.refresh_sessions(self._request(monitor))
        self.assertEqual(ctx.exception.status_code, 503)

    async def test_window_settings_list_presets(self) -> None:
        settings = await status_router.get_time_window(self._request(_FakeMonitor(None)))

        self.assertEqual(settings.minutes, 60)
        self.assertEqual(settings.label, "1 hour")
        self.assertEqual([p.minutes for p in settings.presets], [5, 15, 30, 60, 240, 1440])

    async def test_set_window_applies_preset_and_rechecks(self) -> None:
        monitor = _FakeMonitor(None)

        settings = await status_router.set_time_window(TimeWindowUpdate(minutes=240), self._request(monitor))

        self.assertEqual(monitor.window_seconds, 240 * 60)
        self.assertEqual(monitor.requested, ["settings"])
        self.assertEqual(settings.label, "4 hours")

    async def test_set_window_rejects_non_preset(self) -> None:
        monitor = _FakeMonitor(None)

        with self.assertRaises(HTTPException) as ctx:
            await status_router.set_time_window(TimeWindowUpdate(minutes=7), self._request(monitor))

        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(monitor.window_seconds, 3600.0)
        self.assertEqual(monitor.requested, [])


if __name__ == "__main__":
    unittest.main()
