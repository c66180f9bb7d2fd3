import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

from indicator import config, main
from indicator.models import MonitorSnapshot, QuestionKind, SessionInfo

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class MainLifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def test_lifespan_starts_and_stops_monitor(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)

        with patch.object(config, "SESSIONS_DIR", Path(tmpdir.name)), \
                patch.object(config, "WATCH_ENABLED", False), \
                patch.object(config, "POLL_INTERVAL_SECONDS", 3600), \
                patch.object(config, "PROM_PORT", 0), \
                patch.object(config, "OTEL_ENABLED", False):
            async with main.lifespan(main.app):
                monitor = main.app.state.monitor
                self.assertTrue(monitor.is_running)
                self.assertIsNotNone(monitor.snapshot)
                self.assertEqual(monitor.sessions_dir, Path(tmpdir.name))
                self.assertEqual(main.health()["monitor"], "running")

        self.assertFalse(monitor.is_running)
        self.assertEqual(main.health()["monitor"], "stopped")

    def test_alert_names_waiting_projects(self) -> None:
        snapshot = MonitorSnapshot(
            sessions=[
                SessionInfo(
                    filePath="/s/a.jsonl",
                    projectPath="/work/alpha",
                    needsAttention=True,
                    lastModified=NOW,
                    questionKind=QuestionKind.ASK_USER_QUESTION,
                )
            ],
            anyNeedsAttention=True,
            checkedAt=NOW,
            windowSeconds=3600,
        )

        with self.assertLogs("ccindicator", level="WARNING") as logs:
            main.alert_attention(snapshot)

        self.assertIn("alpha", logs.output[0])


if __name__ == "__main__":
    unittest.main()
