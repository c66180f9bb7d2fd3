import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from indicator.parsers import registry
from indicator.parsers.discovery import list_log_files
from indicator.parsers.registry import scan_sessions


class DiscoveryTests(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name)

    def _touch(self, relative_path: str, text: str = "") -> Path:
        path = self.root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def test_lists_log_files_recursively(self) -> None:
        a = self._touch("-Users-alice-app/one.jsonl")
        b = self._touch("-Users-alice-app/subagents/two.jsonl")
        c = self._touch("-opt-other/three.jsonl")
        self._touch("-Users-alice-app/notes.md")
        self._touch("-Users-alice-app/one.jsonl.bak")

        self.assertEqual(sorted(list_log_files(self.root)), sorted([a, b, c]))

    def test_skips_hidden_entries(self) -> None:
        visible = self._touch("project/visible.jsonl")
        self._touch("project/.hidden.jsonl")
        self._touch(".cache/inside.jsonl")

        self.assertEqual(list_log_files(self.root), [visible])

    def test_skips_directories_named_like_logs(self) -> None:
        (self.root / "project" / "odd.jsonl").mkdir(parents=True)

        self.assertEqual(list_log_files(self.root), [])

    def test_missing_root_yields_empty_list(self) -> None:
        self.assertEqual(list_log_files(self.root / "missing"), [])

    def test_root_that_cannot_be_stated_yields_empty_list(self) -> None:
        # ENAMETOOLONG from stat
        self.assertEqual(list_log_files(self.root / ("a" * 300)), [])

    def test_custom_extension(self) -> None:
        log = self._touch("project/session.log")
        self._touch("project/session.jsonl")

        self.assertEqual(list_log_files(self.root, extension=".log"), [log])

    def test_order_is_stable(self) -> None:
        for name in ("c", "a", "b"):
            self._touch(f"project/{name}.jsonl")

        first = list_log_files(self.root)
        self.assertEqual(first, list_log_files(self.root))
        self.assertEqual([p.stem for p in first], ["a", "b", "c"])


class ScanSessionsTests(unittest.TestCase):
    def test_scan_extracts_every_log_in_discovery_order(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        root = Path(tmpdir.name)
        for name in ("a", "b"):
            path = root / "-work-app" / f"{name}.jsonl"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text('{"type": "user", "message": {"content": "hi"}, "sessionId": "%s"}\n' % name, encoding="utf-8")

        sessions = scan_sessions(root)

        self.assertEqual([s.sessionId for s in sessions], ["a", "b"])
        self.assertTrue(all(s.needsAttention for s in sessions))

    def test_unreadable_logs_are_left_out_and_counted(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        root = Path(tmpdir.name)
        good = root / "project" / "good.jsonl"
        good.parent.mkdir(parents=True)
        good.write_text("", encoding="utf-8")
        bad = root / "project" / "bad.jsonl"

        with patch.object(registry, "list_log_files", return_value=[bad, good]), \
                patch.object(registry, "record_extraction_failure") as failure:
            sessions = scan_sessions(root)

        self.assertEqual([s.filePath for s in sessions], [str(good)])
        failure.assert_called_once_with("unreadable")

    def test_missing_root_scans_nothing(self) -> None:
        self.assertEqual(scan_sessions(Path("/nonexistent/ccindicator/root")), [])


if __name__ == "__main__":
    unittest.main()
