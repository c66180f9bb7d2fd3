"""Run discovery and extraction over every session log under a root."""
from __future__ import annotations

from pathlib import Path

from indicator.models import SessionInfo
from indicator.observability import record_extraction_failure
from indicator.parsers.discovery import list_log_files
from indicator.parsers.sessions import DEFAULT_QUESTION_TOOL, DEFAULT_TAIL_BYTES, extract_session_info


def scan_sessions(
    sessions_dir: Path,
    extension: str = ".jsonl",
    tail_bytes: int = DEFAULT_TAIL_BYTES,
    question_tool: str = DEFAULT_QUESTION_TOOL,
) -> list[SessionInfo]:
    """Extract every discoverable session log, in discovery order.

    Files that cannot be read are left out and counted as extraction failures.
    """
    sessions: list[SessionInfo] = []
    for path in list_log_files(sessions_dir, extension):
        session = extract_session_info(path, tail_bytes=tail_bytes, question_tool=question_tool)
        if session is None:
            record_extraction_failure("unreadable")
            continue
        sessions.append(session)
    return sessions
