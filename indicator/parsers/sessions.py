"""Extract the attention state of a session from the tail of its JSONL log."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from functools import reduce
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from indicator.models import LogMessage, QuestionKind, SessionInfo

logger = logging.getLogger("ccindicator.parser")

DEFAULT_TAIL_BYTES = 50_000
DEFAULT_QUESTION_TOOL = "AskUserQuestion"

_TOOL_USE = "tool_use"


@dataclass(frozen=True)
class SessionScanState:
    """Fold accumulator for one pass over a session log."""

    unansweredQuestion: bool = False
    toolPending: bool = False
    promptUnanswered: bool = False
    cwd: str = ""
    sessionId: str = ""

    @property
    def needs_attention(self) -> bool:
        return self.unansweredQuestion or self.toolPending or self.promptUnanswered

    @property
    def question_kind(self) -> Optional[QuestionKind]:
        if self.unansweredQuestion:
            return QuestionKind.ASK_USER_QUESTION
        if self.toolPending:
            return QuestionKind.TOOL_PENDING
        if self.promptUnanswered:
            return QuestionKind.USER_PROMPT
        return None


def read_tail_lines(path: Path, tail_bytes: int = DEFAULT_TAIL_BYTES) -> list[str]:
    """Return the complete non-empty lines found in the last ``tail_bytes`` of a file.

    When the file is larger than the window its first line is dropped, since
    the window may begin in the middle of a record. Raises ``OSError`` if the
    file cannot be opened or sought.
    """
    with path.open("rb") as fh:
        size = fh.seek(0, os.SEEK_END)
        start = max(0, size - tail_bytes)
        fh.seek(start)
        data = fh.read()

    lines = [line for line in data.decode("utf-8", errors="replace").split("\n") if line.strip()]
    if start > 0 and lines:
        lines.pop(0)
    return lines


def parse_log_line(line: str) -> Optional[LogMessage]:
    try:
        return LogMessage.model_validate_json(line)
    except ValidationError:
        return None


def parse_log_lines(lines: Iterable[str]) -> list[LogMessage]:
    messages = []
    for line in lines:
        message = parse_log_line(line)
        if message is not None:
            messages.append(message)
    return messages


def advance(state: SessionScanState, message: LogMessage, question_tool: str = DEFAULT_QUESTION_TOOL) -> SessionScanState:
    """Apply one log message to the scan state and return the new state."""
    if not state.cwd and message.cwd:
        state = replace(state, cwd=message.cwd)
    if not state.sessionId and message.sessionId:
        state = replace(state, sessionId=message.sessionId)

    if message.type == "assistant":
        unanswered = state.unansweredQuestion
        tool_pending = False
        for item in message.content_items:
            if item.name == question_tool:
                unanswered = True
            if item.type == _TOOL_USE:
                tool_pending = True
        return replace(
            state,
            unansweredQuestion=unanswered,
            toolPending=tool_pending,
            promptUnanswered=False,
        )

    if message.type == "user":
        if message.is_tool_result:
            return replace(state, unansweredQuestion=False, toolPending=False)
        # Any user turn answers the assistant, including a pending question.
        return replace(state, unansweredQuestion=False, toolPending=False, promptUnanswered=True)

    return state


def scan_messages(messages: Iterable[LogMessage], question_tool: str = DEFAULT_QUESTION_TOOL) -> SessionScanState:
    return reduce(lambda state, msg: advance(state, msg, question_tool), messages, SessionScanState())


def _flatten_path(path_str: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "-", path_str)


def decode_project_dir_name(dir_name: str, home: Optional[Path] = None) -> str:
    """Turn a flattened project directory name back into a readable path.

    ``-Users-alice-src-app`` becomes ``/Users/alice/src/app``, shown as
    ``~/src/app`` when it lives under the home directory. Names that were not
    produced by the flattening are returned unchanged.
    """
    if not dir_name.startswith("-"):
        return dir_name

    home_str = str(home if home is not None else Path.home()).rstrip("/")
    if home_str:
        # Match the home directory in its flattened form, where "." and "_" also became "-".
        flat_home = _flatten_path(home_str)
        if dir_name == flat_home:
            return "~"
        if dir_name.startswith(flat_home + "-"):
            return "~/" + dir_name[len(flat_home) + 1:].replace("-", "/")
    return "/" + dir_name[1:].replace("-", "/")


def _file_mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def extract_session_info(
    path: Path,
    tail_bytes: int = DEFAULT_TAIL_BYTES,
    question_tool: str = DEFAULT_QUESTION_TOOL,
) -> Optional[SessionInfo]:
    """Read a session log and describe whether it is waiting on a human.

    Returns ``None`` only when the file itself cannot be read; malformed lines
    are skipped.
    """
    try:
        lines = read_tail_lines(path, tail_bytes)
        last_modified = _file_mtime(path)
    except OSError as exc:
        logger.debug("Could not read session log %s: %s", path, exc)
        return None

    state = scan_messages(parse_log_lines(lines), question_tool)
    project_path = state.cwd or decode_project_dir_name(path.parent.name)

    return SessionInfo(
        filePath=str(path),
        projectPath=project_path,
        sessionId=state.sessionId,
        needsAttention=state.needs_attention,
        lastModified=last_modified,
        questionKind=state.question_kind,
    )
