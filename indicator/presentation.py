"""Display helpers for session rows and the recency window."""
from __future__ import annotations

from pathlib import PurePosixPath
from typing import Optional

from indicator.models import (
    MonitorSnapshot,
    QuestionKind,
    SessionGroups,
    SessionInfo,
    SessionRow,
    TimeWindowPreset,
)

TIME_WINDOW_PRESETS: list[tuple[str, int]] = [
    ("5 minutes", 5),
    ("15 minutes", 15),
    ("30 minutes", 30),
    ("1 hour", 60),
    ("4 hours", 240),
    ("1 day", 1440),
]

# Cap on non-attention sessions listed alongside the ones needing attention.
OTHER_SESSIONS_LIMIT = 5

_INDICATOR_BY_KIND = {
    QuestionKind.ASK_USER_QUESTION: "❓",
    QuestionKind.TOOL_PENDING: "⏸",
    QuestionKind.USER_PROMPT: "🔴",
}


def indicator_for(kind: Optional[QuestionKind]) -> str:
    if kind is None:
        return "❓"
    return _INDICATOR_BY_KIND.get(kind, "❓")


def project_display_name(project_path: str) -> str:
    if not project_path:
        return "Unknown Project"
    name = PurePosixPath(project_path.rstrip("/")).name
    return name or project_path


def format_time_window(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    if minutes < 1440:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours > 1 else ''}"
    days = minutes // 1440
    return f"{days} day{'s' if days > 1 else ''}"


def window_presets() -> list[TimeWindowPreset]:
    return [TimeWindowPreset(label=label, minutes=minutes) for label, minutes in TIME_WINDOW_PRESETS]


def is_preset_window(minutes: int) -> bool:
    return any(minutes == preset for _, preset in TIME_WINDOW_PRESETS)


def session_row(session: SessionInfo) -> SessionRow:
    return SessionRow(
        filePath=session.filePath,
        projectPath=session.projectPath,
        projectName=project_display_name(session.projectPath),
        sessionId=session.sessionId,
        needsAttention=session.needsAttention,
        questionKind=session.questionKind,
        indicator=indicator_for(session.questionKind) if session.needsAttention else "",
        lastModified=session.lastModified,
    )


def group_sessions(snapshot: MonitorSnapshot, other_limit: int = OTHER_SESSIONS_LIMIT) -> SessionGroups:
    """Split a snapshot into sessions needing attention and a short list of the rest."""
    attention = [session_row(s) for s in snapshot.sessions if s.needsAttention]
    other = [session_row(s) for s in snapshot.sessions if not s.needsAttention][:other_limit]
    return SessionGroups(
        anyNeedsAttention=snapshot.anyNeedsAttention,
        checkedAt=snapshot.checkedAt,
        attention=attention,
        other=other,
    )
