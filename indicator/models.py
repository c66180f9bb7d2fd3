"""Pydantic models for session logs, extraction results and monitor snapshots."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# ── Log records (one JSON object per line) ──────────────────────────


class LogContentItem(BaseModel):
    type: Optional[str] = None
    name: Optional[str] = None
    id: Optional[str] = None


class LogMessageBody(BaseModel):
    role: Optional[str] = None
    # User prompts are often stored as a bare string instead of content blocks.
    content: Union[list[LogContentItem], str, None] = None


class LogMessage(BaseModel):
    type: Optional[str] = None
    message: Optional[LogMessageBody] = None
    timestamp: Optional[str] = None
    cwd: Optional[str] = None
    sessionId: Optional[str] = None

    @property
    def content_items(self) -> list[LogContentItem]:
        if self.message is None or not isinstance(self.message.content, list):
            return []
        return self.message.content

    @property
    def is_tool_result(self) -> bool:
        return any(item.type == "tool_result" for item in self.content_items)


# ── Extraction results ──────────────────────────────────────────────


class QuestionKind(str, Enum):
    ASK_USER_QUESTION = "AskUserQuestion"
    TOOL_PENDING = "ToolPending"
    USER_PROMPT = "UserPrompt"


class SessionInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    filePath: str
    projectPath: str = ""
    sessionId: str = ""
    needsAttention: bool = False
    lastModified: datetime
    questionKind: Optional[QuestionKind] = None


class MonitorSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    sessions: list[SessionInfo] = Field(default_factory=list)
    anyNeedsAttention: bool = False
    checkedAt: datetime
    windowSeconds: float

    @property
    def attention_sessions(self) -> list[SessionInfo]:
        return [s for s in self.sessions if s.needsAttention]


# ── API payloads ────────────────────────────────────────────────────


class MonitorStatus(BaseModel):
    anyNeedsAttention: bool
    checkedAt: datetime
    sessionCount: int = 0
    attentionCount: int = 0
    windowSeconds: float
    watching: bool = False


class SessionRow(BaseModel):
    filePath: str
    projectPath: str
    projectName: str
    sessionId: str = ""
    needsAttention: bool = False
    questionKind: Optional[QuestionKind] = None
    indicator: str = ""
    lastModified: datetime


class SessionGroups(BaseModel):
    anyNeedsAttention: bool
    checkedAt: datetime
    attention: list[SessionRow] = Field(default_factory=list)
    other: list[SessionRow] = Field(default_factory=list)


class TimeWindowPreset(BaseModel):
    label: str
    minutes: int


class TimeWindowSettings(BaseModel):
    minutes: int
    label: str
    presets: list[TimeWindowPreset] = Field(default_factory=list)


class TimeWindowUpdate(BaseModel):
    minutes: int = Field(..., gt=0)
