"""Data models for sessions, progress ledgers and restoration output."""

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

Role = Literal["user", "assistant"]
MilestoneStatus = Literal["planned", "in-progress", "completed"]
DecisionStatus = Literal["proposed", "accepted", "rejected"]
UsageBand = Literal["continue", "warn", "break"]


def new_id() -> str:
    return uuid4().hex[:12]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    """A tracked span of conversation for one project."""

    id: str = Field(default_factory=new_id)
    project_path: str = Field(description="Project root that holds the .context directory")
    session_name: str | None = None
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None
    token_count: int = 0
    message_count: int = 0
    status: Literal["active", "ended"] = "active"


class SessionMessage(BaseModel):
    """A single conversational turn recorded in the active session."""

    id: str = Field(default_factory=new_id)
    content: str
    role: Role
    timestamp: datetime = Field(default_factory=utcnow)
    token_count: int = 0


class Milestone(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: str = ""
    status: MilestoneStatus = "planned"
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None


class TechnicalDecision(BaseModel):
    """An architecture decision record kept in the decisions ledger."""

    id: str = Field(default_factory=new_id)
    title: str
    context: str = ""
    decision: str
    alternatives: list[str] = Field(default_factory=list)
    consequences: list[str] = Field(default_factory=list)
    status: DecisionStatus = "accepted"
    created_at: datetime = Field(default_factory=utcnow)


class TokenUsage(BaseModel):
    current: int
    limit: int
    percentage: int
    suggestion: UsageBand


class BreakSuggestion(BaseModel):
    reason: str
    current_tokens: int
    suggested_action: Literal["end_session", "create_checkpoint"]
    summary: str


class ProjectSummary(BaseModel):
    """Aggregate view of a project, recomputed from .context on every call."""

    name: str
    path: str
    total_sessions: int = 0
    total_tokens: int = 0
    last_activity: datetime
    current_phase: str | None = None
    key_milestones: list[Milestone] = Field(default_factory=list)


class RestorationPrompt(BaseModel):
    project_name: str
    current_phase: str
    last_session_summary: str
    key_context: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    full_prompt: str
