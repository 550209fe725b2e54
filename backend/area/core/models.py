"""
Pure Pydantic data models for Area.

No logic, no I/O. These are the serializable data layer:
- Saved to disk by the FileStore
- Returned by the HTTP routes
- Passed between the lifecycle manager, workers and reaction executors
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


# ── Catalog ───────────────────────────────────────────────────────────────────


class Service(BaseModel):
    """A provider users can link (github, discord, ...) or the Timer pseudo-service."""
    id: int
    name: str


class Action(BaseModel):
    """One trigger kind. `data` names the parameter slots, documentation only."""
    id: int
    service_id: int
    name: str
    description: str
    data: list[str] = []


class Reaction(BaseModel):
    """One effect kind. Same shape as Action."""
    id: int
    service_id: int
    name: str
    description: str
    data: list[str] = []


# ── Workflows ─────────────────────────────────────────────────────────────────


class Workflow(BaseModel):
    """A user's binding of one configured Action to one configured Reaction."""
    id: int
    user_id: int
    name: str
    description: str | None = None
    action_id: int
    action_data: list[str] = []       # user configuration, never rewritten by workers
    reaction_id: int
    reaction_data: list[str] = []
    cursor: str | None = None         # last seen external item, owned by the polling worker
    created_at: datetime
    updated_at: datetime


class StepRef(BaseModel):
    """Action or reaction reference in a create request: catalog id + bound values."""
    id: int
    data: list[str] = []


class WorkflowCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    action: StepRef
    reaction: StepRef


# ── Connections ───────────────────────────────────────────────────────────────


class UserService(BaseModel):
    """One user's OAuth grant for one provider. Unique per (user_id, service_id)."""
    user_id: int
    service_id: int
    token: str
    refresh_token: str | None = None
    created_at: datetime
    updated_at: datetime


class ConnectionView(BaseModel):
    """What the routes expose about a connection. Tokens never leave the store."""
    service_id: int
    service_name: str
    connected: bool = True
    created_at: datetime
    updated_at: datetime


# ── Audit log ─────────────────────────────────────────────────────────────────


LogLevel = Literal["info", "warning", "error"]


class LogEntry(BaseModel):
    """Append-only audit row."""
    id: int
    level: LogLevel
    message: str
    context: str
    metadata: dict[str, Any] | None = None
    user_id: int | None = None         # owner, when the row concerns one user
    created_at: datetime


# ── Polling ───────────────────────────────────────────────────────────────────


class PolledItem(BaseModel):
    """Most recent item a provider reported for one workflow."""
    id: str                           # stable identifier compared against Workflow.cursor
    created_at: datetime              # timezone-aware, used by the cold-start guard
    details: list[str] = []           # human-readable lines appended to reaction_data
    metadata: dict[str, Any] = {}     # copied into the audit row
