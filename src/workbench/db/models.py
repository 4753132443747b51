"""Data models for task workspaces.

Everything that crosses a boundary (tool input, the session file, command
output) is a pydantic model. Attributes are snake_case; the JSON form uses
camelCase aliases and both spellings are accepted on input.
"""

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

BranchType = Literal["feat", "fix", "refactor", "docs", "chore", "test"]
Priority = Literal["low", "medium", "high", "critical"]

BRANCH_TYPES: tuple[str, ...] = ("feat", "fix", "refactor", "docs", "chore", "test")
SLUG_RE = re.compile(r"^[a-z0-9-]+$")


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def describe_validation_error(e: ValidationError) -> str:
    problems = []
    for err in e.errors():
        location = ".".join(str(part) for part in err["loc"]) or "input"
        problems.append(f"{location}: {err['msg']}")
    return "Invalid input: " + "; ".join(problems)


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TaskDescriptor(WireModel):
    model_config = ConfigDict(frozen=True)

    task_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str | None = None
    priority: Priority | None = None
    type: BranchType | None = None


class BranchName(WireModel):
    type: BranchType
    slug: str

    @field_validator("slug")
    @classmethod
    def _check_slug(cls, value: str) -> str:
        if not SLUG_RE.match(value):
            raise ValueError(f"Branch slug must match [a-z0-9-]+: {value!r}")
        return value

    def __str__(self) -> str:
        return f"{self.type}/{self.slug}"


class Session(WireModel):
    # Fields written by newer versions survive a rewrite.
    model_config = ConfigDict(extra="allow")

    task_id: str = Field(min_length=1)
    task_name: str
    branch: str
    worktree_path: str
    opencode_session_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def stamped(self) -> "Session":
        """Copy with both timestamps marked as set, so they are persisted."""
        return self.model_copy(update={"created_at": self.created_at, "updated_at": self.updated_at})

    def to_record(self) -> dict:
        """Session file form. Timestamps that were never recorded stay absent."""
        data = self.to_wire()
        for name in ("created_at", "updated_at"):
            if name not in self.model_fields_set:
                data.pop(to_camel(name), None)
        return data


class SessionState(WireModel):
    model_config = ConfigDict(extra="allow")

    sessions: list[Session] = Field(default_factory=list)

    def to_record(self) -> dict:
        data = self.to_wire()
        data["sessions"] = [s.to_record() for s in self.sessions]
        return data

    def find(self, task_id: str) -> Session | None:
        for session in self.sessions:
            if session.task_id == task_id:
                return session
        return None

    def upsert(self, session: Session) -> None:
        """Replace the entry with the same task id, or append."""
        for i, existing in enumerate(self.sessions):
            if existing.task_id == session.task_id:
                self.sessions[i] = session
                return
        self.sessions.append(session)

    def remove(self, task_id: str) -> bool:
        before = len(self.sessions)
        self.sessions = [s for s in self.sessions if s.task_id != task_id]
        return len(self.sessions) != before

    @field_validator("sessions")
    @classmethod
    def _unique_task_ids(cls, sessions: list[Session]) -> list[Session]:
        # Later entries win when a hand-edited file repeats a task id.
        by_task: dict[str, Session] = {}
        for session in sessions:
            by_task[session.task_id] = session
        return list(by_task.values())


class StartTaskRequest(WireModel):
    task_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str | None = None
    priority: Priority | None = None
    type: BranchType | None = None
    branch_type: BranchType | None = None
    branch_slug: str | None = None
    base_branch: str | None = None

    def descriptor(self) -> TaskDescriptor:
        return TaskDescriptor(
            task_id=self.task_id,
            title=self.title,
            description=self.description,
            priority=self.priority,
            type=self.type,
        )


class ToolResult(WireModel):
    status: str
    message: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def failed(cls, message: str, **fields):
        return cls(status="failed", message=message, **fields)


class WorkspaceResult(ToolResult):
    status: Literal["created", "existing", "failed"]
    task_id: str = ""
    task_name: str | None = None
    branch: str | None = None
    worktree_path: str | None = None
    opencode_session_id: str | None = None
    config_source: str | None = None


class DestroyWorkspaceRequest(WireModel):
    task_id: str = Field(min_length=1)
    force: bool = False
    keep_session: bool = False
    delete_branch: bool = False


class TeardownResult(ToolResult):
    status: Literal["removed", "failed"]
    task_id: str = ""
    branch: str | None = None
    worktree_path: str | None = None
    worktree_removed: bool = False
    session_removed: bool = False
    branch_deleted: bool = False


class ListSessionsRequest(WireModel):
    pass


class SessionListResult(ToolResult):
    status: Literal["ok", "failed"]
    sessions: list[Session] = Field(default_factory=list)
