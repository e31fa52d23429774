"""Task domain models.

Pure domain models for the task store. Uses Pydantic so that a store file
is parsed (and rejected when malformed) in one explicit step at load time.

On disk the store uses camelCase keys; models expose snake_case
attributes with camelCase aliases. Keys this version does not know about
are kept as extras and written back unchanged.
"""

import hashlib
import json
import re
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

TASK_ID_PATTERN = re.compile(r"^T\d{3,}$")

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(moment: datetime | None = None) -> str:
    """Render a moment (default: now) as an ISO-8601 UTC timestamp."""
    moment = moment or datetime.now(UTC)
    return moment.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a store timestamp ("2025-12-23T10:00:00Z" or any ISO-8601 form)."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def compute_checksum(tasks: list[dict]) -> str:
    """Checksum of a serialized task list: first 16 hex chars of its SHA-256.

    The list is encoded as compact JSON with no trailing newline, so a
    store written by the shell tooling hashes to the same value.
    """
    payload = json.dumps(tasks, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


class TaskStatus(str, Enum):
    """Status of a task in the store."""

    PENDING = "pending"
    ACTIVE = "active"
    BLOCKED = "blocked"
    DONE = "done"
    CANCELLED = "cancelled"


class Task(BaseModel):
    """A single work item.

    ``parent_id`` places the task in the parent tree (epic -> task ->
    subtask). ``depends`` is a separate ordering graph between tasks and
    has nothing to do with the tree.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(pattern=TASK_ID_PATTERN.pattern)
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: str = "medium"
    type: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")
    depends: list[str] = Field(default_factory=list)
    phase: str | None = None
    labels: list[str] = Field(default_factory=list)
    created_at: str | None = Field(default=None, alias="createdAt")
    completed_at: str | None = Field(default=None, alias="completedAt")
    cancelled_at: str | None = Field(default=None, alias="cancelledAt")
    cancel_reason: str | None = Field(default=None, alias="cancelReason")

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.DONE, TaskStatus.CANCELLED)


class Focus(BaseModel):
    """Session focus: the task currently being worked on plus free-form notes.

    Only ``current_task`` is ever written by the deletion engine; the notes
    belong to the session tooling and are carried through untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    current_task: str | None = Field(default=None, alias="currentTask")
    session_note: str | None = Field(default=None, alias="sessionNote")
    next_action: str | None = Field(default=None, alias="nextAction")


class StoreMeta(BaseModel):
    """Store metadata. ``checksum`` doubles as the optimistic-concurrency token."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    version: str | None = None
    checksum: str | None = None
    active_session: str | None = Field(default=None, alias="activeSession")


class TaskStore(BaseModel):
    """The whole task collection as persisted in ``todo.json``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    meta: StoreMeta = Field(default_factory=StoreMeta, alias="_meta")
    last_updated: str | None = Field(default=None, alias="lastUpdated")
    focus: Focus = Field(default_factory=Focus)
    tasks: list[Task] = Field(default_factory=list)

    def get(self, task_id: str) -> Task | None:
        """Return the task with the given id, or None."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def task_ids(self) -> list[str]:
        return [task.id for task in self.tasks]

    def to_json_dict(self) -> dict:
        """Serialize for disk, keeping only the keys the file actually had."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")

    def tasks_payload(self) -> list[dict]:
        """Serialized task list, the input to the checksum."""
        return [
            task.model_dump(by_alias=True, exclude_unset=True, mode="json")
            for task in self.tasks
        ]


class TaskSummary(BaseModel):
    """Compact view of a task used in previews and results."""

    id: str
    title: str
    status: TaskStatus

    @classmethod
    def of(cls, task: Task) -> "TaskSummary":
        return cls(id=task.id, title=task.title, status=task.status)
