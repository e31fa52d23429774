"""Task domain events.

Immutable records of the state changes a deletion makes. ``apply_plan``
returns them next to the mutated store; the commit step reads them when
building the caller-facing result.

All events are pure data structures - no I/O, no side effects.
"""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field


class DomainEvent(BaseModel):
    """Base class for all domain events.

    Each event has a unique ID and timestamp.
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}


class TaskCancelled(DomainEvent):
    """A task moved to the cancelled state."""

    task_id: str
    previous_status: str
    reason: str
    cascaded_from: str | None = None


class ChildOrphaned(DomainEvent):
    """A child lost its parent because the parent was cancelled with Orphan."""

    task_id: str
    former_parent_id: str


class DependencyPruned(DomainEvent):
    """A task's ``depends`` list dropped references to cancelled tasks."""

    task_id: str
    removed: list[str]


class FocusCleared(DomainEvent):
    """The focused task was cancelled, so the focus pointer was reset."""

    task_id: str


class TaskArchived(DomainEvent):
    """A cancelled task was moved out of the live store into the archive."""

    task_id: str
    archive_reason: str = "cancelled"
