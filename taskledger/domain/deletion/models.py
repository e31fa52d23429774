"""Deletion domain models.

Value types passed between the preflight chain, the strategy engine and
the impact previewer. On the wire they use camelCase field names, so
callers that consume JSON output see the same shape as the store file.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskledger.domain.shared import ErrorCode
from taskledger.domain.task import TaskStatus, TaskSummary


class ChildStrategy(str, Enum):
    """How a task's children are treated when the task is cancelled."""

    BLOCK = "block"
    CASCADE = "cascade"
    ORPHAN = "orphan"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CancellationPolicy(_CamelModel):
    """Cancellation rules, read from the ``cancellation`` section of the config."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    require_reason: bool = True
    default_child_strategy: ChildStrategy = ChildStrategy.BLOCK
    cascade_confirm_threshold: int = Field(default=10, ge=0)
    allow_cascade: bool = True
    days_until_archive: int = Field(default=7, ge=0)


class DeleteRequest(_CamelModel):
    """What the caller asked for, before any validation."""

    task_id: str
    strategy: ChildStrategy | None = None
    reason: str | None = None
    dry_run: bool = False
    force: bool = False


class FieldError(_CamelModel):
    field: str
    message: str


class TaskInfo(_CamelModel):
    status: TaskStatus
    is_leaf: bool
    has_children: bool
    child_count: int
    descendant_count: int = 0


class PreflightVerdict(_CamelModel):
    """Outcome of the preflight chain.

    ``success`` is False only when a check failed. An already-cancelled
    task yields ``success=True, can_proceed=False, no_change=True``.
    """

    success: bool
    can_proceed: bool
    no_change: bool = False
    strategy: ChildStrategy | None = None
    reason: str | None = None
    task_info: TaskInfo | None = None
    validation_errors: list[FieldError] = Field(default_factory=list)
    error_code: ErrorCode | None = None


class MutationPlan(_CamelModel):
    """The engine's output: which tasks change and how. No I/O has happened yet."""

    strategy: ChildStrategy
    primary_id: str
    affected_ids: list[str]
    orphaned_ids: list[str] = Field(default_factory=list)
    reason: str
    cancelled_at: str

    @property
    def affected_set(self) -> frozenset[str]:
        return frozenset(self.affected_ids)


class ImpactWarning(_CamelModel):
    code: str
    severity: Severity
    message: str
    task_ids: list[str] = Field(default_factory=list)


class ImpactPreview(_CamelModel):
    """Read-only summary of what a deletion would do."""

    strategy: ChildStrategy
    primary_id: str
    affected_tasks: list[TaskSummary]
    total_count: int
    pending_lost: int
    active_lost: int
    blocked_lost: int
    dependents_affected: list[str]
    orphaned_children: list[str]
    focus_affected: bool
    warnings: list[ImpactWarning]
