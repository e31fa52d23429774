"""Task domain - the task store and its graph structure.

All exports are pure (no I/O, no side effects).

Key Types:
    TaskStatus - Task state enumeration
    Task - A single work item
    Focus - Session focus pointer and notes
    TaskStore - The whole persisted collection

Graph Functions:
    children - Direct children in the parent tree
    descendants - Full subtree below a task
    dependents - Tasks whose depends reference a set of ids
    find_parent_cycle / find_dependency_cycle - Cycle detection

Invariants:
    check_invariants - Structural consistency rules for a store
    check_integrity - Invariants plus bookkeeping checks (validate)
    repair_store - Automatic fixes for the bookkeeping checks

Domain Events:
    TaskCancelled, ChildOrphaned, DependencyPruned, FocusCleared, TaskArchived
"""

from .events import (
    ChildOrphaned,
    DependencyPruned,
    DomainEvent,
    FocusCleared,
    TaskArchived,
    TaskCancelled,
)
from .graph import (
    children,
    count_by_status,
    dependents,
    descendants,
    filter_tasks,
    find_dependency_cycle,
    find_parent_cycle,
    has_status,
    index_by_id,
    is_leaf,
)
from .integrity import (
    DEFAULT_SCHEMA_VERSION,
    ChecksumStatus,
    check_integrity,
    repair_store,
)
from .invariants import InvariantViolation, check_invariants
from .models import (
    TASK_ID_PATTERN,
    Focus,
    StoreMeta,
    Task,
    TaskStatus,
    TaskStore,
    TaskSummary,
    compute_checksum,
    format_timestamp,
    parse_timestamp,
)

__all__ = [
    # Models
    "TASK_ID_PATTERN",
    "TaskStatus",
    "Task",
    "Focus",
    "StoreMeta",
    "TaskStore",
    "TaskSummary",
    "compute_checksum",
    "format_timestamp",
    "parse_timestamp",
    # Graph
    "index_by_id",
    "filter_tasks",
    "has_status",
    "count_by_status",
    "children",
    "descendants",
    "is_leaf",
    "dependents",
    "find_parent_cycle",
    "find_dependency_cycle",
    # Invariants
    "InvariantViolation",
    "check_invariants",
    "ChecksumStatus",
    "DEFAULT_SCHEMA_VERSION",
    "check_integrity",
    "repair_store",
    # Events
    "DomainEvent",
    "TaskCancelled",
    "ChildOrphaned",
    "DependencyPruned",
    "FocusCleared",
    "TaskArchived",
]
