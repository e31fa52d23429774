"""Deletion domain - preflight, strategy selection and impact preview.

Pure functions only; committing a plan to disk is the application layer's job.

    preflight_delete - Fail-fast validation chain
    plan_deletion    - Affected set and mutation plan for a strategy
    apply_plan       - Apply a plan to an in-memory store
    preview_deletion - Impact statistics and warnings
"""

from .models import (
    CancellationPolicy,
    ChildStrategy,
    DeleteRequest,
    FieldError,
    ImpactPreview,
    ImpactWarning,
    MutationPlan,
    PreflightVerdict,
    Severity,
    TaskInfo,
)
from .preflight import (
    DEFAULT_CANCEL_REASON,
    REASON_MAX_LENGTH,
    REASON_MIN_LENGTH,
    preflight_delete,
    validate_reason,
    validate_task_id,
)
from .preview import (
    W_ACTIVE_CANCELLED,
    W_CASCADE_DELETE,
    W_DEPENDENTS_AFFECTED,
    W_FOCUS_CLEARED,
    generate_warnings,
    preview_deletion,
)
from .strategy import apply_plan, plan_deletion

__all__ = [
    # Models
    "CancellationPolicy",
    "ChildStrategy",
    "DeleteRequest",
    "FieldError",
    "ImpactPreview",
    "ImpactWarning",
    "MutationPlan",
    "PreflightVerdict",
    "Severity",
    "TaskInfo",
    # Preflight
    "DEFAULT_CANCEL_REASON",
    "REASON_MIN_LENGTH",
    "REASON_MAX_LENGTH",
    "preflight_delete",
    "validate_reason",
    "validate_task_id",
    # Strategy
    "plan_deletion",
    "apply_plan",
    # Preview
    "W_ACTIVE_CANCELLED",
    "W_CASCADE_DELETE",
    "W_DEPENDENTS_AFFECTED",
    "W_FOCUS_CLEARED",
    "generate_warnings",
    "preview_deletion",
]
