# tests/test_preflight.py

import pytest

from taskledger.domain.deletion import (
    DEFAULT_CANCEL_REASON,
    CancellationPolicy,
    ChildStrategy,
    DeleteRequest,
    preflight_delete,
    validate_reason,
)
from taskledger.domain.shared import ErrorCode
from taskledger.domain.task import TaskStore


def _check(store: TaskStore, policy: CancellationPolicy | None = None, **request):
    request.setdefault("reason", "No longer needed")
    return preflight_delete(store, DeleteRequest(**request), policy or CancellationPolicy())


@pytest.mark.parametrize("task_id", ["", "5", "t001", "T01", "T001; rm -rf /", "T001\n"])
def test_malformed_ids_are_invalid_input(store: TaskStore, task_id: str) -> None:
    verdict = _check(store, task_id=task_id)

    assert not verdict.success
    assert verdict.error_code == ErrorCode.INVALID_INPUT
    assert verdict.validation_errors[0].field == "taskId"


def test_unknown_task_is_not_found(store: TaskStore) -> None:
    verdict = _check(store, task_id="T999")

    assert verdict.error_code == ErrorCode.NOT_FOUND


def test_done_task_is_rejected(store: TaskStore) -> None:
    verdict = _check(store, task_id="T006")

    assert not verdict.can_proceed
    assert verdict.error_code == ErrorCode.TASK_COMPLETED
    assert verdict.validation_errors[0].field == "status"


def test_cancelled_task_is_a_successful_no_op(store: TaskStore) -> None:
    verdict = _check(store, task_id="T007")

    assert verdict.success
    assert verdict.no_change
    assert not verdict.can_proceed
    assert verdict.error_code is None


def test_status_is_checked_before_reason(store: TaskStore) -> None:
    # A bad reason on an already-completed task still reports the status.
    verdict = _check(store, task_id="T006", reason="x")

    assert verdict.error_code == ErrorCode.TASK_COMPLETED


def test_reason_required_by_default(store: TaskStore) -> None:
    verdict = _check(store, task_id="T001", reason=None)

    assert verdict.error_code == ErrorCode.INVALID_INPUT
    assert verdict.validation_errors[0].field == "reason"


def test_missing_reason_gets_default_when_not_required(store: TaskStore) -> None:
    verdict = _check(
        store, CancellationPolicy(require_reason=False), task_id="T001", reason=None
    )

    assert verdict.can_proceed
    assert verdict.reason == DEFAULT_CANCEL_REASON


@pytest.mark.parametrize(
    "reason",
    ["abc", "x" * 301, "drop it; rm -rf /", "use $(whoami)", "line one\nline two", "won't do"],
)
def test_bad_reasons_are_rejected(reason: str) -> None:
    assert validate_reason(reason, required=True) is not None


def test_plain_reason_passes() -> None:
    assert validate_reason("Scope cut from v2, see T005", required=True) is None


def test_block_on_parent_is_rejected_even_with_force(store: TaskStore) -> None:
    verdict = _check(store, task_id="T002", strategy=ChildStrategy.BLOCK, force=True)

    assert verdict.error_code == ErrorCode.HAS_CHILDREN
    assert verdict.task_info.child_count == 2


def test_default_strategy_comes_from_policy(store: TaskStore) -> None:
    orphan_default = CancellationPolicy(default_child_strategy=ChildStrategy.ORPHAN)

    assert _check(store, task_id="T002").error_code == ErrorCode.HAS_CHILDREN
    assert _check(store, orphan_default, task_id="T002").strategy == ChildStrategy.ORPHAN


def test_cascade_disabled_only_matters_for_parents(store: TaskStore) -> None:
    no_cascade = CancellationPolicy(allow_cascade=False)

    parent = _check(store, no_cascade, task_id="T010", strategy=ChildStrategy.CASCADE)
    leaf = _check(store, no_cascade, task_id="T001", strategy=ChildStrategy.CASCADE)

    assert parent.error_code == ErrorCode.CASCADE_DISABLED
    assert leaf.can_proceed


def test_cascade_over_threshold_needs_force(store: TaskStore) -> None:
    strict = CancellationPolicy(cascade_confirm_threshold=2)

    refused = _check(store, strict, task_id="T020", strategy=ChildStrategy.CASCADE)
    forced = _check(store, strict, task_id="T020", strategy=ChildStrategy.CASCADE, force=True)

    assert refused.error_code == ErrorCode.CASCADE_LIMIT_EXCEEDED
    assert refused.task_info.descendant_count == 3
    assert forced.can_proceed
    assert forced.task_info.descendant_count == 3


def test_leaf_passes_with_task_info(store: TaskStore) -> None:
    verdict = _check(store, task_id="T012")

    assert verdict.success and verdict.can_proceed
    assert verdict.strategy == ChildStrategy.BLOCK
    assert verdict.reason == "No longer needed"
    assert verdict.task_info.is_leaf
    assert verdict.validation_errors == []
