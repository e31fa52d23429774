"""Task maintenance CLI commands.

Commands that change or check the store as a whole: cancelling a task
(with its children), archiving finished tasks, and validating (and
repairing) the store.
"""

from typing import Optional

import typer

from taskledger.application import ArchiveOutcome, DeletionOutcome
from taskledger.domain.archive import ArchiveMode
from taskledger.domain.deletion import ChildStrategy
from taskledger.domain.shared import (
    EXIT_CODES,
    EXIT_GENERAL_ERROR,
    EXIT_NO_CHANGE,
    Err,
    ErrorCode,
    RollbackError,
)
from taskledger.domain.task import TaskStatus, check_integrity, count_by_status
from taskledger.interfaces.cli.common import (
    dir_option,
    emit_json,
    fail,
    json_option,
    open_ledger,
    print_error,
    print_header,
    print_impact_warnings,
    print_info,
    print_separator,
    print_success,
    print_warning,
)

app = typer.Typer(help="Task maintenance commands")


# =============================================================================
# Output Formatting Helpers
# =============================================================================


def format_deletion_output(outcome: DeletionOutcome) -> str:
    """Format a dry-run preview for display."""
    preview = outcome.preview
    lines = []

    lines.append("=" * 60)
    lines.append(f"DRY RUN - cancel {outcome.task_id} ({outcome.strategy.value})")
    lines.append("=" * 60)

    if preview is not None:
        lines.append(f"\nWould cancel {preview.total_count} task(s):")
        for task in preview.affected_tasks:
            lines.append(f"  - {task.id} [{task.status.value}] {task.title}")
        lines.append(
            f"\nWork lost: {preview.pending_lost} pending, "
            f"{preview.active_lost} active, {preview.blocked_lost} blocked"
        )

    if outcome.dependents_affected:
        lines.append(f"Dependents affected: {', '.join(outcome.dependents_affected)}")
    if outcome.orphaned_children:
        lines.append(f"Children orphaned: {', '.join(outcome.orphaned_children)}")
    if outcome.focus_cleared:
        lines.append("Focus would be cleared")

    return "\n".join(lines)


def _print_deletion(outcome: DeletionOutcome) -> None:
    if outcome.dry_run:
        typer.echo(format_deletion_output(outcome))
        if outcome.warnings:
            typer.echo("\nWarnings:")
            print_impact_warnings(outcome.warnings)
        typer.echo("")
        print_info("No changes made.")
        return

    print_success(
        f"Cancelled {outcome.task_id} ({outcome.strategy.value}): "
        f"{len(outcome.affected_tasks)} task(s)"
    )
    if len(outcome.affected_tasks) > 1:
        typer.echo(f"  Affected: {', '.join(outcome.affected_tasks)}")
    if outcome.orphaned_children:
        typer.echo(f"  Orphaned: {', '.join(outcome.orphaned_children)}")
    if outcome.dependents_affected:
        typer.echo(f"  Dependencies pruned from: {', '.join(outcome.dependents_affected)}")
    if outcome.focus_cleared:
        typer.echo("  Focus cleared")
    if outcome.warnings:
        print_impact_warnings(outcome.warnings)


def _print_archive(outcome: ArchiveOutcome) -> None:
    if not outcome.archived:
        if outcome.mode == ArchiveMode.RETENTION:
            print_info(
                f"Nothing to archive (done tasks: {outcome.days_until_archive} day(s), "
                f"keeping {outcome.preserve_recent_count} most recent; cancelled tasks: "
                f"{outcome.cancelled_days_until_archive} day(s))"
            )
        else:
            print_info("Nothing to archive")
        return

    verb = "Would archive" if outcome.dry_run else "Archived"
    print_success(
        f"{verb} {outcome.count} task(s): {len(outcome.completed_ids)} done, "
        f"{len(outcome.cancelled_ids)} cancelled"
    )
    for task in outcome.archived:
        typer.echo(f"  - {task.id} [{task.status.value}] {task.title}")
    if outcome.dry_run:
        print_info("No changes made.")


# =============================================================================
# Commands
# =============================================================================


@app.command("delete")
def delete(
    task_id: str = typer.Argument(..., help="Task to cancel, e.g. T005"),
    reason: Optional[str] = typer.Option(
        None, "--reason", "-r", help="Why the task is being cancelled"
    ),
    children: Optional[ChildStrategy] = typer.Option(
        None,
        "--children",
        "-c",
        help="What to do with child tasks (default from config)",
        case_sensitive=False,
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the impact, change nothing"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Confirm a cascade above the configured threshold"
    ),
    as_json: bool = json_option,
    store_dir: Optional[str] = dir_option,
) -> None:
    """Cancel a task.

    Children are blocked (the default), cancelled with the task (cascade)
    or detached to the top level (orphan). Dependency references to the
    cancelled tasks are removed from every other task.
    """
    ledger = open_ledger(store_dir)
    service = ledger.deletion_service()

    try:
        result = service.delete_task(
            task_id, children, reason, dry_run=dry_run, force=force
        )
    except RollbackError as e:
        print_error(str(e))
        raise typer.Exit(EXIT_GENERAL_ERROR) from e

    if isinstance(result, Err):
        fail(result.error, as_json)

    outcome = result.value
    if as_json:
        emit_json(outcome)
    elif outcome.status == "no_change":
        print_info(f"Task {task_id} is already cancelled; nothing to do")
    else:
        _print_deletion(outcome)

    if outcome.status == "no_change":
        raise typer.Exit(EXIT_NO_CHANGE)


@app.command("archive")
def archive(
    dry_run: bool = typer.Option(False, "--dry-run", help="List archivable tasks only"),
    force: bool = typer.Option(
        False, "--force", help="Ignore the age rules (still keeps the most recent done tasks)"
    ),
    all_tasks: bool = typer.Option(
        False, "--all", help="Archive every done and cancelled task"
    ),
    count: Optional[int] = typer.Option(
        None, "--count", min=0, help="Override maxCompletedTasks for this run"
    ),
    as_json: bool = json_option,
    store_dir: Optional[str] = dir_option,
) -> None:
    """Move done and cancelled tasks that are past retention into the archive."""
    ledger = open_ledger(store_dir)

    if all_tasks:
        mode = ArchiveMode.ALL
    elif force:
        mode = ArchiveMode.FORCE
    else:
        mode = ArchiveMode.RETENTION

    try:
        result = ledger.archive_service().archive(
            dry_run=dry_run, mode=mode, max_completed=count
        )
    except RollbackError as e:
        print_error(str(e))
        raise typer.Exit(EXIT_GENERAL_ERROR) from e

    if isinstance(result, Err):
        fail(result.error, as_json)

    if as_json:
        emit_json(result.value)
    else:
        _print_archive(result.value)


@app.command("validate")
def validate(
    fix: bool = typer.Option(False, "--fix", help="Apply automatic fixes and restamp the checksum"),
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as errors"),
    as_json: bool = json_option,
    store_dir: Optional[str] = dir_option,
) -> None:
    """Check the store against its consistency rules.

    Read-only unless --fix is given. A checksum that no longer matches the
    tasks is reported here rather than refused.
    """
    ledger = open_ledger(store_dir)
    repository = ledger.repository()

    fixes: list[str] = []
    if fix:
        try:
            repaired = ledger.repair_service().repair()
        except RollbackError as e:
            print_error(str(e))
            raise typer.Exit(EXIT_GENERAL_ERROR) from e
        if isinstance(repaired, Err):
            fail(repaired.error, as_json)
        fixes = repaired.value.fixes

    checksum = repository.checksum_status()
    if isinstance(checksum, Err):
        fail(checksum.error, as_json)
    result = repository.load(verify_checksum=False)
    if isinstance(result, Err):
        fail(result.error, as_json)

    store = result.value
    found = check_integrity(store, checksum.value)
    errors = [v for v in found if v.severity == "error" or strict]
    warnings = [v for v in found if v.severity == "warning" and not strict]

    if as_json:
        emit_json(
            {
                "valid": not errors,
                "taskCount": len(store.tasks),
                "version": store.meta.version,
                "checksum": checksum.value.model_dump(mode="json"),
                "violations": [v.model_dump(mode="json") for v in errors],
                "warnings": [v.model_dump(mode="json") for v in warnings],
                "fixes": fixes,
            }
        )
    else:
        counts = count_by_status(store.tasks)
        print_header(f"STORE {ledger.paths.todo_file}")
        typer.echo(
            f"{len(store.tasks)} task(s): "
            + ", ".join(f"{counts[status]} {status.value}" for status in TaskStatus)
        )
        typer.echo(f"Schema version: {store.meta.version or 'missing'}")
        if not checksum.value.stored:
            typer.echo("Checksum: not stamped")
        elif checksum.value.matches:
            typer.echo(f"Checksum: {checksum.value.stored} (verified)")
        else:
            typer.echo(
                f"Checksum: {checksum.value.stored} (tasks hash to {checksum.value.computed})"
            )
        print_separator("-")
        for applied in fixes:
            print_info(f"Fixed: {applied}")
        if not errors:
            print_success("Store is consistent")
        for violation in errors:
            print_error(f"[{violation.rule}] {violation.message}")
        for violation in warnings:
            print_warning(f"[{violation.rule}] {violation.message}")

    if errors:
        raise typer.Exit(EXIT_CODES[ErrorCode.VALIDATION_FAILED])
