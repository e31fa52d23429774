"""CLI interface for taskledger using Typer.

Usage:
    taskledger delete T005 -r "Superseded by T012"        # Cancel a leaf task
    taskledger delete T010 --children cascade --dry-run    # Preview a cascade
    taskledger archive --force                             # Archive done and cancelled tasks
    taskledger validate --fix                              # Repair and restamp the checksum
    taskledger validate                                    # Check store consistency

The CLI is structured as:
- app: Main Typer application
- commands/: Command groups (task)
- common.py: Shared utilities for CLI commands
- main.py: Entry point that runs the app
"""

from typing import Optional

import typer

from taskledger import __version__
from taskledger.domain.deletion import ChildStrategy
from taskledger.interfaces.cli.commands import task
from taskledger.interfaces.cli.common import configure_logging, dir_option, json_option

# Create the main Typer application
app = typer.Typer(
    name="taskledger",
    help="File-backed task tracking for AI coding agents",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"taskledger version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    """taskledger - cancel, archive and validate tasks in a todo.json store."""
    configure_logging(verbose)


# =============================================================================
# Register Command Groups
# =============================================================================

app.add_typer(task.app, name="task")


# =============================================================================
# Top-Level Shortcuts for Common Commands
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
    """Cancel a task (shortcut for 'task delete')."""
    task.delete(
        task_id,
        reason=reason,
        children=children,
        dry_run=dry_run,
        force=force,
        as_json=as_json,
        store_dir=store_dir,
    )


app.command("cancel", help="Alias for 'delete'.")(delete)


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
    """Archive finished tasks (shortcut for 'task archive')."""
    task.archive(
        dry_run=dry_run,
        force=force,
        all_tasks=all_tasks,
        count=count,
        as_json=as_json,
        store_dir=store_dir,
    )


@app.command("validate")
def validate(
    fix: bool = typer.Option(False, "--fix", help="Apply automatic fixes and restamp the checksum"),
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as errors"),
    as_json: bool = json_option,
    store_dir: Optional[str] = dir_option,
) -> None:
    """Check store consistency (shortcut for 'task validate')."""
    task.validate(fix=fix, strict=strict, as_json=as_json, store_dir=store_dir)
