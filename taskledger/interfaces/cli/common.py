"""Shared utilities for taskledger CLI commands.

This module provides common utilities used across CLI commands:
- Store directory option and ledger wiring
- Formatted output helpers (error, success, info, headers)
- JSON output and exit-code mapping for Result values
"""

import json
import logging
from typing import Any, NoReturn

import typer
from pydantic import BaseModel

from taskledger.config import STORE_DIR_ENV
from taskledger.domain.deletion import ImpactWarning, Severity
from taskledger.domain.shared import OperationError
from taskledger.ledger import Ledger

# Reusable options for CLI commands
# Usage: def my_command(store_dir: Optional[str] = dir_option) -> None:
dir_option = typer.Option(
    None,
    "--dir",
    "-d",
    help=f"Store directory (or set {STORE_DIR_ENV} env var; default ./.claude)",
    envvar=STORE_DIR_ENV,
)

json_option = typer.Option(False, "--json", help="Print machine-readable JSON instead of text")

_SEVERITY_COLORS = {
    Severity.HIGH: typer.colors.RED,
    Severity.MEDIUM: typer.colors.YELLOW,
    Severity.LOW: typer.colors.BLUE,
}


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def open_ledger(store_dir: str | None) -> Ledger:
    """Open the store directory, exiting with code 3 if it has no store."""
    ledger = Ledger.open(store_dir)
    if not ledger.repository().exists():
        print_error(f"No task store at {ledger.paths.todo_file}")
        raise typer.Exit(3)
    return ledger


def print_error(msg: str) -> None:
    """Print a formatted error message.

    Args:
        msg: Error message to display
    """
    typer.echo(typer.style(f"Error: {msg}", fg=typer.colors.RED), err=True)


def print_success(msg: str) -> None:
    typer.echo(typer.style(msg, fg=typer.colors.GREEN))


def print_info(msg: str) -> None:
    typer.echo(typer.style(msg, fg=typer.colors.BLUE))


def print_warning(msg: str) -> None:
    typer.echo(typer.style(f"Warning: {msg}", fg=typer.colors.YELLOW))


def print_separator(char: str = "=", width: int = 60) -> None:
    """Print a separator line.

    Args:
        char: Character to use for separator
        width: Width of the separator line
    """
    typer.echo(char * width)


def print_header(title: str, width: int = 60) -> None:
    """Print a formatted header with separators."""
    print_separator("=", width)
    typer.echo(title)
    print_separator("=", width)


def print_impact_warnings(warnings: list[ImpactWarning]) -> None:
    for warning in warnings:
        label = typer.style(
            f"[{warning.severity.value.upper()}]", fg=_SEVERITY_COLORS[warning.severity]
        )
        typer.echo(f"  {label} {warning.code}: {warning.message}")


def emit_json(payload: BaseModel | dict[str, Any]) -> None:
    """Print a model (camelCase keys) or dict as indented JSON on stdout."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True, mode="json")
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def fail(error: OperationError, as_json: bool = False) -> NoReturn:
    """Report a structured error and exit with its mapped code.

    Raises:
        typer.Exit: always.
    """
    if as_json:
        emit_json(
            {
                "success": False,
                "error": {
                    "code": error.code.value,
                    "field": error.field,
                    "message": error.message,
                    "recoverable": error.recoverable,
                    "exitCode": error.exit_code,
                },
            }
        )
    else:
        print_error(str(error))
    raise typer.Exit(error.exit_code)


__all__ = [
    "dir_option",
    "json_option",
    "configure_logging",
    "open_ledger",
    "print_error",
    "print_success",
    "print_info",
    "print_separator",
    "print_header",
    "print_impact_warnings",
    "emit_json",
    "fail",
]
