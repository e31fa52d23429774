"""CLI command groups for taskledger.

Command groups:
- task: Store maintenance (delete/cancel, archive, validate)

Each command group is a Typer app that gets registered
with the main app using app.add_typer().
"""

from taskledger.interfaces.cli.commands import task

__all__ = ["task"]
