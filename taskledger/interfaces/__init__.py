"""Interfaces layer for taskledger.

This layer contains adapters for external interactions:
- CLI: Command-line interface using Typer

The interfaces layer is responsible for:
- Accepting user input and validating it
- Calling application services
- Formatting output and mapping results to exit codes
"""

from taskledger.interfaces.cli import app

__all__ = ["app"]
