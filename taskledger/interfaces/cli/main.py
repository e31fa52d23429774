"""Entry point for the taskledger CLI.

Usage:
    python -m taskledger.interfaces.cli.main

Or via installed entry point:
    taskledger <command>
"""

from taskledger.interfaces.cli import app


def main() -> None:
    """Run the taskledger CLI application."""
    app()


if __name__ == "__main__":
    main()
