"""taskledger - file-backed task tracking for AI coding agents."""

__version__ = "0.4.0"
