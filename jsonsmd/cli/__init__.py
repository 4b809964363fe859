"""Command-line interface."""

from jsonsmd.cli.main import main

__all__ = ["main"]
