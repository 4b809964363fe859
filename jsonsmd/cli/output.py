"""Rich-based output utilities for the jsonsmd CLI."""

from rich.console import Console
from rich.markup import escape

# Shared consoles; diagnostics go to stderr so stdout stays parseable
console = Console()
err_console = Console(stderr=True)


def print_json(text: str) -> None:
    """Pretty-print a JSON document to stdout."""
    console.print_json(text)


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}", highlight=False)


def print_info(message: str) -> None:
    err_console.print(f"[dim]{escape(message)}[/dim]", highlight=False)
