"""Shared Rich console and prompt style for the CLI."""

import questionary
from rich.console import Console

console = Console()
error_console = Console(stderr=True)

QUESTIONARY_STYLE = questionary.Style(
    [
        ("qmark", "fg:#5f819d"),
        ("question", "fg:#e0e0e0 bold"),
        ("answer", "fg:#FF9D00 bold"),
        ("instruction", "fg:#e0e0e0"),
        ("text", "fg:#e0e0e0"),
    ]
)


def report_step(message: str) -> None:
    """Print a progress message for a long running command."""
    console.print(f"[cyan]→[/cyan] {message}")


def confirm(message: str) -> bool:
    """Ask a yes/no question, defaulting to no."""
    answer = questionary.confirm(message, default=False, style=QUESTIONARY_STYLE).ask()
    return bool(answer)
