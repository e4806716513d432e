"""
User-facing progress output.

Every stage prints a line before acting and a confirmation or warning after.
Diagnostics go to the standard logging tree instead.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape


class Reporter:
    """Thin wrapper around a rich Console with the workflow's line styles."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(highlight=False)

    def banner(self, title: str) -> None:
        self.console.print()
        self.console.print(f"[bold]==================== {escape(title)} ====================[/bold]")

    def step(self, message: str) -> None:
        self.console.print(f"[bold cyan]==>[/bold cyan] {escape(message)}")

    def detail(self, message: str) -> None:
        self.console.print(f"    {escape(message)}")

    def raw(self, text: str) -> None:
        text = text.rstrip("\n")
        if text:
            self.console.print(escape(text))

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]WARN:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]ERROR:[/bold red] {escape(message)}")

    def success(self, message: str) -> None:
        self.console.print()
        self.console.print(f"[green]✅ {escape(message)}[/green]")

    def progress_tick(self) -> None:
        self.console.print(".", end="")

    def progress_end(self) -> None:
        self.console.print()
