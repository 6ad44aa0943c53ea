"""Console output for PyDeploy commands."""

import json
import sys
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape


class OutputFormatter:
    """Prints user-facing messages.

    A quiet formatter prints nothing except errors, which makes it the
    no-op collaborator for tests and library use.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(escape(message))

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(escape(message))

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def warning(self, message: str) -> None:
        if self.quiet:
            return
        self.err_console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]✗ Error:[/red] {escape(message)}")

    def output_json(self, data: Any) -> None:
        """Write data as JSON to stdout (used with --json)."""
        sys.stdout.write(json.dumps(data, indent=2) + "\n")
