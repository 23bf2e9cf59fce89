#!/usr/bin/env python3
"""
Console UI Module using Rich

Provides the console interface for Skoria: styled messages, header panels,
progress displays, confirmation prompts and a numbered multi-select used by
interactive mode.
"""

import re
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.prompt import Confirm, Prompt

_RANGE = re.compile(r"^(\d+)-(\d+)$")


class ConsoleUI:
    """Console UI handler using Rich"""

    def __init__(self, force_terminal: Optional[bool] = None, console: Optional[Console] = None):
        """Initialize console with optional terminal forcing or an explicit console"""
        self.console = console or Console(force_terminal=force_terminal, highlight=False)

    # Basic styled output methods
    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green")

    def print_error(self, message: str):
        """Print error message in red"""
        self.console.print(message, style="red bold")

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow")

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan")

    def print_plain(self, message: str):
        """Print message in plain white"""
        self.console.print(message, style="white")

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{title}[/bold]\n[dim]{subtitle}[/dim]"
        else:
            header_text = f"[bold]{title}[/bold]"

        panel = Panel(header_text, box=box.ROUNDED, padding=(0, 1))
        self.console.print(panel)

    # Progress bar management
    def create_progress(self) -> Progress:
        """Create a Rich progress context manager for batch operations"""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )

    def create_activity_progress(self) -> Progress:
        """Create a Rich progress context manager for activity-only display (no counts)"""
        return Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )

    # Interactive prompts
    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask for yes/no confirmation"""
        return Confirm.ask(question, default=default, console=self.console)

    def select_from_list(
        self, items: list[str], preselected: Optional[list[bool]] = None, title: str = "Select items"
    ) -> set[int]:
        """Let the user toggle items of a list; returns the indices marked at the end

        Numbers and ranges (``1,3,5-7``) toggle items, ``a`` selects all,
        ``n`` clears the selection, Enter accepts and ``q`` aborts with nothing
        selected.
        """
        if not items:
            return set()
        marks = list(preselected) if preselected is not None else [False] * len(items)

        while True:
            self.console.print(f"\n[cyan]{title}:[/cyan]")
            for i, item in enumerate(items, 1):
                mark = "[green]x[/green]" if marks[i - 1] else " "
                self.console.print(f"  {i:>3}. \\[{mark}] {item}")

            response = Prompt.ask(
                "Toggle numbers (e.g. 1,3,5-7), 'a' all, 'n' none, Enter to accept, 'q' to abort",
                default="",
                show_default=False,
                console=self.console,
            )
            response = response.strip().lower()

            if response == "":
                return {i for i, marked in enumerate(marks) if marked}
            if response == "q":
                return set()
            if response == "a":
                marks = [True] * len(items)
                continue
            if response == "n":
                marks = [False] * len(items)
                continue

            try:
                indices = _parse_indices(response)
            except ValueError:
                self.print_error("Invalid selection. Please try again.")
                continue
            for index in indices:
                if 0 <= index < len(items):
                    marks[index] = not marks[index]
                else:
                    self.print_error(f"No item number {index + 1}.")


def _parse_indices(response: str) -> list[int]:
    """Parse "1,3 5-7" into zero-based indices"""
    indices = []
    for part in re.split(r"[,\s]+", response):
        if not part:
            continue
        match = _RANGE.match(part)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if start > end:
                raise ValueError(part)
            indices.extend(range(start - 1, end))
        else:
            indices.append(int(part) - 1)
    return indices
