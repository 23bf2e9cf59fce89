#!/usr/bin/env python3
"""
Skoria: Ancient Greek σκωρία (slag, the residue of smelting)

Finds the ``target`` build directories of Cargo projects anywhere below a
directory, shows how much space they take and when they were last built,
and deletes the ones that are not excluded by the retention criteria.

Usage:
    skoria [DIR]                       # Scan, confirm and clean
    skoria ~/code --dry-run            # Only report what would be freed
    skoria ~/code -s 100MB -d 30       # Keep small and recently built projects
    skoria ~/code -i                   # Pick the projects interactively
    skoria ~/code -e                   # Keep compiled executables
    cargo skoria [DIR]                 # Same, as a cargo subcommand
"""

import argparse
import pathlib
import signal
import sys
import threading
from typing import Optional, Sequence

from rich import box
from rich.markup import escape
from rich.table import Table

from auxiliary import format_bytes, format_path_for_display, format_timestamp, parse_size
from console_ui import ConsoleUI
from project_cleaner import Cleaner, CleanOutcome, CleanReport, planned_freed
from project_filter import (
    CleanDecision,
    KeepReason,
    apply_filters,
    apply_selection,
    kept_projects,
    pass_through_selector,
    selected_projects,
)
from project_scanner import ConfigError, Project, ProjectRegistry, ProjectScanner, ScanCancelled
from skoria_config import RunOptions, SkoriaSettings

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

_REASON_LABELS = {
    KeepReason.IGNORED: "keep (ignored)",
    KeepReason.KEEP_SIZE: "keep (small)",
    KeepReason.KEEP_DAYS: "keep (recent)",
    KeepReason.DESELECTED: "keep (deselected)",
}


# ---------------------------------------------------------------------------
# Skoria
# ---------------------------------------------------------------------------


class Skoria:
    """Main application class for the Skoria target directory cleaner."""

    def __init__(self, args: argparse.Namespace, ui: Optional[ConsoleUI] = None):
        self.args = args
        self.ui = ui or ConsoleUI()
        self.cancel_event = threading.Event()

    # -- signal handling ----------------------------------------------------

    def _signal_handler(self, signum, frame):
        if self.cancel_event.is_set():
            sys.exit(EXIT_INTERRUPTED)
        self.cancel_event.set()
        self.ui.print_warning("\nShutdown requested... press Ctrl+C again to force quit.")

    # -- scanning ------------------------------------------------------------

    def scan(self, options: RunOptions) -> ProjectRegistry:
        root = options.scan.root
        self.ui.print_header("Skoria", f"Scanning {format_path_for_display(str(root))} for projects")

        progress = self.ui.create_activity_progress()
        with progress:
            task = progress.add_task("Scanning for projects...", total=None)

            def on_progress(walked: int):
                if walked % 200 == 0:
                    progress.update(task, description=f"Scanning for projects... {walked:,} dirs")

            scanner = ProjectScanner(options.scan, self.cancel_event, on_progress)
            registry = scanner.scan()

        if options.verbose:
            for error in registry.errors:
                self.ui.print_warning(str(error))
        return registry

    # -- selection -------------------------------------------------------------

    def select(self, candidates: Sequence[Project], context: Sequence[Project]) -> set[pathlib.Path]:
        """Interactive selector: cleanable projects first and preselected"""
        projects = [*candidates, *context]
        items = [
            f"[bold]{escape(p.name)}[/bold]: {format_bytes(p.size)} ({format_timestamp(p.last_modified)}), "
            f"{escape(format_path_for_display(str(p.root)))}"
            for p in projects
        ]
        preselected = [True] * len(candidates) + [False] * len(context)
        chosen = self.ui.select_from_list(items, preselected, title="Select projects to clean")
        return {projects[i].root for i in chosen}

    # -- reporting -----------------------------------------------------------

    def report(self, decisions: Sequence[CleanDecision], keep_executable: bool = False):
        table = Table(title="Projects", box=box.ROUNDED, show_lines=False)
        table.add_column("Project", style="bold", min_width=12)
        table.add_column("Size", justify="right", style="yellow", min_width=10)
        table.add_column("Last build", style="dim", min_width=16)
        table.add_column("Path", style="dim")
        table.add_column("Status", min_width=10)

        for decision in decisions:
            project = decision.project
            status = "[green]clean[/green]" if decision.selected else _REASON_LABELS.get(decision.reason, "keep")
            table.add_row(
                escape(project.name),
                format_bytes(project.size),
                format_timestamp(project.last_modified),
                escape(format_path_for_display(str(project.root))),
                status,
            )

        self.ui.console.print(table)
        self.ui.console.print()

        selected = selected_projects(decisions)
        kept = kept_projects(decisions)
        self.ui.print_info(
            f"Selected {len(selected)}/{len(decisions)} projects, "
            f"cleaning will free: [bold]{format_bytes(planned_freed(selected, keep_executable))}[/bold]. "
            f"Keeping: {format_bytes(sum(p.size for p in kept))}"
        )

    def summary(self, report: CleanReport):
        """Show per-project results, the total and the failures"""
        self.ui.console.print()
        verb = "Would free" if report.dry_run else "Freed"
        for outcome in report.cleaned:
            line = f"  {verb} {format_bytes(outcome.freed):>10}  {format_path_for_display(str(outcome.project.root))}"
            if outcome.preserved:
                line += f"  [dim]({len(outcome.preserved)} executables kept)[/dim]"
            self.ui.print_plain(line)

        if report.dry_run:
            self.ui.print_info(f"Dry run. Not doing any cleanup. Would free {format_bytes(report.freed_total)}")
        else:
            self.ui.print_success(f"Reclaimed [bold]{format_bytes(report.freed_total)}[/bold] of disk space")

        if report.failures:
            self.ui.print_error(f"Failed to clean {len(report.failures)} projects:")
            for outcome in report.failures:
                self.ui.print_error(f"    {format_path_for_display(str(outcome.project.root))}: {outcome.error}")

    # -- cleaning ------------------------------------------------------------

    def clean(self, options: RunOptions, decisions: Sequence[CleanDecision]) -> CleanReport:
        selected = selected_projects(decisions)
        progress = self.ui.create_progress()
        with progress:
            description = "Measuring" if options.dry_run else "Deleting target directories"
            task = progress.add_task(description, total=len(selected))

            def on_outcome(outcome: CleanOutcome):
                progress.advance(task)

            cleaner = Cleaner(
                dry_run=options.dry_run,
                keep_executable=options.keep_executable,
                workers=options.scan.workers,
                cancel_event=self.cancel_event,
                progress_callback=on_outcome,
            )
            return cleaner.clean(decisions)

    # -- main entry point ----------------------------------------------------

    def run(self) -> int:
        previous = signal.signal(signal.SIGINT, self._signal_handler)
        try:
            return self._run()
        finally:
            signal.signal(signal.SIGINT, previous)

    def _run(self) -> int:
        try:
            settings = SkoriaSettings.load(self.args.config)
            options = RunOptions.from_args(self.args, settings)
            registry = self.scan(options)
        except ConfigError as e:
            self.ui.print_error(str(e))
            return EXIT_FAILURE
        except ScanCancelled:
            self.ui.print_warning("Scan cancelled")
            return EXIT_INTERRUPTED

        if len(registry) == 0:
            self.ui.print_info("No projects with a target directory found.")
            return EXIT_OK

        decisions = apply_filters(registry.by_size(), options.criteria)
        selector = self.select if options.interactive else pass_through_selector
        decisions = apply_selection(decisions, selector)
        self.report(decisions, keep_executable=options.keep_executable)

        if not selected_projects(decisions):
            self.ui.print_info("Nothing selected")
            return EXIT_OK

        if not options.dry_run and not options.assume_yes:
            self.ui.console.print()
            if not self.ui.confirm("Clean the project directories shown above?", default=False):
                self.ui.print_info("Cleanup cancelled")
                return EXIT_OK

        report = self.clean(options, decisions)
        self.summary(report)

        if self.cancel_event.is_set():
            return EXIT_INTERRUPTED
        if report.has_failures:
            return EXIT_FAILURE
        return EXIT_OK


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _size_arg(value: str) -> int:
    try:
        return parse_size(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid size {value!r}: {e}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skoria",
        description="Skoria: clean the target directories of Cargo projects",
    )
    parser.add_argument("root_dir", nargs="?", default=".", metavar="DIR", help="Directory to search for projects")
    parser.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation before cleaning")
    parser.add_argument(
        "-s",
        "--keep-size",
        type=_size_arg,
        default=None,
        metavar="SIZE",
        help="Keep projects whose target dir is smaller than SIZE (e.g. 10MB, 1GiB); "
        "KB/MB/GB are powers of 1000, KiB/MiB/GiB and K/M/G powers of 1024",
    )
    parser.add_argument(
        "-d",
        "--keep-days",
        type=int,
        default=None,
        metavar="DAYS",
        help="Keep projects built within the last DAYS days (judged by target dir contents)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Only report the space that would be freed")
    parser.add_argument(
        "-t", "--threads", type=int, default=None, metavar="THREADS", help="Worker threads for scanning (0 = auto)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show access errors that occur while scanning")
    parser.add_argument("-i", "--interactive", action="store_true", help="Pick the projects to clean interactively")
    parser.add_argument(
        "-e",
        "--keep-executable",
        action="store_true",
        help="Move compiled executables out of target/ into executables/ before cleaning",
    )
    parser.add_argument(
        "--skip", action="append", default=[], metavar="PATH", help="Directory not to scan at all (repeatable)"
    )
    parser.add_argument(
        "--ignore",
        action="append",
        default=[],
        metavar="PATH",
        help="Directory whose projects are kept by default (repeatable)",
    )
    parser.add_argument("--config", type=pathlib.Path, default=None, metavar="FILE", help="Settings file to use")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    # Invoked as `cargo skoria`: cargo passes the subcommand name first
    if argv and argv[0] == "skoria":
        argv = argv[1:]
    args = build_parser().parse_args(argv)
    return Skoria(args).run()


if __name__ == "__main__":
    sys.exit(main())
