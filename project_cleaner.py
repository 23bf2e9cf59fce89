#!/usr/bin/env python3
"""
Project Cleaner for Skoria

Deletes the artifact directories of the selected projects. With
``keep_executable`` the compiled executables found directly inside the build
profile directories (``release``, ``debug`` and ``<triple>/release|debug``
for cross-compilation) are first moved to ``<project>/executables`` keeping
their profile path, so several profiles never collide.

Each project is handled on its own: a failure while cleaning one project is
recorded in its outcome and never stops the others. A dry run goes through
the same planning and reports the bytes that would be freed without moving
or deleting anything.
"""

import errno
import os
import pathlib
import shutil
import stat
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from project_filter import CleanDecision, KeepReason
from project_scanner import Project, SkoriaError

PRESERVE_DIR = "executables"
PROFILE_DIRS = ("release", "debug")


class OutcomeKind(Enum):
    """Per-project result reported after cleaning"""

    FREED = "freed"
    WOULD_FREE = "would_free"
    SKIPPED_IGNORED = "skipped_ignored"
    SKIPPED_KEEP_SIZE = "skipped_keep_size"
    SKIPPED_KEEP_DAYS = "skipped_keep_days"
    SKIPPED_DESELECTED = "skipped_deselected"
    FAILED = "failed"


_SKIP_KINDS = {
    KeepReason.IGNORED: OutcomeKind.SKIPPED_IGNORED,
    KeepReason.KEEP_SIZE: OutcomeKind.SKIPPED_KEEP_SIZE,
    KeepReason.KEEP_DAYS: OutcomeKind.SKIPPED_KEEP_DAYS,
    KeepReason.DESELECTED: OutcomeKind.SKIPPED_DESELECTED,
}


class PartialDeletionError(SkoriaError):
    """A project's artifact directory could not be (fully) removed"""

    def __init__(self, path: pathlib.Path, cause: "OSError | str"):
        self.path = pathlib.Path(path)
        self.cause = cause
        detail = (cause.strerror or str(cause)) if isinstance(cause, OSError) else cause
        super().__init__(f"Could not clean '{self.path}': {detail}")


@dataclass(frozen=True)
class ExecutableMove:
    """A planned relocation of one executable out of the artifact directory"""

    source: pathlib.Path
    target: pathlib.Path
    size: int


@dataclass(frozen=True)
class CleanOutcome:
    project: Project
    kind: OutcomeKind
    freed: int = 0
    preserved: tuple[ExecutableMove, ...] = ()
    error: Optional[PartialDeletionError] = None


@dataclass(frozen=True)
class CleanReport:
    """All outcomes of a run, in decision order"""

    outcomes: tuple[CleanOutcome, ...]
    dry_run: bool = False

    @property
    def cleaned(self) -> list[CleanOutcome]:
        return [o for o in self.outcomes if o.kind in (OutcomeKind.FREED, OutcomeKind.WOULD_FREE)]

    @property
    def failures(self) -> list[CleanOutcome]:
        return [o for o in self.outcomes if o.kind is OutcomeKind.FAILED]

    @property
    def skipped(self) -> list[CleanOutcome]:
        return [o for o in self.outcomes if o.kind in _SKIP_KINDS.values()]

    @property
    def freed_total(self) -> int:
        return sum(o.freed for o in self.cleaned)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


# ---------------------------------------------------------------------------
# Executable preservation
# ---------------------------------------------------------------------------


def _is_real_dir(path: pathlib.Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def profile_dirs(artifact_dir: pathlib.Path) -> list[pathlib.Path]:
    """Return the build profile directories of an artifact directory.

    Native profiles live directly below it; cross-compiled ones one level
    deeper under the target triple.
    """
    found = [artifact_dir / name for name in PROFILE_DIRS if _is_real_dir(artifact_dir / name)]
    with os.scandir(artifact_dir) as it:
        triples = sorted(e.name for e in it if e.is_dir(follow_symlinks=False) and e.name not in PROFILE_DIRS)
    for triple in triples:
        for name in PROFILE_DIRS:
            candidate = artifact_dir / triple / name
            if _is_real_dir(candidate):
                found.append(candidate)
    return found


def _is_executable(entry: os.DirEntry) -> bool:
    if not entry.is_file(follow_symlinks=False):
        return False
    if os.name == "nt":
        return entry.name.lower().endswith(".exe")
    return bool(entry.stat(follow_symlinks=False).st_mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))


def plan_preservation(project: Project) -> list[ExecutableMove]:
    """List the executables of *project* and where they will be moved to"""
    destination = project.root / PRESERVE_DIR
    moves = []
    for profile in profile_dirs(project.artifact_dir):
        relative = profile.relative_to(project.artifact_dir)
        with os.scandir(profile) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            if _is_executable(entry):
                moves.append(
                    ExecutableMove(
                        source=pathlib.Path(entry.path),
                        target=destination / relative / entry.name,
                        size=entry.stat(follow_symlinks=False).st_size,
                    )
                )
    return moves


def _is_cross_device_error(error: OSError) -> bool:
    return error.errno == errno.EXDEV


def move_executable(move: ExecutableMove):
    """Move one executable; falls back to copy + delete across devices"""
    move.target.parent.mkdir(parents=True, exist_ok=True)
    try:
        move.source.replace(move.target)
    except OSError as e:
        if not _is_cross_device_error(e):
            raise
        shutil.copy2(move.source, move.target)
        move.source.unlink()


# ---------------------------------------------------------------------------
# Cleaner
# ---------------------------------------------------------------------------


def planned_freed(projects: Sequence[Project], keep_executable: bool = False) -> int:
    """Bytes a clean of *projects* frees, using the same preservation plan as the Cleaner"""
    total = 0
    for project in projects:
        try:
            moves = plan_preservation(project) if keep_executable else []
        except OSError:
            # the Cleaner reports this project as failed, freeing nothing
            continue
        total += project.size - sum(m.size for m in moves)
    return total


class Cleaner:
    """Deletes artifact directories of selected projects"""

    def __init__(
        self,
        dry_run: bool = False,
        keep_executable: bool = False,
        workers: int = 0,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[CleanOutcome], None]] = None,
    ):
        self.dry_run = dry_run
        self.keep_executable = keep_executable
        self.workers = workers if workers > 0 else (os.cpu_count() or 1)
        self.cancel_event = cancel_event or threading.Event()
        self.progress_callback = progress_callback

    def clean(self, decisions: Sequence[CleanDecision]) -> CleanReport:
        """Clean every selected project and report an outcome for every decision"""
        selected = [d for d in decisions if d.selected]
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="skoria-clean") as pool:
            results = dict(zip((d.project.root for d in selected), pool.map(self._clean_one, selected)))

        outcomes = []
        for decision in decisions:
            if decision.selected:
                outcomes.append(results[decision.project.root])
            else:
                kind = _SKIP_KINDS.get(decision.reason, OutcomeKind.SKIPPED_DESELECTED)
                outcomes.append(CleanOutcome(decision.project, kind))
        return CleanReport(outcomes=tuple(outcomes), dry_run=self.dry_run)

    def _clean_one(self, decision: CleanDecision) -> CleanOutcome:
        outcome = self.clean_project(decision.project)
        if self.progress_callback:
            self.progress_callback(outcome)
        return outcome

    def clean_project(self, project: Project) -> CleanOutcome:
        """Preserve executables (if requested) and delete the artifact directory"""
        if self.cancel_event.is_set():
            return self._failed(project, "cancelled before cleaning started")

        try:
            moves = plan_preservation(project) if self.keep_executable else []
        except OSError as e:
            return self._failed(project, e)
        freed = project.size - sum(m.size for m in moves)

        if self.dry_run:
            return CleanOutcome(project, OutcomeKind.WOULD_FREE, freed=freed, preserved=tuple(moves))

        try:
            for move in moves:
                move_executable(move)
            shutil.rmtree(project.artifact_dir)
        except OSError as e:
            return self._failed(project, e)
        return CleanOutcome(project, OutcomeKind.FREED, freed=freed, preserved=tuple(moves))

    def _failed(self, project: Project, cause: "OSError | str") -> CleanOutcome:
        error = PartialDeletionError(project.artifact_dir, cause)
        return CleanOutcome(project, OutcomeKind.FAILED, error=error)
