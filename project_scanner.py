#!/usr/bin/env python3
"""
Project Scanner for Skoria

Walks a directory tree with a fixed pool of worker threads looking for Cargo
projects (a directory holding a ``Cargo.toml``) that have a ``target``
directory next to the manifest. Every such artifact directory is measured
(total bytes and newest file modification time) and recorded as a Project in
an append-only registry.

Work is distributed through a shared queue: walking one directory and
measuring one artifact directory are independent units, so deep trees never
grow the call stack and results do not depend on worker completion order.
"""

import os
import pathlib
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Optional

from auxiliary import canonical_path
from path_filter import PathFilter, PathVerdict

MARKER_FILE = "Cargo.toml"
ARTIFACT_DIR = "target"
DEFAULT_SKIP_NAMES = frozenset({".git", ".cargo"})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SkoriaError(Exception):
    """Base class for all Skoria errors."""


class ConfigError(SkoriaError):
    """Raised when the run configuration is unusable (e.g. unreadable root)."""


class ScanCancelled(SkoriaError):
    """Raised when a scan was interrupted through its cancellation token."""


class AccessError(SkoriaError):
    """A single filesystem entry could not be read. Recorded, never raised."""

    def __init__(self, path: pathlib.Path, operation: str, cause: OSError):
        self.path = pathlib.Path(path)
        self.operation = operation
        self.cause = cause
        super().__init__(f"Error {operation}: '{self.path}'  {cause.strerror or cause}")


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScanConfig:
    """Immutable scan input"""

    root: pathlib.Path
    skip_paths: frozenset[pathlib.Path] = frozenset()
    ignore_paths: frozenset[pathlib.Path] = frozenset()
    workers: int = 0
    verbose: bool = False
    skip_names: frozenset[str] = DEFAULT_SKIP_NAMES

    @property
    def worker_count(self) -> int:
        """Number of worker threads; 0 maps to the available parallelism"""
        if self.workers > 0:
            return self.workers
        return os.cpu_count() or 1


@dataclass(frozen=True)
class Project:
    """A discovered project and the measured state of its artifact directory"""

    root: pathlib.Path
    artifact_dir: pathlib.Path
    size: int
    last_modified: float
    file_count: int = 0
    ignored: bool = False

    @property
    def name(self) -> str:
        return self.root.name or str(self.root)


class ProjectRegistry:
    """Append-only, thread-safe collection of projects and access errors.

    Projects are keyed by canonical root path; a second project with the same
    root is dropped. Iteration order is sorted by root path.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._projects: dict[pathlib.Path, Project] = {}
        self._errors: list[AccessError] = []

    def add(self, project: Project) -> bool:
        """Add a project; returns False if its root is already registered"""
        with self._lock:
            if project.root in self._projects:
                return False
            self._projects[project.root] = project
            return True

    def record_error(self, error: AccessError):
        with self._lock:
            self._errors.append(error)

    @property
    def projects(self) -> list[Project]:
        with self._lock:
            return sorted(self._projects.values(), key=lambda p: str(p.root))

    @property
    def errors(self) -> list[AccessError]:
        with self._lock:
            return sorted(self._errors, key=lambda e: (str(e.path), e.operation))

    @property
    def total_size(self) -> int:
        return sum(p.size for p in self.projects)

    def by_size(self) -> list[Project]:
        """Projects sorted by ascending size (ties broken by path)"""
        return sorted(self.projects, key=lambda p: (p.size, str(p.root)))

    def __len__(self) -> int:
        with self._lock:
            return len(self._projects)

    def __iter__(self) -> Iterator[Project]:
        return iter(self.projects)

    def __contains__(self, root: object) -> bool:
        with self._lock:
            return root in self._projects


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------


def measure_directory(
    path: pathlib.Path, on_error: Optional[Callable[[AccessError], None]] = None
) -> tuple[int, float, int]:
    """Return (total_bytes, newest_mtime, file_count) for a directory tree.

    Only regular files are counted and symbolic links are never followed.
    Entries that cannot be read are reported to *on_error* and left out.
    """
    total = 0
    newest = 0.0
    count = 0
    pending = [pathlib.Path(path)]

    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            if on_error:
                on_error(AccessError(current, "reading directory", e))
            continue

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    pending.append(pathlib.Path(entry.path))
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
                st = entry.stat(follow_symlinks=False)
            except OSError as e:
                if on_error:
                    on_error(AccessError(pathlib.Path(entry.path), "reading metadata", e))
                continue
            total += st.st_size
            count += 1
            if st.st_mtime > newest:
                newest = st.st_mtime

    return total, newest, count


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class JobKind(Enum):
    WALK = "walk"
    MEASURE = "measure"


@dataclass(frozen=True)
class _Job:
    kind: JobKind
    path: pathlib.Path
    project_root: Optional[pathlib.Path] = None


@dataclass
class _ScanState:
    jobs: "queue.Queue[Optional[_Job]]"
    registry: ProjectRegistry
    failures: list[BaseException] = field(default_factory=list)
    abort: threading.Event = field(default_factory=threading.Event)


class ProjectScanner:
    """Finds and measures projects below a root using a fixed worker pool"""

    def __init__(
        self,
        config: ScanConfig,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int], None]] = None,
    ):
        """Initialize scanner

        Args:
            config: Scan configuration
            cancel_event: Token checked between work units; when set the scan stops
            progress_callback: Called with the number of directories walked so far
        """
        self.config = config
        self.path_filter = PathFilter(config.skip_paths, config.ignore_paths)
        self.cancel_event = cancel_event or threading.Event()
        self.progress_callback = progress_callback
        self._counter_lock = threading.Lock()
        self._dirs_walked = 0

    @property
    def dirs_walked(self) -> int:
        return self._dirs_walked

    def scan(self) -> ProjectRegistry:
        """Run the scan to completion and return the registry.

        Raises:
            ConfigError: If the root is missing, not a directory or unreadable
            ScanCancelled: If the cancellation token was set during the scan
        """
        root = self._resolve_root()
        registry = ProjectRegistry()
        if self.path_filter.classify(root, resolve=False) is PathVerdict.SKIP:
            return registry
        self._check_readable(root)

        state = _ScanState(jobs=queue.Queue(), registry=registry)
        state.jobs.put(_Job(JobKind.WALK, root))

        workers = [
            threading.Thread(target=self._work, args=(state,), name=f"skoria-scan-{i}", daemon=True)
            for i in range(self.config.worker_count)
        ]
        for worker in workers:
            worker.start()

        state.jobs.join()
        for _ in workers:
            state.jobs.put(None)
        for worker in workers:
            worker.join()

        if state.failures:
            raise state.failures[0]
        if self.cancel_event.is_set():
            raise ScanCancelled("Scan cancelled")
        return registry

    # -- setup ---------------------------------------------------------------

    def _resolve_root(self) -> pathlib.Path:
        root = canonical_path(self.config.root)
        if not root.exists():
            raise ConfigError(f"Root directory does not exist: {self.config.root}")
        if not root.is_dir():
            raise ConfigError(f"Not a directory: {self.config.root}")
        return root

    def _check_readable(self, root: pathlib.Path):
        try:
            with os.scandir(root):
                pass
        except OSError as e:
            raise ConfigError(f"Cannot read root directory '{root}': {e.strerror or e}") from e

    # -- workers -------------------------------------------------------------

    def _work(self, state: _ScanState):
        while True:
            job = state.jobs.get()
            try:
                if job is None:
                    return
                if self.cancel_event.is_set() or state.abort.is_set():
                    continue
                if job.kind is JobKind.WALK:
                    self._walk(job.path, state)
                else:
                    self._measure(job, state)
            except Exception as e:  # re-raised by scan() once the pool has drained
                state.failures.append(e)
                state.abort.set()
            finally:
                state.jobs.task_done()

    def _walk(self, path: pathlib.Path, state: _ScanState):
        try:
            with os.scandir(path) as it:
                entries = list(it)
        except OSError as e:
            state.registry.record_error(AccessError(path, "reading directory", e))
            return
        self._count_directory()

        has_marker = False
        subdirs: list[str] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry.name)
                elif entry.name == MARKER_FILE:
                    has_marker = True
            except OSError as e:
                state.registry.record_error(AccessError(pathlib.Path(entry.path), "reading metadata", e))

        for name in subdirs:
            child = path / name
            if name in self.config.skip_names:
                continue
            if self.path_filter.classify(child, resolve=False) is PathVerdict.SKIP:
                continue
            if has_marker and name == ARTIFACT_DIR:
                # Measured only; never walked for further projects
                state.jobs.put(_Job(JobKind.MEASURE, child, project_root=path))
            else:
                state.jobs.put(_Job(JobKind.WALK, child))

    def _measure(self, job: _Job, state: _ScanState):
        size, newest, count = measure_directory(job.path, state.registry.record_error)
        state.registry.add(
            Project(
                root=job.project_root,
                artifact_dir=job.path,
                size=size,
                last_modified=newest,
                file_count=count,
                ignored=self.path_filter.is_ignored(job.project_root, resolve=False),
            )
        )

    def _count_directory(self):
        with self._counter_lock:
            self._dirs_walked += 1
            walked = self._dirs_walked
        if self.progress_callback:
            self.progress_callback(walked)


def scan_projects(
    config: ScanConfig,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Optional[Callable[[int], None]] = None,
) -> ProjectRegistry:
    """Convenience wrapper: build a scanner for *config* and run it"""
    return ProjectScanner(config, cancel_event, progress_callback).scan()
