#!/usr/bin/env python3
"""
Path Filter for Skoria

Decides for a directory whether it must be skipped entirely (never read) or
only ignored for cleaning (read, but projects found below are not cleaned by
default). Configured entries and candidates are compared in canonical form so
matching does not depend on how a path was spelled on the command line.
"""

import os
import pathlib
from enum import Enum
from typing import Iterable

from auxiliary import canonical_path


class PathVerdict(Enum):
    """Classification of a directory by the path filter"""

    NONE = "none"
    IGNORE = "ignore"
    SKIP = "skip"


def _is_within(path: pathlib.Path, base: pathlib.Path) -> bool:
    return path == base or base in path.parents


class PathFilter:
    """Pure predicate over configured skip and ignore paths"""

    def __init__(
        self,
        skip_paths: Iterable["str | os.PathLike[str]"] = (),
        ignore_paths: Iterable["str | os.PathLike[str]"] = (),
    ):
        self.skip_paths: frozenset[pathlib.Path] = frozenset(canonical_path(p) for p in skip_paths)
        self.ignore_paths: frozenset[pathlib.Path] = frozenset(canonical_path(p) for p in ignore_paths)

    def classify(self, path: pathlib.Path, resolve: bool = True) -> PathVerdict:
        """Return the verdict for *path*; skip takes precedence over ignore.

        Callers that already hold a canonical path pass ``resolve=False``.
        """
        if resolve:
            path = canonical_path(path)
        if any(_is_within(path, base) for base in self.skip_paths):
            return PathVerdict.SKIP
        if any(_is_within(path, base) for base in self.ignore_paths):
            return PathVerdict.IGNORE
        return PathVerdict.NONE

    def is_skipped(self, path: "str | os.PathLike[str]", resolve: bool = True) -> bool:
        return self.classify(pathlib.Path(path), resolve) is PathVerdict.SKIP

    def is_ignored(self, path: "str | os.PathLike[str]", resolve: bool = True) -> bool:
        return self.classify(pathlib.Path(path), resolve) is PathVerdict.IGNORE
