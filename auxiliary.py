#!/usr/bin/env python3
"""
Auxiliary utility functions for Skoria

Provides size formatting/parsing and path display helpers shared by the
scanner, the cleaner and the console front end.
"""

import math
import os
import pathlib
from datetime import datetime
from typing import Optional

from tzlocal import get_localzone

# Longest suffixes first so "KIB" is not mistaken for "B"
_SIZE_UNITS = [
    ("KIB", 1024),
    ("MIB", 1024**2),
    ("GIB", 1024**3),
    ("TIB", 1024**4),
    ("KB", 1000),
    ("MB", 1000**2),
    ("GB", 1000**3),
    ("TB", 1000**4),
    ("K", 1024),
    ("M", 1024**2),
    ("G", 1024**3),
    ("T", 1024**4),
    ("B", 1),
]


def format_bytes(size_bytes: int) -> str:
    """Format byte size into human-readable string

    Args:
        size_bytes: Size in bytes to format

    Returns:
        Formatted string like "1.2 GiB", "345 MiB", "12 KiB", or "789 B"
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GiB"
    if size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MiB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KiB"
    return f"{size_bytes} B"


def parse_size(value: str) -> int:
    """Parse a human-readable size string into bytes

    Decimal suffixes (KB, MB, GB, TB) use powers of 1000, binary suffixes
    (KiB, MiB, ...) and the short forms K, M, G, T use powers of 1024.

    Raises:
        ValueError: If the string is not a valid non-negative size
    """
    text = value.strip().upper().replace(" ", "")
    if not text:
        raise ValueError("empty size")
    for suffix, mult in _SIZE_UNITS:
        if text.endswith(suffix):
            number = text[: -len(suffix)]
            if not number:
                raise ValueError(f"missing number in size: {value!r}")
            amount = float(number) * mult
            if not math.isfinite(amount):
                raise ValueError(f"size out of range: {value!r}")
            size = int(amount)
            break
    else:
        size = int(text)
    if size < 0:
        raise ValueError(f"size must not be negative: {value!r}")
    return size


def format_path_for_display(path: str, home_path: Optional[str] = None) -> str:
    """Format file path for display by replacing home directory with ~

    Args:
        path: File path to format
        home_path: Home directory path (defaults to platform home)

    Returns:
        Path with home directory replaced by ~ if applicable
    """
    if home_path is None:
        home_path = str(pathlib.Path.home())

    path = str(path)
    if path == home_path or path.startswith(home_path + os.sep):
        return "~" + path[len(home_path) :]
    return path


def format_timestamp(timestamp: float) -> str:
    """Format a POSIX timestamp in the local timezone ("2024-05-01 13:37")"""
    if timestamp <= 0:
        return "never"
    return datetime.fromtimestamp(timestamp, tz=get_localzone()).strftime("%Y-%m-%d %H:%M")


def canonical_path(path: "str | os.PathLike[str]") -> pathlib.Path:
    """Resolve `.`/`..`, symlinks and relative forms into an absolute path.

    Works for paths that do not exist (the existing prefix is resolved).
    """
    return pathlib.Path(os.path.realpath(os.path.expanduser(os.fspath(path))))
