from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

import pytest

MB = 1_000_000


def write_file(path: Path, size: int = 0, mtime: Optional[float] = None, mode: Optional[int] = None) -> Path:
    """Create a (sparse) file of *size* bytes with an optional mtime and mode."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        f.truncate(size)
    if mode is not None:
        path.chmod(mode)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def make_cargo_project(
    base: Path, size: int = 0, mtime: Optional[float] = None, with_target: bool = True
) -> Path:
    """Create a Cargo project at *base*; the target dir holds one file of *size* bytes."""
    base.mkdir(parents=True, exist_ok=True)
    (base / "Cargo.toml").write_text('[package]\nname = "demo"\nversion = "0.1.0"\n')
    if with_target:
        target = base / "target"
        target.mkdir(exist_ok=True)
        if size or mtime is not None:
            write_file(target / "debug" / "deps" / "artifact.bin", size=size, mtime=mtime)
    return base


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Canonical scan root inside tmp_path."""
    root = (tmp_path / "tree").resolve()
    root.mkdir()
    return root


@pytest.fixture
def cargo_project() -> Callable[..., Path]:
    return make_cargo_project
