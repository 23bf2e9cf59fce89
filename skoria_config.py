#!/usr/bin/env python3
"""
Configuration management for Skoria

Loads optional user defaults from ``~/.kosmos/skoria.toml`` (or the file named
by ``SKORIA_CONFIG``) and combines them with command line arguments into a
single immutable RunOptions value.
"""

import argparse
import os
import pathlib
import tomllib
from dataclasses import dataclass, field
from typing import Any, Optional

from auxiliary import parse_size
from project_filter import FilterCriteria
from project_scanner import DEFAULT_SKIP_NAMES, ConfigError, ScanConfig

CONFIG_ENV_VAR = "SKORIA_CONFIG"


def default_config_path() -> pathlib.Path:
    """Return the settings file location (environment override first)"""
    env_val = os.environ.get(CONFIG_ENV_VAR)
    if env_val:
        return pathlib.Path(env_val).expanduser()
    return pathlib.Path.home() / ".kosmos" / "skoria.toml"


@dataclass
class SkoriaSettings:
    """User defaults read from the settings file"""

    threads: int = 0
    keep_size: int = 0
    keep_days: int = 0
    skip: list[str] = field(default_factory=list)
    ignore: list[str] = field(default_factory=list)
    skip_names: list[str] = field(default_factory=lambda: sorted(DEFAULT_SKIP_NAMES))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SkoriaSettings":
        """Create from a parsed TOML table, validating value types"""
        defaults = cls()
        try:
            keep_size = data.get("keep_size", defaults.keep_size)
            if isinstance(keep_size, str):
                keep_size = parse_size(keep_size)
            return cls(
                threads=_non_negative_int(data.get("threads", defaults.threads), "threads"),
                keep_size=_non_negative_int(keep_size, "keep_size"),
                keep_days=_non_negative_int(data.get("keep_days", defaults.keep_days), "keep_days"),
                skip=_string_list(data.get("skip", defaults.skip), "skip"),
                ignore=_string_list(data.get("ignore", defaults.ignore), "ignore"),
                skip_names=_string_list(data.get("skip_names", defaults.skip_names), "skip_names"),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid setting: {e}") from e

    @classmethod
    def load(cls, path: Optional[pathlib.Path] = None) -> "SkoriaSettings":
        """Load settings; a missing file yields the defaults

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        path = path or default_config_path()
        if not path.exists():
            return cls()
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot load settings from {path}: {e}") from e
        return cls.from_dict(data)


def _non_negative_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def _string_list(value: Any, name: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{name} must be a list of strings, got {value!r}")
    return list(value)


@dataclass(frozen=True)
class RunOptions:
    """Everything one run needs, built once from settings and arguments"""

    scan: ScanConfig
    criteria: FilterCriteria
    dry_run: bool = False
    keep_executable: bool = False
    verbose: bool = False
    interactive: bool = False
    assume_yes: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace, settings: SkoriaSettings) -> "RunOptions":
        """Combine parsed arguments with settings; arguments win for scalars, lists are merged"""
        threads = args.threads if args.threads is not None else settings.threads
        keep_size = args.keep_size if args.keep_size is not None else settings.keep_size
        keep_days = args.keep_days if args.keep_days is not None else settings.keep_days
        if threads < 0 or keep_days < 0:
            raise ConfigError("--threads and --keep-days must not be negative")

        scan = ScanConfig(
            root=pathlib.Path(args.root_dir),
            skip_paths=frozenset(pathlib.Path(p) for p in [*settings.skip, *args.skip]),
            ignore_paths=frozenset(pathlib.Path(p) for p in [*settings.ignore, *args.ignore]),
            workers=threads,
            verbose=args.verbose,
            skip_names=frozenset(settings.skip_names),
        )
        return cls(
            scan=scan,
            criteria=FilterCriteria(keep_size=keep_size, keep_days=keep_days),
            dry_run=args.dry_run,
            keep_executable=args.keep_executable,
            verbose=args.verbose,
            interactive=args.interactive,
            assume_yes=args.yes,
        )
