from __future__ import annotations

from pathlib import Path

import pytest

from project_scanner import DEFAULT_SKIP_NAMES, ConfigError
from skoria import build_parser
from skoria_config import CONFIG_ENV_VAR, RunOptions, SkoriaSettings, default_config_path


def _settings_file(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "skoria.toml"
    path.write_text(content)
    return path


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    settings = SkoriaSettings.load(tmp_path / "absent.toml")

    assert settings == SkoriaSettings()
    assert set(settings.skip_names) == DEFAULT_SKIP_NAMES


def test_load_values(tmp_path: Path) -> None:
    path = _settings_file(
        tmp_path,
        'threads = 4\nkeep_size = "10MB"\nkeep_days = 14\nskip = ["/mnt"]\nignore = ["~/work"]\nskip_names = [".git"]\n',
    )

    settings = SkoriaSettings.load(path)

    assert settings.threads == 4
    assert settings.keep_size == 10_000_000
    assert settings.keep_days == 14
    assert settings.skip == ["/mnt"]
    assert settings.ignore == ["~/work"]
    assert settings.skip_names == [".git"]


def test_integer_keep_size(tmp_path: Path) -> None:
    assert SkoriaSettings.load(_settings_file(tmp_path, "keep_size = 2048\n")).keep_size == 2048


@pytest.mark.parametrize(
    "content",
    [
        "threads = [\n",
        'threads = "many"\n',
        "keep_days = -1\n",
        'skip = "/mnt"\n',
        'keep_size = "lots"\n',
        "threads = true\n",
        'keep_size = "1e400B"\n',
    ],
)
def test_invalid_settings_raise(tmp_path: Path, content: str) -> None:
    with pytest.raises(ConfigError):
        SkoriaSettings.load(_settings_file(tmp_path, content))


def test_env_var_overrides_location(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "custom.toml"))

    assert default_config_path() == tmp_path / "custom.toml"


def test_default_location(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

    assert default_config_path() == Path.home() / ".kosmos" / "skoria.toml"


def test_run_options_merge_settings_and_args() -> None:
    settings = SkoriaSettings(threads=8, keep_size=100, keep_days=3, skip=["/a"], ignore=["/b"])
    args = build_parser().parse_args(["/root", "-s", "1KiB", "--skip", "/c", "--ignore", "/d", "-e", "-i", "-y"])

    options = RunOptions.from_args(args, settings)

    assert options.scan.root == Path("/root")
    assert options.scan.workers == 8
    assert options.scan.skip_paths == frozenset({Path("/a"), Path("/c")})
    assert options.scan.ignore_paths == frozenset({Path("/b"), Path("/d")})
    assert options.criteria.keep_size == 1024
    assert options.criteria.keep_days == 3
    assert options.keep_executable and options.interactive and options.assume_yes
    assert not options.dry_run and not options.verbose


def test_negative_threads_rejected() -> None:
    args = build_parser().parse_args([".", "-t", "-1"])

    with pytest.raises(ConfigError):
        RunOptions.from_args(args, SkoriaSettings())
