from __future__ import annotations

import time
from pathlib import Path

from project_filter import (
    SECONDS_PER_DAY,
    FilterCriteria,
    KeepReason,
    apply_filters,
    apply_selection,
    keep_reason,
    kept_projects,
    pass_through_selector,
    selected_projects,
)
from project_scanner import Project

MB = 1_000_000
NOW = 1_700_000_000.0


def _project(name: str, size: int, age_days: float, ignored: bool = False) -> Project:
    root = Path("/work") / name
    return Project(
        root=root,
        artifact_dir=root / "target",
        size=size,
        last_modified=NOW - age_days * SECONDS_PER_DAY,
        ignored=ignored,
    )


def _cleanable(projects: list[Project], criteria: FilterCriteria) -> set[str]:
    return {d.project.name for d in apply_filters(projects, criteria) if d.cleanable}


def test_both_thresholds_must_pass() -> None:
    a = _project("a", 50 * MB, age_days=0)
    b = _project("b", 5 * MB, age_days=30)

    decisions = apply_filters([a, b], FilterCriteria(keep_size=10 * MB, keep_days=7, now=NOW))

    assert [d.cleanable for d in decisions] == [False, False]
    assert [d.reason for d in decisions] == [KeepReason.KEEP_DAYS, KeepReason.KEEP_SIZE]


def test_old_and_large_enough_is_cleanable() -> None:
    a = _project("a", 50 * MB, age_days=0)
    b = _project("b", 5 * MB, age_days=30)

    decisions = apply_filters([a, b], FilterCriteria(keep_size=1 * MB, keep_days=7, now=NOW))

    assert _cleanable([a, b], FilterCriteria(keep_size=1 * MB, keep_days=7, now=NOW)) == {"b"}
    assert selected_projects(decisions) == [b]
    assert kept_projects(decisions) == [a]


def test_defaults_clean_everything_not_ignored() -> None:
    future = _project("future", 0, age_days=-1)
    ignored = _project("ignored", 100 * MB, age_days=100, ignored=True)

    assert _cleanable([future, ignored], FilterCriteria(now=NOW)) == {"future"}


def test_cutoff_boundary_is_kept() -> None:
    criteria = FilterCriteria(keep_days=7, now=NOW)
    at_cutoff = _project("edge", 10, age_days=7)
    just_older = Project(
        root=Path("/work/older"),
        artifact_dir=Path("/work/older/target"),
        size=10,
        last_modified=criteria.cutoff - 1,
    )

    assert at_cutoff.last_modified == criteria.cutoff
    assert keep_reason(at_cutoff, criteria) is KeepReason.KEEP_DAYS
    assert keep_reason(just_older, criteria) is None


def test_size_boundary_is_cleaned() -> None:
    project = _project("exact", 10 * MB, age_days=30)

    assert keep_reason(project, FilterCriteria(keep_size=10 * MB, now=NOW)) is None
    assert keep_reason(project, FilterCriteria(keep_size=10 * MB + 1, now=NOW)) is KeepReason.KEEP_SIZE


def test_ignored_reason_comes_first() -> None:
    project = _project("x", 1, age_days=0, ignored=True)

    assert keep_reason(project, FilterCriteria(keep_size=10, keep_days=5, now=NOW)) is KeepReason.IGNORED


def test_raising_thresholds_never_grows_the_cleanable_set() -> None:
    projects = [
        _project(f"p{i}", size=i * 3 * MB, age_days=i * 2.5, ignored=(i % 5 == 0)) for i in range(20)
    ]

    previous = None
    for keep_size in (0, 1 * MB, 10 * MB, 30 * MB, 100 * MB):
        current = _cleanable(projects, FilterCriteria(keep_size=keep_size, keep_days=3, now=NOW))
        if previous is not None:
            assert current <= previous
        previous = current

    previous = None
    for keep_days in (0, 1, 5, 20, 60):
        current = _cleanable(projects, FilterCriteria(keep_size=2 * MB, keep_days=keep_days, now=NOW))
        if previous is not None:
            assert current <= previous
        previous = current


def test_criteria_default_now_is_current_time() -> None:
    before = time.time()
    criteria = FilterCriteria(keep_days=1)

    assert before <= criteria.now <= time.time()
    assert criteria.cutoff == criteria.now - SECONDS_PER_DAY


def test_pass_through_selection_keeps_decisions() -> None:
    projects = [_project("a", 10, 30), _project("b", 10, 30, ignored=True)]
    decisions = apply_filters(projects, FilterCriteria(now=NOW))

    selected = apply_selection(decisions, pass_through_selector)

    assert selected == decisions


def test_selector_can_reinclude_and_deselect() -> None:
    a = _project("a", 10, 30)
    b = _project("b", 10, 30)
    ignored = _project("ignored", 10, 30, ignored=True)
    decisions = apply_filters([a, b, ignored], FilterCriteria(now=NOW))
    seen = {}

    def selector(candidates, context):
        seen["candidates"] = list(candidates)
        seen["context"] = list(context)
        return {a.root, ignored.root}

    result = {d.project.name: d for d in apply_selection(decisions, selector)}

    assert seen == {"candidates": [a, b], "context": [ignored]}
    assert result["a"].selected and result["a"].cleanable
    assert not result["b"].selected
    assert result["b"].reason is KeepReason.DESELECTED
    assert result["ignored"].selected and result["ignored"].cleanable
    assert result["ignored"].reason is None


def test_selector_choosing_nothing() -> None:
    decisions = apply_filters([_project("a", 10, 30)], FilterCriteria(now=NOW))

    result = apply_selection(decisions, lambda candidates, context: set())

    assert selected_projects(result) == []
