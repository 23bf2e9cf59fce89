#!/usr/bin/env python3
"""
Filter pipeline for Skoria

Turns the scanned registry into cleaning decisions. A project is cleanable
when it is not ignored, its artifact directory is at least ``keep_size``
bytes, and it was last built before ``now - keep_days``. An optional
selector (the interactive picker, or a pass-through) then narrows or widens
the cleanable set.
"""

import pathlib
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from project_scanner import Project

SECONDS_PER_DAY = 60 * 60 * 24


class KeepReason(Enum):
    """Why a project is not cleaned"""

    IGNORED = "ignored"
    KEEP_SIZE = "keep_size"
    KEEP_DAYS = "keep_days"
    DESELECTED = "deselected"


@dataclass(frozen=True)
class FilterCriteria:
    """Retention thresholds; 0 disables a threshold"""

    keep_size: int = 0
    keep_days: int = 0
    now: float = field(default_factory=time.time)

    @property
    def cutoff(self) -> float:
        return self.now - self.keep_days * SECONDS_PER_DAY


@dataclass(frozen=True)
class CleanDecision:
    """Cleaning decision for one project"""

    project: Project
    cleanable: bool
    selected: bool
    reason: Optional[KeepReason] = None


# select(candidates, context) -> roots of the chosen projects
Selector = Callable[[Sequence[Project], Sequence[Project]], set[pathlib.Path]]


def keep_reason(project: Project, criteria: FilterCriteria) -> Optional[KeepReason]:
    """Return the first retention rule that keeps *project*, or None"""
    if project.ignored:
        return KeepReason.IGNORED
    if project.size < criteria.keep_size:
        return KeepReason.KEEP_SIZE
    if criteria.keep_days > 0 and project.last_modified >= criteria.cutoff:
        return KeepReason.KEEP_DAYS
    return None


def apply_filters(projects: Iterable[Project], criteria: FilterCriteria) -> list[CleanDecision]:
    """Evaluate every project against *criteria*; selected defaults to cleanable"""
    decisions = []
    for project in projects:
        reason = keep_reason(project, criteria)
        cleanable = reason is None
        decisions.append(CleanDecision(project, cleanable=cleanable, selected=cleanable, reason=reason))
    return decisions


def pass_through_selector(candidates: Sequence[Project], context: Sequence[Project]) -> set[pathlib.Path]:
    """Selector used when interactive mode is off: keep the cleanable set as is"""
    return {p.root for p in candidates}


def apply_selection(decisions: Sequence[CleanDecision], selector: Selector) -> list[CleanDecision]:
    """Let *selector* choose from the decisions and fold its answer back in.

    Projects chosen from the non-cleanable context are re-included (cleanable
    and selected); cleanable projects left out are kept as deselected.
    """
    candidates = [d.project for d in decisions if d.cleanable]
    context = [d.project for d in decisions if not d.cleanable]
    chosen = selector(candidates, context)

    result = []
    for decision in decisions:
        picked = decision.project.root in chosen
        if picked:
            result.append(replace(decision, cleanable=True, selected=True, reason=None))
        elif decision.cleanable:
            result.append(replace(decision, selected=False, reason=KeepReason.DESELECTED))
        else:
            result.append(replace(decision, selected=False))
    return result


def selected_projects(decisions: Iterable[CleanDecision]) -> list[Project]:
    return [d.project for d in decisions if d.selected]


def kept_projects(decisions: Iterable[CleanDecision]) -> list[Project]:
    return [d.project for d in decisions if not d.selected]
