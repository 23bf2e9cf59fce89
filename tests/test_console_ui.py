from __future__ import annotations

import io
from typing import Iterator

import pytest
from rich.console import Console

import console_ui
from console_ui import ConsoleUI, _parse_indices


def _ui_with_answers(monkeypatch: pytest.MonkeyPatch, answers: list[str]) -> ConsoleUI:
    replies: Iterator[str] = iter(answers)
    monkeypatch.setattr(console_ui.Prompt, "ask", lambda *args, **kwargs: next(replies))
    return ConsoleUI(console=Console(file=io.StringIO(), width=120))


def test_enter_accepts_preselection(monkeypatch: pytest.MonkeyPatch) -> None:
    ui = _ui_with_answers(monkeypatch, [""])

    assert ui.select_from_list(["a", "b", "c"], [True, False, True]) == {0, 2}


def test_toggle_numbers_and_ranges(monkeypatch: pytest.MonkeyPatch) -> None:
    ui = _ui_with_answers(monkeypatch, ["1", "2-3", ""])

    assert ui.select_from_list(["a", "b", "c"], [True, False, True]) == {1}


def test_all_none_and_abort(monkeypatch: pytest.MonkeyPatch) -> None:
    ui = _ui_with_answers(monkeypatch, ["a", ""])
    assert ui.select_from_list(["a", "b"]) == {0, 1}

    ui = _ui_with_answers(monkeypatch, ["n", ""])
    assert ui.select_from_list(["a", "b"], [True, True]) == set()

    ui = _ui_with_answers(monkeypatch, ["q"])
    assert ui.select_from_list(["a", "b"], [True, True]) == set()


def test_invalid_input_is_reported_and_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    ui = _ui_with_answers(monkeypatch, ["x", "9", "2", ""])

    assert ui.select_from_list(["a", "b"]) == {1}
    output = ui.console.file.getvalue()
    assert "Invalid selection" in output
    assert "No item number 9" in output


def test_empty_list_needs_no_prompt() -> None:
    assert ConsoleUI(console=Console(file=io.StringIO())).select_from_list([]) == set()


def test_parse_indices() -> None:
    assert _parse_indices("1,3 5-7") == [0, 2, 4, 5, 6]
    with pytest.raises(ValueError):
        _parse_indices("4-2")
    with pytest.raises(ValueError):
        _parse_indices("one")
