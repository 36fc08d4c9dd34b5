"""Tests for reply parsing and the terminal prompt."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from amped.decision import TerminalPrompt, parse_decision
from amped.errors import InvalidInput
from amped.transaction import Status, Transaction


def _input_feeder(values: list[str], prompts: list[str] | None = None) -> Callable[[str], str]:
    iterator = iter(values)
    capture = prompts if prompts is not None else []

    def _fake_input(prompt: str) -> str:
        capture.append(prompt)
        try:
            return next(iterator)
        except StopIteration as exc:
            raise AssertionError("Input requested more times than expected.") from exc

    return _fake_input


def _eof_raiser(_prompt: str) -> str:
    raise EOFError


@pytest.mark.parametrize(
    ("reply", "expected"),
    [
        ("y", Status.APPROVED),
        ("  y \n", Status.APPROVED),
        ("n", Status.DENIED),
        ("", Status.DENIED),
        ("   ", Status.DENIED),
    ],
)
def test_parse_decision(reply: str, expected: Status) -> None:
    assert parse_decision(reply) is expected


@pytest.mark.parametrize("reply", ["maybe", "Y", "yes", "no", "N", "yn"])
def test_parse_decision_rejects_other_replies(reply: str) -> None:
    with pytest.raises(InvalidInput) as exc:
        parse_decision(reply)
    assert exc.value.code == "unrecognized_reply"
    assert not exc.value.fatal


class TestTerminalPrompt:
    def test_present_shows_text(self, capsys: pytest.CaptureFixture[str]) -> None:
        TerminalPrompt().present(Transaction(5, "Wire $500"))
        assert capsys.readouterr().out == "Message:\n\tWire $500\n"

    def test_read_reply(self, monkeypatch: pytest.MonkeyPatch) -> None:
        prompts: list[str] = []
        monkeypatch.setattr("builtins.input", _input_feeder(["y"], prompts))
        assert TerminalPrompt().read_reply() == "y"
        assert prompts == ["Do you want to approve this? [y/N] "]

    def test_end_of_input_reads_as_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("builtins.input", _eof_raiser)
        reply = TerminalPrompt().read_reply()
        assert reply == ""
        assert parse_decision(reply) is Status.DENIED

    def test_reject_prints_notice(self, capsys: pytest.CaptureFixture[str]) -> None:
        TerminalPrompt().reject(InvalidInput("unrecognized_reply", "x"))
        assert "Invalid entry." in capsys.readouterr().out
