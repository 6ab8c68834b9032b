import asyncio
import io

import pytest

from core.errors import TransferAborted
from prompting import ConsolePrompter, Prompter, spaced_text

from conftest import ScriptedPrompter


def test_prompter_requires_ask_and_say() -> None:
    with pytest.raises(TypeError):
        Prompter()

    class SayOnly(Prompter):
        def say(self, line: str = "") -> None:
            pass

    with pytest.raises(TypeError):
        SayOnly()


def test_choose_by_number_or_name() -> None:
    prompter = ScriptedPrompter(["2", "CHAINA", "7"])
    options = ["chainA", "chainB"]

    assert asyncio.run(prompter.choose("Which chain?", options)) == "chainB"
    assert asyncio.run(prompter.choose("Which chain?", options)) == "chainA"
    assert asyncio.run(prompter.choose("Which chain?", options)) is None
    assert "1: chainA" in prompter.lines


def test_confirm_accepts_yes_only() -> None:
    prompter = ScriptedPrompter(["y", "Yes", "n", ""])

    answers = [asyncio.run(prompter.confirm("Continue?")) for _ in range(4)]

    assert answers == [True, True, False, False]


def test_console_prompter_reads_stdin(monkeypatch) -> None:
    out = io.StringIO()
    monkeypatch.setattr("sys.stdin", io.StringIO("0.5\n"))
    prompter = ConsolePrompter(stream=out)

    assert asyncio.run(prompter.ask("How much?")) == "0.5"
    assert out.getvalue() == "How much?\n"

    with pytest.raises(TransferAborted, match="Input closed"):
        asyncio.run(prompter.ask())


def test_spaced_text() -> None:
    header = spaced_text("Wrap")
    assert " Wrap " in header
    assert header.startswith("---")
    assert len(header) == 40
