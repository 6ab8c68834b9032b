"""Terminal prompt channel shared through the session."""

import asyncio
import sys
from abc import ABC, abstractmethod
from typing import Optional, Sequence, TextIO

from core.errors import TransferAborted


class Prompter(ABC):
    """Question/answer channel. Subclasses provide ``ask`` and ``say``."""

    @abstractmethod
    async def ask(self, question: str = "") -> str:
        """Show ``question`` if given and return one line of input."""

    @abstractmethod
    def say(self, line: str = "") -> None:
        """Show one line of output."""

    async def choose(self, question: str, options: Sequence[str]) -> Optional[str]:
        """Ask for one of ``options`` by number or by name.

        Returns:
            The chosen option, or None if the answer matches nothing
        """
        self.say(question)
        for idx, option in enumerate(options, start=1):
            self.say(f"{idx}: {option}")
        answer = (await self.ask()).strip()

        if answer.isdigit():
            idx = int(answer) - 1
            if 0 <= idx < len(options):
                return options[idx]
        for option in options:
            if answer.lower() == str(option).lower():
                return option
        return None

    async def confirm(self, question: str) -> bool:
        self.say(f"{question} (y/n)")
        answer = (await self.ask()).strip().lower()
        return answer in ("y", "yes")


class ConsolePrompter(Prompter):
    """Reads stdin in the default executor so the event loop keeps running."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    async def ask(self, question: str = "") -> str:
        if question:
            self.say(question)
        loop = asyncio.get_event_loop()
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            raise TransferAborted("Input closed")
        return line.rstrip("\r\n")

    def say(self, line: str = "") -> None:
        print(line, file=self.stream, flush=True)


def spaced_text(text: str, total_length: int = 40) -> str:
    """Section header padded with dashes."""
    dashes = max(3, (total_length - len(text) - 2) // 2)
    right = max(3, total_length - len(text) - dashes - 2)
    return f"{'-' * dashes} {text} {'-' * right}"
