from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


class Prompter(Protocol):
    def ask_choice(self, prompt: str, options: Sequence[str]) -> str:
        ...

    def ask_yes_no(self, prompt: str, default: bool) -> bool:
        ...


class ConsolePrompter:
    """Line-based prompts on stdin/stdout."""

    def __init__(self, input_fn: Callable[[str], str] = input, output_fn: Callable[[str], None] = print) -> None:
        self._input = input_fn
        self._print = output_fn

    def ask_choice(self, prompt: str, options: Sequence[str]) -> str:
        if not options:
            raise ValueError("ask_choice needs at least one option")
        self._print(prompt)
        for i, opt in enumerate(options, 1):
            self._print(f"  {i}. {opt}")
        while True:
            answer = self._input(f"Select option (1-{len(options)}): ").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1]
            if answer in options:
                return answer
            self._print(f"Invalid option: {answer}")

    def ask_yes_no(self, prompt: str, default: bool) -> bool:
        hint = "[Y/n]" if default else "[y/N]"
        while True:
            answer = self._input(f"{prompt} {hint} ").strip().lower()
            if not answer:
                return default
            if answer in {"y", "yes"}:
                return True
            if answer in {"n", "no"}:
                return False
            self._print("Please answer y or n.")


class AutoPrompter:
    """Non-interactive answers: first option / the default.

    ``answers`` is a queue of scripted replies, consumed in order.
    """

    def __init__(self, *, assume_yes: bool = False, answers: Optional[List[object]] = None) -> None:
        self.assume_yes = assume_yes
        self.answers = list(answers or [])
        self.asked: List[str] = []

    def ask_choice(self, prompt: str, options: Sequence[str]) -> str:
        self.asked.append(prompt)
        if self.answers:
            return str(self.answers.pop(0))
        logger.info("%s -> %s (non-interactive)", prompt, options[0])
        return options[0]

    def ask_yes_no(self, prompt: str, default: bool) -> bool:
        self.asked.append(prompt)
        if self.answers:
            return bool(self.answers.pop(0))
        answer = True if self.assume_yes else default
        logger.info("%s -> %s (non-interactive)", prompt, "yes" if answer else "no")
        return answer
