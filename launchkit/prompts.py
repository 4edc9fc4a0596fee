"""Interactive prompting.

Workflows decide *what* to ask; a ``Prompter`` decides *how* it is asked.
``ConsolePrompter`` renders questions with ``rich.prompt`` on a worker thread
so the event loop stays free while the user types.  Tests swap in a scripted
prompter with the same four coroutine methods.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from rich.prompt import Confirm, Prompt

from launchkit.utils import console

Validator = Callable[[str], "str | None"]


@dataclass(frozen=True)
class Choice:
    """One entry of a selection list."""

    value: str
    label: str


class Prompter(Protocol):
    async def confirm(self, message: str, default: bool = False) -> bool: ...

    async def select(
        self, message: str, choices: Sequence[Choice], default: str | None = None
    ) -> str: ...

    async def text(
        self,
        message: str,
        default: str | None = None,
        validate: Validator | None = None,
    ) -> str: ...

    async def secret(self, message: str, validate: Validator | None = None) -> str: ...


class ConsolePrompter:
    """Asks questions on the terminal with ``rich.prompt``."""

    async def confirm(self, message: str, default: bool = False) -> bool:
        return await asyncio.to_thread(Confirm.ask, message, default=default, console=console)

    async def select(
        self, message: str, choices: Sequence[Choice], default: str | None = None
    ) -> str:
        if not choices:
            raise ValueError("select() needs at least one choice")

        console.print(f"[bold]{message}[/bold]")
        default_key = "1"
        for index, choice in enumerate(choices, 1):
            if choice.value == default:
                default_key = str(index)
            console.print(f"  {index}) {choice.label}")

        keys = [str(i) for i in range(1, len(choices) + 1)]
        answer = await asyncio.to_thread(
            Prompt.ask, "Enter choice", choices=keys, default=default_key, console=console
        )
        return choices[int(answer) - 1].value

    async def text(
        self,
        message: str,
        default: str | None = None,
        validate: Validator | None = None,
    ) -> str:
        return await self._ask(message, default=default, validate=validate, password=False)

    async def secret(self, message: str, validate: Validator | None = None) -> str:
        return await self._ask(message, default=None, validate=validate, password=True)

    async def _ask(
        self,
        message: str,
        default: str | None,
        validate: Validator | None,
        password: bool,
    ) -> str:
        # Malformed input is re-asked in place; it never escapes as an error.
        while True:
            kwargs = {"password": password, "console": console}
            if default is not None:
                kwargs["default"] = default
            answer = await asyncio.to_thread(Prompt.ask, message, **kwargs)
            answer = (answer or "").strip()
            error = validate(answer) if validate else None
            if error is None:
                return answer
            console.print(f"[red]{error}[/red]")
