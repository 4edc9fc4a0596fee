"""Provider CLI process management.

Wraps ``run_command`` with tool resolution through the session, structured
results, and a single error type for non-zero exits.  Timeouts surface as
ordinary failures (exit code ``-1``) so retry logic treats them the same way.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from launchkit.session import ToolSession
from launchkit.utils import print_debug, run_command


@dataclass
class CommandResult:
    """Structured result from one external process."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def timed_out(self) -> bool:
        return self.returncode == -1

    @property
    def output(self) -> str:
        """Stdout and stderr joined, for success-marker matching."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def summary(self) -> str:
        status = "ok" if self.ok else f"exit {self.returncode}"
        return f"{' '.join(self.command)} ({status}, {self.duration_seconds:.1f}s)"


class CommandError(Exception):
    """Raised when a checked command exits non-zero or times out."""

    def __init__(self, result: CommandResult, message: str | None = None) -> None:
        self.result = result
        detail = result.stderr or result.stdout or f"exit code {result.returncode}"
        super().__init__(message or f"`{' '.join(result.command)}` failed: {detail}")

    @property
    def output(self) -> str:
        return self.result.output


@dataclass
class ToolRunner:
    """Runs provider CLIs resolved through a ``ToolSession``."""

    session: ToolSession
    cwd: Path | None = None
    default_timeout: float = 60.0
    history: list[CommandResult] = field(default_factory=list)

    async def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        timeout: float | None = None,
        interactive: bool = False,
        check: bool = True,
    ) -> CommandResult:
        """Run *tool* with *args*, resolving its location via the session.

        Args:
            tool: Command name, e.g. ``"firebase"``.
            args: Arguments after the command.
            timeout: Seconds before the process is killed.
            interactive: Inherit the terminal instead of capturing output.
            check: Raise ``CommandError`` on failure.
        """
        argv = [*self.session.resolve(tool), *args]
        return await self.exec(argv, timeout=timeout, interactive=interactive, check=check)

    async def exec(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        interactive: bool = False,
        check: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult:
        """Run an already-resolved argv (``npm``, ``git``, ``pnpm`` ...)."""
        command = list(argv)
        print_debug(f"running: {' '.join(command)}")

        start = time.monotonic()
        returncode, stdout, stderr = await run_command(
            command,
            cwd=cwd or self.cwd,
            timeout=timeout or self.default_timeout,
            capture=not interactive,
        )
        result = CommandResult(
            command=command,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            duration_seconds=time.monotonic() - start,
        )
        self.history.append(result)
        print_debug(result.summary())

        if check and not result.ok:
            raise CommandError(result)
        return result
