"""Bounded retries around provider setup workflows.

Failures are classified by exception type:

* ``PolicyBlockedError`` - the user must act in a web console first.  The
  remediation is shown and a retry happens only after the user confirms
  the blocker is gone.
* ``UserDeclinedError``  - terminal, re-raised untouched.
* ``ProviderError`` / ``CommandError`` - generic; the user is asked whether
  to retry (fast mode retries without asking).

When attempts run out, manual setup instructions for the capability are
printed and the last error propagates.  The wrapper never substitutes a
default config.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TypeVar

from rich.panel import Panel

from launchkit.errors import PolicyBlockedError, ProviderError, UserDeclinedError
from launchkit.prompts import Prompter
from launchkit.runner import CommandError
from launchkit.utils import console, print_instructions, print_success, print_warning

T = TypeVar("T")


class SetupCapability(str, Enum):
    """Capabilities a project can switch from local to production."""

    AUTH = "auth"
    DATABASE = "database"
    DEPLOY = "deploy"


MANUAL_SETUP: dict[SetupCapability, tuple[str, list[str], str]] = {
    SetupCapability.AUTH: (
        "Set up Firebase manually",
        [
            "Create a project in the Firebase console",
            "Add a Web app and copy its firebaseConfig values",
            "Put them in ui/src/lib/firebase-config.json",
            "Set FIREBASE_PROJECT_ID in server/.env",
            "Or run `create-launchkit-app --connect --auth` later",
        ],
        "https://console.firebase.google.com",
    ),
    SetupCapability.DATABASE: (
        "Set up the database manually",
        [
            "Create a PostgreSQL database with any provider",
            "Set DATABASE_URL in server/.env to its connection string",
            "Run `pnpm db:push` in the server directory",
            "Or run `create-launchkit-app --connect --database` later",
        ],
        "https://neon.tech",
    ),
    SetupCapability.DEPLOY: (
        "Set up Cloudflare manually",
        [
            "Run `wrangler login`",
            "Set `name` in server/wrangler.toml to your Worker name",
            "Or run `create-launchkit-app --connect --deploy` later",
        ],
        "https://dash.cloudflare.com",
    ),
}


@dataclass
class SetupAttempt:
    """Record of a single setup attempt."""

    attempt_number: int
    success: bool
    started_at: str
    duration_seconds: float = 0.0
    error: str | None = None
    error_kind: str | None = None


@dataclass
class SetupRetrier:
    """Runs a setup coroutine up to ``max_attempts`` times."""

    prompter: Prompter
    max_attempts: int = 2
    fast: bool = False
    history: list[SetupAttempt] = field(default_factory=list)

    async def run(
        self,
        capability: SetupCapability,
        setup: Callable[[], Awaitable[T]],
        label: str | None = None,
    ) -> T:
        """Invoke *setup* with retries and return its result.

        Raises:
            PolicyBlockedError: The blocker was not resolved.
            UserDeclinedError: The user declined a required step.
            ProviderError: Attempts exhausted or retry declined.
        """
        label = label or capability.value
        self.history = []

        for attempt_number in range(1, self.max_attempts + 1):
            attempt = SetupAttempt(
                attempt_number=attempt_number,
                success=False,
                started_at=datetime.now(timezone.utc).isoformat(),
            )
            start = time.monotonic()
            attempts_left = attempt_number < self.max_attempts

            try:
                result = await setup()
            except UserDeclinedError as exc:
                self._record(attempt, start, exc)
                raise
            except PolicyBlockedError as exc:
                self._record(attempt, start, exc)
                console.print(
                    Panel(
                        "\n".join(f"{i}. {step}" for i, step in enumerate(exc.remediation, 1))
                        or str(exc),
                        title=f"[bold yellow]{exc}[/bold yellow]",
                        border_style="yellow",
                    )
                )
                if not attempts_left:
                    raise
                if not await self.prompter.confirm(
                    f"Have you completed the steps above? Retry {label} setup?", default=False
                ):
                    raise
                continue
            except (ProviderError, CommandError) as exc:
                self._record(attempt, start, exc)
                print_warning(
                    f"{label} setup failed (attempt {attempt_number}/{self.max_attempts}): {exc}"
                )
                if attempts_left:
                    retry = self.fast or await self.prompter.confirm(
                        f"Would you like to retry {label} setup?", default=True
                    )
                    if retry:
                        continue
                self.show_manual_setup(capability)
                raise

            attempt.success = True
            attempt.duration_seconds = time.monotonic() - start
            self.history.append(attempt)
            if attempt_number > 1:
                print_success(f"{label} setup succeeded on attempt {attempt_number}.")
            return result

        # Every path through the loop body returns or raises.
        raise AssertionError("unreachable")

    def show_manual_setup(self, capability: SetupCapability) -> None:
        title, steps, url = MANUAL_SETUP[capability]
        print_instructions(title, steps, url)

    def _record(self, attempt: SetupAttempt, start: float, exc: Exception) -> None:
        attempt.duration_seconds = time.monotonic() - start
        attempt.error = str(exc)
        attempt.error_kind = type(exc).__name__
        self.history.append(attempt)
