"""Shared pytest fixtures for the launchkit test suite.

Provides reusable fixtures for:
- Temporary project directories laid out like a fetched template
- A scripted prompter standing in for the terminal
- A fake tool runner with scripted provider CLI responses
- Sample provider configurations
- Mock subprocess helpers
"""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from launchkit.config import Config, DatabaseProvider
from launchkit.prompts import Choice, Validator
from launchkit.providers.models import AuthConfig, DatabaseConfig, DeployConfig
from launchkit.runner import CommandError, CommandResult
from launchkit.session import ToolSession


# ---------------------------------------------------------------------------
# Scripted prompter
# ---------------------------------------------------------------------------

class ScriptedPrompter:
    """Answers prompts from a queue and records every question asked.

    When the queue is empty the prompt's default is returned (the first
    choice for ``select``), so tests only script the answers they care about.
    Text answers that fail validation are recorded in ``rejected`` and the
    next queued answer is used, the same way the console re-prompts.
    """

    def __init__(self, answers: Sequence[Any] | None = None) -> None:
        self.answers: deque[Any] = deque(answers or [])
        self.asked: list[tuple[str, str]] = []
        self.rejected: list[tuple[str, str]] = []

    @property
    def confirms(self) -> list[str]:
        return [message for kind, message in self.asked if kind == "confirm"]

    def _next(self, default: Any) -> Any:
        if self.answers:
            return self.answers.popleft()
        return default

    async def confirm(self, message: str, default: bool = False) -> bool:
        self.asked.append(("confirm", message))
        return bool(self._next(default))

    async def select(
        self, message: str, choices: Sequence[Choice], default: str | None = None
    ) -> str:
        self.asked.append(("select", message))
        answer = self._next(default if default is not None else choices[0].value)
        assert answer in [c.value for c in choices], f"{answer!r} is not a choice for {message!r}"
        return answer

    async def text(
        self,
        message: str,
        default: str | None = None,
        validate: Validator | None = None,
    ) -> str:
        self.asked.append(("text", message))
        return self._validated(message, default, validate)

    async def secret(self, message: str, validate: Validator | None = None) -> str:
        self.asked.append(("secret", message))
        return self._validated(message, None, validate)

    def _validated(self, message: str, default: str | None, validate: Validator | None) -> str:
        while True:
            answer = self._next(default)
            if answer is None:
                raise AssertionError(f"No scripted answer for {message!r}")
            error = validate(answer) if validate else None
            if error is None:
                return answer
            self.rejected.append((answer, error))


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


# ---------------------------------------------------------------------------
# Fake tool runner
# ---------------------------------------------------------------------------

class FakeToolRunner:
    """Drop-in ``ToolRunner`` returning scripted results.

    Responses are registered per argv prefix; the longest matching prefix
    wins.  Several responses for one prefix are consumed in order and the
    last one repeats.  Unscripted commands succeed with empty output.
    """

    def __init__(self, session: ToolSession | None = None) -> None:
        self.session = session or ToolSession(Path.cwd())
        self.cwd: Path | None = None
        self.calls: list[list[str]] = []
        self.interactive_calls: list[list[str]] = []
        self._responses: dict[tuple[str, ...], list[CommandResult]] = {}

    def on(
        self,
        *prefix: str,
        stdout: str | Any = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> "FakeToolRunner":
        if not isinstance(stdout, str):
            stdout = json.dumps(stdout)
        result = CommandResult(list(prefix), returncode, stdout, stderr)
        self._responses.setdefault(tuple(prefix), []).append(result)
        return self

    def called(self, *prefix: str) -> list[list[str]]:
        return [argv for argv in self.calls if tuple(argv[: len(prefix)]) == prefix]

    async def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        timeout: float | None = None,
        interactive: bool = False,
        check: bool = True,
    ) -> CommandResult:
        return await self.exec([tool, *args], timeout=timeout, interactive=interactive, check=check)

    async def exec(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        interactive: bool = False,
        check: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult:
        command = list(argv)
        self.calls.append(command)
        if interactive:
            self.interactive_calls.append(command)

        scripted = self._match(command)
        result = CommandResult(
            command, scripted.returncode, scripted.stdout, scripted.stderr
        ) if scripted else CommandResult(command, 0)
        if check and not result.ok:
            raise CommandError(result)
        return result

    def _match(self, command: list[str]) -> CommandResult | None:
        best: tuple[str, ...] | None = None
        for prefix in self._responses:
            if tuple(command[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return None
        queue = self._responses[best]
        return queue.pop(0) if len(queue) > 1 else queue[0]


@pytest.fixture
def session(tmp_path: Path) -> ToolSession:
    return ToolSession(tmp_path)


@pytest.fixture
def runner(session: ToolSession) -> FakeToolRunner:
    return FakeToolRunner(session)


@pytest.fixture
def config() -> Config:
    return Config()


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

def make_template_tree(root: Path, name: str = "my-app", scripts: dict[str, str] | None = None) -> Path:
    """Lay out the files a fetched template provides."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "server").mkdir(exist_ok=True)
    (root / "ui" / "src" / "lib").mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(
        json.dumps({"name": name, "scripts": scripts or {}}), encoding="utf-8"
    )
    (root / "server" / "package.json").write_text('{"name": "server"}', encoding="utf-8")
    (root / "ui" / "package.json").write_text('{"name": "ui"}', encoding="utf-8")
    return root


@pytest.fixture
def template_tree():
    """Factory laying out a template tree at a given path."""
    return make_template_tree


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Temporary project directory shaped like a fetched template."""
    yield make_template_tree(tmp_path / "my-app")


# ---------------------------------------------------------------------------
# Sample provider configs
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_auth_config() -> AuthConfig:
    return AuthConfig(
        project_id="my-app-prod",
        api_key="AIzaSyExample",
        messaging_sender_id="987654321",
        app_id="1:987654321:web:feedface",
        measurement_id="G-ABC123",
    )


@pytest.fixture
def sample_database_config() -> DatabaseConfig:
    return DatabaseConfig(url="postgresql://u:p@host/db", provider=DatabaseProvider.OTHER)


@pytest.fixture
def sample_deploy_config() -> DeployConfig:
    return DeployConfig(worker_name="my-app-api")


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
