"""Tool availability checking.

A prerequisite is resolved by trying an ordered list of strategies:

1. ``BundledStrategy``  - ships with the template, always satisfied.
2. ``GlobalStrategy``   - binary on ``PATH``, version checked.
3. ``LocalStrategy``    - project-local package run through ``node_modules/.bin``
   or ``npx --no``, with a short timeout.

Each strategy returns a tagged ``ProbeResult`` and can be tested on its own.
The checker turns the first success into ``ok``/``installed_locally`` and
otherwise reports ``outdated`` or ``missing``.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from packaging.version import InvalidVersion, Version

from launchkit.config import Config
from launchkit.prereqs.models import Prerequisite, PrerequisiteResult, PrerequisiteStatus
from launchkit.runner import ToolRunner
from launchkit.session import ToolSession
from launchkit.utils import print_debug


class ProbeKind(str, Enum):
    SATISFIED = "satisfied"
    OUTDATED = "outdated"
    BROKEN = "broken"
    NOT_FOUND = "not_found"


@dataclass
class ProbeResult:
    """Tagged outcome of a single resolution strategy."""

    kind: ProbeKind
    version: str | None = None
    detail: str = ""


# ---------------------------------------------------------------------------
# Version helpers
# ---------------------------------------------------------------------------


def parse_version(output: str, pattern: str = r"(\d+\.\d+\.\d+)") -> str | None:
    """Extract a dotted version number from a ``--version`` output."""
    match = re.search(pattern, output)
    return match.group(1) if match else None


def meets_minimum(version: str, minimum: str) -> bool:
    """Semantic-version comparison; unparseable versions never qualify."""
    try:
        return Version(version) >= Version(minimum)
    except InvalidVersion:
        return False


def classify_version(prereq: Prerequisite, output: str) -> ProbeResult:
    """Judge a version-check output against the prerequisite's minimum."""
    version = parse_version(output, prereq.version_pattern)
    if prereq.min_version is None:
        return ProbeResult(ProbeKind.SATISFIED, version or "installed")
    if version is None:
        return ProbeResult(ProbeKind.BROKEN, detail=f"Unrecognised version output: {output[:80]!r}")
    if meets_minimum(version, prereq.min_version):
        return ProbeResult(ProbeKind.SATISFIED, version)
    return ProbeResult(ProbeKind.OUTDATED, version)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class ResolutionStrategy(ABC):
    """One way of finding a usable copy of a tool."""

    name: str = "strategy"
    status_on_success: PrerequisiteStatus = PrerequisiteStatus.OK

    def applies(self, prereq: Prerequisite) -> bool:
        return True

    @abstractmethod
    async def probe(self, prereq: Prerequisite) -> ProbeResult: ...


class BundledStrategy(ResolutionStrategy):
    """Satisfies tools that ship inside the template; never spawns a process."""

    name = "bundled"

    def applies(self, prereq: Prerequisite) -> bool:
        return prereq.bundled

    async def probe(self, prereq: Prerequisite) -> ProbeResult:
        return ProbeResult(ProbeKind.SATISFIED, "bundled")


class GlobalStrategy(ResolutionStrategy):
    """Looks the tool up on ``PATH`` and runs its version check."""

    name = "global"

    def __init__(self, runner: ToolRunner, timeout: float = 15.0) -> None:
        self.runner = runner
        self.timeout = timeout

    def applies(self, prereq: Prerequisite) -> bool:
        return not prereq.bundled

    async def probe(self, prereq: Prerequisite) -> ProbeResult:
        path = self.runner.session.global_path(prereq.command)
        if path is None:
            return ProbeResult(ProbeKind.NOT_FOUND)
        if not prereq.version_args:
            return ProbeResult(ProbeKind.SATISFIED, "installed")

        result = await self.runner.exec([path, *prereq.version_args], timeout=self.timeout)
        if not result.ok:
            return ProbeResult(ProbeKind.BROKEN, detail=result.stderr or result.stdout)
        return classify_version(prereq, result.output)


class LocalStrategy(ResolutionStrategy):
    """Runs a project-local copy, never triggering a package download."""

    name = "local"
    status_on_success = PrerequisiteStatus.INSTALLED_LOCALLY

    def __init__(self, runner: ToolRunner, timeout: float = 10.0) -> None:
        self.runner = runner
        self.timeout = timeout

    def applies(self, prereq: Prerequisite) -> bool:
        return prereq.can_install_locally and not prereq.bundled

    async def probe(self, prereq: Prerequisite) -> ProbeResult:
        shim = self.runner.session.local_path(prereq.command)
        if shim:
            argv = [shim, *prereq.version_args]
        else:
            argv = ["npx", "--no", prereq.command, *prereq.version_args]

        result = await self.runner.exec(argv, timeout=self.timeout)
        if not result.ok:
            return ProbeResult(ProbeKind.NOT_FOUND, detail=result.stderr)
        return classify_version(prereq, result.output)


# ---------------------------------------------------------------------------
# Checker
# ---------------------------------------------------------------------------


class PrerequisiteChecker:
    """Evaluates prerequisites by walking the strategy chain in order."""

    def __init__(
        self,
        session: ToolSession,
        runner: ToolRunner | None = None,
        config: Config | None = None,
        strategies: list[ResolutionStrategy] | None = None,
    ) -> None:
        self.session = session
        self.config = config or Config()
        self.runner = runner or ToolRunner(session)
        self.strategies = strategies or [
            BundledStrategy(),
            GlobalStrategy(self.runner, timeout=self.config.timeouts.version_check),
            LocalStrategy(self.runner, timeout=self.config.timeouts.local_probe),
        ]

    async def check(self, prereq: Prerequisite) -> PrerequisiteResult:
        outdated_version: str | None = None

        for strategy in self.strategies:
            if not strategy.applies(prereq):
                continue
            outcome = await strategy.probe(prereq)
            print_debug(f"{prereq.command} via {strategy.name}: {outcome.kind.value} {outcome.detail}")

            if outcome.kind is ProbeKind.SATISFIED:
                return PrerequisiteResult(prereq, strategy.status_on_success, outcome.version)
            if outcome.kind is ProbeKind.OUTDATED and outdated_version is None:
                outdated_version = outcome.version

        if outdated_version is not None:
            return PrerequisiteResult(prereq, PrerequisiteStatus.OUTDATED, outdated_version)
        return PrerequisiteResult(prereq, PrerequisiteStatus.MISSING)

    async def check_all(self, prereqs: list[Prerequisite]) -> list[PrerequisiteResult]:
        """Check each prerequisite in turn; probes share the session cache."""
        results = []
        for prereq in prereqs:
            results.append(await self.check(prereq))
        return results
