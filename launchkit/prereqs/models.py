"""Data models for external tool requirements."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PrerequisiteStatus(str, Enum):
    """Outcome of evaluating one prerequisite."""

    OK = "ok"
    MISSING = "missing"
    OUTDATED = "outdated"
    INSTALLED_LOCALLY = "installed_locally"


class InstallScope(str, Enum):
    GLOBAL = "global"
    LOCAL = "local"


@dataclass(frozen=True)
class Prerequisite:
    """A named external tool the generated project depends on.

    Defined statically in ``launchkit.prereqs.catalog`` and only ever
    evaluated, never mutated.
    """

    name: str
    command: str
    version_args: tuple[str, ...] = ("--version",)
    min_version: str | None = None
    version_pattern: str = r"(\d+\.\d+\.\d+)"
    npm_package: str | None = None
    can_install_globally: bool = False
    can_install_locally: bool = False
    system_tool: bool = False
    optional: bool = False
    bundled: bool = False
    install_url: str = ""
    description: str = ""
    # Keyed by ``sys.platform`` prefix ("darwin", "win32", "linux"), plus "default".
    manual_steps: dict[str, tuple[str, ...]] = field(default_factory=dict, hash=False)

    @property
    def installable(self) -> bool:
        """True when a package manager can install this tool for us."""
        return bool(self.npm_package) and (self.can_install_globally or self.can_install_locally)

    def supports(self, scope: InstallScope) -> bool:
        if not self.npm_package:
            return False
        if scope is InstallScope.GLOBAL:
            return self.can_install_globally
        return self.can_install_locally

    def steps_for(self, platform: str) -> list[str]:
        """Manual install steps for *platform*, falling back to the defaults."""
        for key, steps in self.manual_steps.items():
            if key != "default" and platform.startswith(key):
                return list(steps)
        if "default" in self.manual_steps:
            return list(self.manual_steps["default"])
        return [f"Install {self.name} from {self.install_url}"]


@dataclass
class PrerequisiteResult:
    """Evaluation of one ``Prerequisite``; created fresh on every check."""

    prerequisite: Prerequisite
    status: PrerequisiteStatus
    version: str | None = None

    @property
    def satisfied(self) -> bool:
        return self.status in (PrerequisiteStatus.OK, PrerequisiteStatus.INSTALLED_LOCALLY)

    @property
    def name(self) -> str:
        return self.prerequisite.name

    def describe(self) -> str:
        version = f" ({self.version})" if self.version else ""
        return f"{self.prerequisite.name}: {self.status.value}{version}"
