"""Prerequisite resolution loop.

``plan_resolution`` is the pure decision step: given check results it sorts
tools into what can be installed, what needs a human, and what is merely
outdated.  ``PrerequisiteResolver`` runs check, plan, act and recheck rounds,
asking the user through a ``Prompter`` only when a decision is needed.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field

from rich.table import Table

from launchkit.config import Config
from launchkit.errors import PrerequisiteError, UserDeclinedError
from launchkit.prereqs.checker import PrerequisiteChecker
from launchkit.prereqs.installer import ToolInstaller, install_command
from launchkit.prereqs.models import (
    InstallScope,
    Prerequisite,
    PrerequisiteResult,
    PrerequisiteStatus,
)
from launchkit.prereqs.network import check_network
from launchkit.prompts import Choice, Prompter
from launchkit.session import ToolSession
from launchkit.utils import console, print_instructions, print_success, print_warning

_STATUS_STYLES = {
    PrerequisiteStatus.OK: "[green]ok[/green]",
    PrerequisiteStatus.INSTALLED_LOCALLY: "[cyan]local[/cyan]",
    PrerequisiteStatus.OUTDATED: "[yellow]outdated[/yellow]",
    PrerequisiteStatus.MISSING: "[red]missing[/red]",
}


@dataclass
class ResolutionPlan:
    """What to do about a set of check results."""

    installable: list[PrerequisiteResult] = field(default_factory=list)
    manual: list[PrerequisiteResult] = field(default_factory=list)
    outdated: list[PrerequisiteResult] = field(default_factory=list)
    local_only: list[PrerequisiteResult] = field(default_factory=list)
    skipped_optional: list[PrerequisiteResult] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not (self.installable or self.manual or self.outdated)


def plan_resolution(
    results: list[PrerequisiteResult],
    accepted: set[str] | None = None,
    just_installed_locally: set[str] | None = None,
) -> ResolutionPlan:
    """Sort check results into the actions they call for.

    Args:
        results: Fresh check results.
        accepted: Commands the user chose to proceed without.
        just_installed_locally: Commands installed locally during this run;
            they are not offered a global upgrade again.
    """
    accepted = accepted or set()
    just_installed_locally = just_installed_locally or set()
    plan = ResolutionPlan()

    for result in results:
        prereq = result.prerequisite
        if prereq.command in accepted:
            continue
        if result.status is PrerequisiteStatus.INSTALLED_LOCALLY:
            if prereq.can_install_globally and prereq.command not in just_installed_locally:
                plan.local_only.append(result)
        elif result.status is PrerequisiteStatus.OUTDATED:
            plan.outdated.append(result)
        elif result.status is PrerequisiteStatus.MISSING:
            if prereq.optional:
                plan.skipped_optional.append(result)
            elif prereq.installable:
                plan.installable.append(result)
            else:
                plan.manual.append(result)
    return plan


def manual_install_hint(prereq: Prerequisite) -> str:
    if prereq.installable:
        scope = InstallScope.GLOBAL if prereq.can_install_globally else InstallScope.LOCAL
        return " ".join(install_command(prereq, scope))
    return prereq.install_url or prereq.name


class PrerequisiteResolver:
    """Checks, installs and rechecks tools until the project can proceed."""

    def __init__(
        self,
        session: ToolSession,
        prompter: Prompter,
        config: Config | None = None,
        checker: PrerequisiteChecker | None = None,
        installer: ToolInstaller | None = None,
        auto_install: bool = False,
    ) -> None:
        self.session = session
        self.prompter = prompter
        self.config = config or Config()
        self.checker = checker or PrerequisiteChecker(session, config=self.config)
        self.installer = installer or ToolInstaller(session, config=self.config)
        self.auto_install = auto_install
        self._accepted: set[str] = set()
        self._promotion_offered = False

    async def ensure_online(self) -> None:
        """Probe the network and let the user decide whether to go on offline."""
        online = await check_network(
            self.config.network_probe_url, timeout=self.config.timeouts.network_probe
        )
        if online:
            return
        print_warning("No internet connection detected.")
        if not await self.prompter.confirm("Continue anyway?", default=False):
            raise UserDeclinedError(
                "Setup cancelled: no internet connection",
                ["Check your connection and run the command again"],
            )

    async def resolve(self, prereqs: list[Prerequisite]) -> list[PrerequisiteResult]:
        """Run check/install rounds until everything required is usable.

        Raises:
            PrerequisiteError: The user refused an install, chose to exit, or
                the round limit was reached with tools still missing.
        """
        max_rounds = self.config.retry.max_prerequisite_rounds

        for _ in range(max_rounds):
            results = await self.checker.check_all(prereqs)
            self._display(results)
            just_local = {
                cmd for cmd, scope in self.installer.installed.items() if scope is InstallScope.LOCAL
            }
            plan = plan_resolution(results, self._accepted, just_local)

            for result in plan.skipped_optional:
                print_warning(f"Optional tool {result.name} is not installed, skipping.")

            if plan.complete:
                if plan.local_only and await self._offer_global_upgrade(plan.local_only):
                    continue
                print_success("All prerequisites satisfied.")
                return results

            recheck = False
            if plan.installable:
                await self._install(plan.installable)
                recheck = True
            if plan.manual:
                recheck = await self._handle_manual(plan.manual) or recheck
            if plan.outdated:
                await self._handle_outdated(plan.outdated)
            if not recheck:
                return results

        raise PrerequisiteError(
            f"Prerequisites are still unresolved after {max_rounds} checks",
            ["Install the missing tools manually, then run the command again"],
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _install(self, missing: list[PrerequisiteResult]) -> None:
        names = ", ".join(r.name for r in missing)
        if self.auto_install:
            scope = InstallScope.GLOBAL
        else:
            answer = await self.prompter.select(
                f"Missing tools: {names}. How should they be installed?",
                [
                    Choice("global", "Install globally (recommended)"),
                    Choice("local", "Install locally in this project"),
                    Choice("none", "Don't install, exit setup"),
                ],
                default="global",
            )
            if answer == "none":
                raise PrerequisiteError(
                    f"Required tools are not installed: {names}",
                    [manual_install_hint(r.prerequisite) for r in missing],
                )
            scope = InstallScope(answer)

        failed = await self.installer.install_many([r.prerequisite for r in missing], scope)
        if failed:
            print_warning("Could not install: " + ", ".join(p.name for p in failed))

    async def _handle_manual(self, missing: list[PrerequisiteResult]) -> bool:
        """Show manual instructions; returns ``True`` if a recheck was requested."""
        for result in missing:
            prereq = result.prerequisite
            print_instructions(
                f"Install {prereq.name}", prereq.steps_for(sys.platform), prereq.install_url
            )

        answer = await self.prompter.select(
            "What would you like to do?",
            [
                Choice("recheck", "I've installed them, check again"),
                Choice("continue", "Continue without them"),
                Choice("exit", "Exit setup"),
            ],
            default="recheck",
        )
        if answer == "exit":
            raise PrerequisiteError(
                "Setup cancelled: required tools are missing",
                [f"Install {r.name}: {r.prerequisite.install_url}" for r in missing],
            )
        if answer == "continue":
            self._accepted.update(r.prerequisite.command for r in missing)
            print_warning("Continuing without: " + ", ".join(r.name for r in missing))
            return False
        for result in missing:
            self.session.invalidate(result.prerequisite.command)
        return True

    async def _handle_outdated(self, outdated: list[PrerequisiteResult]) -> None:
        for result in outdated:
            print_warning(
                f"{result.name} {result.version} is older than the required "
                f"{result.prerequisite.min_version}."
            )
        if not await self.prompter.confirm("Continue with outdated versions?", default=False):
            raise PrerequisiteError(
                "Setup cancelled: outdated tools",
                [f"Upgrade {r.name}: {manual_install_hint(r.prerequisite)}" for r in outdated],
            )
        self._accepted.update(r.prerequisite.command for r in outdated)

    async def _offer_global_upgrade(self, local_only: list[PrerequisiteResult]) -> bool:
        """Offer a global install for tools only found locally, once per run."""
        if self._promotion_offered or self.auto_install:
            return False
        self._promotion_offered = True

        names = ", ".join(r.name for r in local_only)
        if not await self.prompter.confirm(
            f"{names} only available in this project. Install globally as well?", default=False
        ):
            return False
        await self.installer.install_many([r.prerequisite for r in local_only], InstallScope.GLOBAL)
        return True

    def _display(self, results: list[PrerequisiteResult]) -> None:
        table = Table(title="Prerequisites", show_header=True, header_style="bold cyan")
        table.add_column("Tool")
        table.add_column("Status")
        table.add_column("Version")
        table.add_column("Required", style="dim")
        for result in results:
            table.add_row(
                result.name,
                _STATUS_STYLES[result.status],
                result.version or "-",
                result.prerequisite.min_version or "any",
            )
        console.print(table)
