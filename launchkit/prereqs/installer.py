"""Package-manager installs for missing tools.

Installs never raise: every failure is reported and converted into ``False``
so the caller can aggregate several tools into one consolidated report.
"""

from __future__ import annotations

import sys

from launchkit.config import Config
from launchkit.prereqs.models import InstallScope, Prerequisite
from launchkit.runner import CommandResult, ToolRunner
from launchkit.session import ToolSession
from launchkit.utils import create_progress, print_error, print_info, print_success, print_warning

_PERMISSION_MARKERS = ("eacces", "permission denied", "eperm")


def is_permission_error(output: str) -> bool:
    lowered = output.lower()
    return any(marker in lowered for marker in _PERMISSION_MARKERS)


def install_command(prereq: Prerequisite, scope: InstallScope) -> list[str]:
    """The npm invocation that installs *prereq* in *scope*."""
    if scope is InstallScope.GLOBAL:
        return ["npm", "install", "-g", prereq.npm_package or prereq.command]
    return ["npm", "install", prereq.npm_package or prereq.command, "--no-save"]


class ToolInstaller:
    """Installs npm-distributed CLIs globally or into the project."""

    def __init__(
        self,
        session: ToolSession,
        runner: ToolRunner | None = None,
        config: Config | None = None,
    ) -> None:
        self.session = session
        self.runner = runner or ToolRunner(session)
        self.config = config or Config()
        self.installed: dict[str, InstallScope] = {}

    async def install(self, prereq: Prerequisite, scope: InstallScope = InstallScope.GLOBAL) -> bool:
        """Install *prereq*, preferring *scope*.

        An unsupported preferred scope falls through to the other one, and a
        global install refused for lack of permissions is retried locally.

        Returns:
            ``True`` if the tool ended up installed in either scope.
        """
        if not prereq.installable:
            print_warning(f"{prereq.name} cannot be installed automatically.")
            return False

        other = InstallScope.LOCAL if scope is InstallScope.GLOBAL else InstallScope.GLOBAL
        if not prereq.supports(scope):
            print_info(f"{prereq.name} does not support {scope.value} install, using {other.value}.")
            scope = other

        result = await self._run_install(prereq, scope)
        if result.ok:
            return self._record(prereq, scope)

        if (
            scope is InstallScope.GLOBAL
            and is_permission_error(result.output)
            and prereq.supports(InstallScope.LOCAL)
        ):
            print_warning(f"Global install of {prereq.name} was denied, installing locally instead.")
            if sys.platform == "darwin":
                print_info(
                    f"Tip: `sudo npm install -g {prereq.npm_package}` installs it for every project."
                )
            local_result = await self._run_install(prereq, InstallScope.LOCAL)
            if local_result.ok:
                return self._record(prereq, InstallScope.LOCAL)
            result = local_result

        print_error(f"Failed to install {prereq.name}: {result.stderr or result.stdout}")
        return False

    async def install_many(
        self, prereqs: list[Prerequisite], scope: InstallScope
    ) -> list[Prerequisite]:
        """Install several tools; returns the ones that failed."""
        failed = []
        for prereq in prereqs:
            if not await self.install(prereq, scope):
                failed.append(prereq)
        return failed

    async def _run_install(self, prereq: Prerequisite, scope: InstallScope) -> CommandResult:
        with create_progress() as progress:
            progress.add_task(f"Installing {prereq.name} ({scope.value})...", total=None)
            return await self.runner.exec(
                install_command(prereq, scope),
                timeout=self.config.timeouts.install,
                cwd=self.session.project_dir,
            )

    def _record(self, prereq: Prerequisite, scope: InstallScope) -> bool:
        # Cached paths are stale after an install.
        self.session.invalidate(prereq.command)
        self.installed[prereq.command] = scope
        where = "globally" if scope is InstallScope.GLOBAL else "locally"
        print_success(f"Installed {prereq.name} {where}.")
        return True
