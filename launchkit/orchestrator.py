"""Launchkit orchestrator.

Implements the six-step scaffolding run:

Step 1: PREREQUISITES -- Network probe, database choice, tool check/install.
Step 2: PROJECT       -- Target directory, template download, ``pnpm install``.
Step 3: AUTHENTICATE  -- Probe provider logins, batch the missing ones.
Step 4: PROVISION     -- One retried setup workflow per production capability.
Step 5: CONFIGURE     -- Merge results into a ProjectConfig and write files.
Step 6: FINISH        -- ``pnpm post-setup`` and next steps.

Each step stops the run on failure; later steps depend on earlier ones.
An interrupted or failed run removes a directory it created itself, as long
as configuration was not written yet.
"""

from __future__ import annotations

import shutil
import time
from pathlib import Path
from typing import Any

from rich.panel import Panel

from launchkit.auth import AuthChecker, BatchAuthenticator, providers_for
from launchkit.config import Config, CreateOptions, DatabaseProvider
from launchkit.errors import LaunchkitError
from launchkit.prereqs import (
    PrerequisiteChecker,
    PrerequisiteResolver,
    ToolInstaller,
    required_prerequisites,
)
from launchkit.project import ProjectTarget, TemplateFetcher, prepare_directory, resolve_target
from launchkit.prompts import Choice, ConsolePrompter, Prompter
from launchkit.providers import (
    AuthConfig,
    ConnectionFlags,
    DatabaseConfig,
    DeployConfig,
    ProjectConfig,
    SetupCapability,
    SetupRetrier,
    build_project_config,
    setup_for,
)
from launchkit.runner import ToolRunner
from launchkit.session import ToolSession
from launchkit.synth import ConfigSynthesizer
from launchkit.utils import (
    console,
    format_duration,
    load_json,
    print_debug,
    print_info,
    print_phase_header,
    print_success,
    print_summary_table,
    print_warning,
    validate_project_name,
)

DATABASE_CHOICES = [
    Choice(DatabaseProvider.NEON.value, "Neon (serverless Postgres)"),
    Choice(DatabaseProvider.SUPABASE.value, "Supabase"),
    Choice(DatabaseProvider.OTHER.value, "Other PostgreSQL (enter a connection string)"),
]

CONNECT_HINTS = {
    SetupCapability.AUTH: "create-launchkit-app --connect --auth",
    SetupCapability.DATABASE: "create-launchkit-app --connect --database",
    SetupCapability.DEPLOY: "create-launchkit-app --connect --deploy",
}


async def choose_database_provider(
    prompter: Prompter, selected: DatabaseProvider | None = None, fast: bool = False
) -> DatabaseProvider:
    """An explicit choice wins, fast mode defaults to Neon, otherwise ask."""
    if selected is not None:
        return selected
    if fast:
        return DatabaseProvider.NEON
    answer = await prompter.select(
        "Which database provider would you like to use?",
        DATABASE_CHOICES,
        default=DatabaseProvider.NEON.value,
    )
    return DatabaseProvider(answer)


def enabled_capabilities(flags: ConnectionFlags) -> list[SetupCapability]:
    return [
        capability
        for capability, enabled in (
            (SetupCapability.AUTH, flags.auth),
            (SetupCapability.DATABASE, flags.database),
            (SetupCapability.DEPLOY, flags.deploy),
        )
        if enabled
    ]


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """Drives one ``create-launchkit-app`` run from prerequisites to next steps.

    Attributes:
        options: Parsed command-line options.
        config: Timeouts, retry bounds and local defaults.
        flags: Production/local switch per capability.
        state: Step bookkeeping, mainly for diagnostics.
    """

    def __init__(
        self,
        options: CreateOptions,
        config: Config | None = None,
        prompter: Prompter | None = None,
        session: ToolSession | None = None,
        runner: ToolRunner | None = None,
        fetcher: TemplateFetcher | None = None,
        synthesizer: ConfigSynthesizer | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.options = options
        self.config = config or Config()
        self.prompter = prompter or ConsolePrompter()
        self.cwd = Path(cwd or Path.cwd())
        self.session = session or ToolSession(self.cwd)
        self.runner = runner or ToolRunner(
            self.session, default_timeout=self.config.timeouts.provider_cli
        )
        self.fetcher = fetcher or TemplateFetcher(self.runner)
        self.synthesizer = synthesizer or ConfigSynthesizer(self.config)
        self.flags = ConnectionFlags.from_options(
            options.full, options.auth, options.database, options.deploy
        )
        self.db_provider: DatabaseProvider | None = options.db
        self.target: ProjectTarget | None = None
        self.synthesized = False
        self.state: dict[str, Any] = {"steps_completed": []}

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> ProjectConfig:
        """Execute all six steps and return the synthesized ``ProjectConfig``.

        Raises:
            LaunchkitError: Any step failed; the run stops there.
        """
        start = time.monotonic()
        name = await self._project_name()

        mode = "production" if self.options.production_mode else "local"
        console.print(
            Panel(
                f"[bold bright_cyan]create-launchkit-app[/bold bright_cyan]\n"
                f"Project : {name}\n"
                f"Mode    : {mode}\n"
                f"Template: {self.options.template_url or self.config.template_url}",
                title="[bold]Launchkit[/bold]",
                border_style="bright_cyan",
            )
        )

        print_phase_header(1)
        await self.step_prerequisites()
        self._complete(1)

        print_phase_header(2)
        await self.step_project(name)
        self._complete(2)

        print_phase_header(3)
        await self.step_authenticate()
        self._complete(3)

        print_phase_header(4)
        results = await self.step_provision()
        self._complete(4)

        print_phase_header(5)
        project = await self.step_configure(results)
        self._complete(5)

        print_phase_header(6)
        await self.step_finish(project)
        self._complete(6)

        print_success(f"Project {project.name} is ready ({format_duration(time.monotonic() - start)}).")
        return project

    async def _project_name(self) -> str:
        if self.options.project_name:
            return self.options.project_name
        if self.options.fast:
            return "my-app"
        return await self.prompter.text(
            "What is your project named?", default="my-app", validate=_validate_name_or_dot
        )

    def _complete(self, step: int) -> None:
        self.state["steps_completed"].append(step)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def step_prerequisites(self) -> None:
        resolver = PrerequisiteResolver(
            self.session,
            self.prompter,
            self.config,
            checker=PrerequisiteChecker(self.session, self.runner, self.config),
            installer=ToolInstaller(self.session, self.runner, self.config),
            auto_install=self.options.install_deps,
        )
        await resolver.ensure_online()

        if self.flags.database:
            self.db_provider = await choose_database_provider(
                self.prompter, self.db_provider, self.options.fast
            )
            print_info(f"Database provider: {self.db_provider.value}")

        if self.options.skip_prereqs:
            print_warning("Skipping prerequisite checks.")
            return
        await resolver.resolve(
            required_prerequisites(
                self.flags.auth, self.flags.database, self.flags.deploy, self.db_provider
            )
        )

    async def step_project(self, name: str) -> None:
        self.target = resolve_target(name, self.cwd)
        await prepare_directory(self.target, self.prompter, fast=self.options.fast)
        print_debug(f"project directory: {self.target.directory}")

        await self.fetcher.fetch(
            self.options.template_url or self.config.template_url,
            self.target.directory,
            self.options.branch or self.config.template_branch,
        )
        print_success("Template downloaded.")

        # Tools installed locally from here on land in the project.
        self.session.move_to(self.target.directory)
        self.runner.cwd = self.target.directory

        await self._pnpm(["install"], "Installing dependencies")

    async def step_authenticate(self) -> None:
        providers = providers_for(
            self.flags.auth, self.flags.database, self.flags.deploy, self.db_provider
        )
        if not providers:
            print_info("Local mode: no provider logins needed.")
            return
        status = await AuthChecker(self.session, self.runner, self.config).check(providers)
        authenticator = BatchAuthenticator(self.session, self.prompter, self.runner, self.config)
        await authenticator.authenticate(status, providers)

    async def step_provision(self) -> dict[SetupCapability, Any]:
        assert self.target is not None
        retrier = SetupRetrier(
            self.prompter,
            max_attempts=self.config.retry.max_setup_attempts,
            fast=self.options.fast,
        )
        results: dict[SetupCapability, Any] = {}
        capabilities = enabled_capabilities(self.flags)
        if not capabilities:
            print_info("Local mode: using the embedded database, auth emulator and local worker.")
        for capability in capabilities:
            label, setup = setup_for(
                capability,
                self.target.name,
                self.prompter,
                self.runner,
                self.config,
                fast=self.options.fast,
                db_provider=self.db_provider,
                project_dir=self.target.directory,
            )
            results[capability] = await retrier.run(capability, setup, label)
            print_success(f"{label} configured.")
        return results

    async def step_configure(self, results: dict[SetupCapability, Any]) -> ProjectConfig:
        assert self.target is not None
        auth: AuthConfig | None = results.get(SetupCapability.AUTH)
        database: DatabaseConfig | None = results.get(SetupCapability.DATABASE)
        deploy: DeployConfig | None = results.get(SetupCapability.DEPLOY)

        project = build_project_config(
            self.target.name,
            self.target.directory,
            self.flags,
            self.config,
            auth=auth,
            database=database,
            deploy=deploy,
        )
        report = await self.synthesizer.synthesize(project, self.flags)
        self.synthesized = True
        print_success(f"Wrote {len(report.written)} configuration file(s).")
        return project

    async def step_finish(self, project: ProjectConfig) -> None:
        if has_script(project.directory, "post-setup"):
            await self._pnpm(["run", "post-setup"], "Running post-setup")
        self.show_next_steps(project)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _pnpm(self, args: list[str], label: str) -> None:
        assert self.target is not None
        print_info(f"{label}...")
        result = await self.runner.exec(
            ["pnpm", *args],
            cwd=self.target.directory,
            timeout=self.config.timeouts.dependency_install,
            interactive=True,
        )
        if not result.ok:
            raise LaunchkitError(
                f"`pnpm {' '.join(args)}` failed",
                [
                    f"cd {self.target.directory}",
                    f"Run `pnpm {' '.join(args)}` to see the full output",
                ],
            )

    def show_next_steps(self, project: ProjectConfig) -> None:
        rows = {
            "Auth": "Firebase" if self.flags.auth else "Local emulator",
            "Database": (
                self.db_provider.value if self.flags.database and self.db_provider else "Embedded Postgres"
            ),
            "Deploy": project.deploy.worker_name if self.flags.deploy else "Local only",
        }
        print_summary_table(rows, title=f"{project.name}")

        cd = [] if self.target and self.target.in_place else [f"cd {project.name}"]
        steps = [*cd, "pnpm run dev"]
        if self.flags.deploy:
            steps.append("pnpm run deploy")
        console.print(Panel("\n".join(steps), title="Next steps", border_style="green"))

        local = [c for c in SetupCapability if c not in enabled_capabilities(self.flags)]
        if local:
            console.print("[dim]Connect production services later:[/dim]")
            for capability in local:
                console.print(f"  [cyan]{CONNECT_HINTS[capability]}[/cyan]")

    def cleanup(self) -> None:
        """Remove a directory this run created but never finished configuring."""
        if self.target is None or not self.target.created or self.synthesized:
            return
        directory = self.target.directory
        if directory.exists():
            print_warning(f"Cleaning up incomplete project at {directory}")
            shutil.rmtree(directory, ignore_errors=True)


def has_script(project_dir: Path, script: str) -> bool:
    package = project_dir / "package.json"
    if not package.exists():
        return False
    scripts = load_json(package).get("scripts") or {}
    return script in scripts


def _validate_name_or_dot(name: str) -> str | None:
    if name == ".":
        return None
    return validate_project_name(name)
