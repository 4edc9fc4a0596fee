"""Retroactive production connections and project status.

``connect_capability`` upgrades one capability of an existing project from
its local default to a real provider.  It re-runs that capability's setup
workflow and rewrites only its slice of the configuration, so the other two
capabilities keep their exact values.

``show_status`` prints the detected mode of every capability.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

from rich.panel import Panel
from rich.table import Table

from launchkit.auth import AuthChecker, BatchAuthenticator, providers_for
from launchkit.config import Config, DatabaseProvider
from launchkit.errors import LaunchkitError
from launchkit.orchestrator import (
    CONNECT_HINTS,
    choose_database_provider,
    enabled_capabilities,
)
from launchkit.prereqs import (
    PrerequisiteChecker,
    PrerequisiteResolver,
    ToolInstaller,
    required_prerequisites,
)
from launchkit.prereqs.catalog import CORE_PREREQUISITES
from launchkit.prompts import ConsolePrompter, Prompter
from launchkit.providers import SetupCapability, SetupRetrier, setup_for
from launchkit.runner import ToolRunner
from launchkit.session import ToolSession
from launchkit.synth import (
    CLIENT_CONFIG_FILE,
    ENV_FILE,
    MANIFEST_FILE,
    UI_ENV_FILE,
    CapabilityMode,
    ConfigSynthesizer,
    ProjectState,
    detect_project_state,
)
from launchkit.utils import console, mask_connection_string, print_info, print_success

TOUCHED_FILES: dict[SetupCapability, tuple[Path, ...]] = {
    SetupCapability.AUTH: (ENV_FILE, MANIFEST_FILE, CLIENT_CONFIG_FILE, UI_ENV_FILE),
    SetupCapability.DATABASE: (ENV_FILE, MANIFEST_FILE),
    SetupCapability.DEPLOY: (ENV_FILE, MANIFEST_FILE),
}

CAPABILITY_LABELS = {
    SetupCapability.AUTH: "Authentication",
    SetupCapability.DATABASE: "Database",
    SetupCapability.DEPLOY: "Deployment",
}

_MODE_STYLES = {
    CapabilityMode.PRODUCTION: "green",
    CapabilityMode.LOCAL: "cyan",
    CapabilityMode.NOT_CONFIGURED: "dim",
    CapabilityMode.PARTIAL: "yellow",
}


def validate_project(project_dir: Path) -> None:
    """Make sure *project_dir* looks like a scaffolded project.

    Raises:
        LaunchkitError: ``package.json`` or the server/ui folders are missing.
    """
    missing = [
        name for name in ("package.json", "server", "ui") if not (project_dir / name).exists()
    ]
    if missing:
        raise LaunchkitError(
            f"{project_dir} does not look like a launchkit project (missing {', '.join(missing)})",
            [
                "Run the command from the project root, or pass --path",
                "Create a new project with `create-launchkit-app my-app`",
            ],
        )


def backup_files(project_dir: Path, files: tuple[Path, ...]) -> list[Path]:
    """Copy each existing file to ``<name>.backup`` next to it."""
    backups = []
    for relative in files:
        source = project_dir / relative
        if source.exists():
            backup = source.with_name(source.name + ".backup")
            shutil.copy2(source, backup)
            backups.append(backup.relative_to(project_dir))
    return backups


def describe_capability(state: ProjectState, capability: SetupCapability) -> str:
    """One-line human description of a capability's current value."""
    if capability is SetupCapability.DATABASE:
        url = state.env.get("DATABASE_URL")
        if not url:
            return "-"
        provider = state.database_provider.value if state.database_provider else "other"
        return f"{mask_connection_string(url)} ({provider})"
    if capability is SetupCapability.AUTH:
        return state.env.get("FIREBASE_PROJECT_ID") or state.client_config.get("projectId") or "-"
    return state.env.get("WORKER_NAME") or state.manifest_name or "-"


# ---------------------------------------------------------------------------
# Connect
# ---------------------------------------------------------------------------


async def connect_capability(
    project_dir: Path,
    capability: SetupCapability,
    *,
    db_provider: DatabaseProvider | None = None,
    config: Config | None = None,
    prompter: Prompter | None = None,
    runner: ToolRunner | None = None,
    fast: bool = False,
    skip_prereqs: bool = False,
) -> Any:
    """Switch *capability* of the project at *project_dir* to production.

    Returns the provider config that was written, or ``None`` when the user
    chose to keep the current configuration.

    Raises:
        LaunchkitError: Validation, prerequisites, login or setup failed.
    """
    project_dir = Path(project_dir).resolve()
    config = config or Config()
    prompter = prompter or ConsolePrompter()
    session = runner.session if runner else ToolSession(project_dir)
    runner = runner or ToolRunner(
        session, cwd=project_dir, default_timeout=config.timeouts.provider_cli
    )
    label = CAPABILITY_LABELS[capability]

    validate_project(project_dir)
    state = detect_project_state(project_dir, config)
    print_success(f"Project: {state.name}")

    current = state.mode(capability)
    print_info(f"{label}: {current.value} ({describe_capability(state, capability)})")
    if current is CapabilityMode.PRODUCTION and not await prompter.confirm(
        f"{label} is already in production. Reconfigure it?", default=False
    ):
        print_info("No changes made.")
        return None
    if not fast and not await prompter.confirm(
        f"Proceed with {label.lower()} production setup?", default=True
    ):
        print_info("Operation cancelled.")
        return None

    backups = backup_files(project_dir, TOUCHED_FILES[capability])
    for backup in backups:
        print_info(f"Backed up {backup}")

    if capability is SetupCapability.DATABASE:
        db_provider = await choose_database_provider(prompter, db_provider, fast)

    flags = {
        "auth": capability is SetupCapability.AUTH,
        "database": capability is SetupCapability.DATABASE,
        "deploy": capability is SetupCapability.DEPLOY,
    }
    if not skip_prereqs:
        # The project's own toolchain is already in place; only the provider CLI matters.
        needed = [
            p
            for p in required_prerequisites(db_provider=db_provider, **flags)
            if p not in CORE_PREREQUISITES and not p.bundled
        ]
        if needed:
            resolver = PrerequisiteResolver(
                session,
                prompter,
                config,
                checker=PrerequisiteChecker(session, runner, config),
                installer=ToolInstaller(session, runner, config),
            )
            await resolver.resolve(needed)

    providers = providers_for(db_provider=db_provider, **flags)
    if providers:
        status = await AuthChecker(session, runner, config).check(providers)
        authenticator = BatchAuthenticator(session, prompter, runner, config)
        await authenticator.authenticate(status, providers)

    name, setup = setup_for(
        capability,
        state.name,
        prompter,
        runner,
        config,
        fast=fast,
        db_provider=db_provider,
        project_dir=project_dir,
    )
    retrier = SetupRetrier(prompter, max_attempts=config.retry.max_setup_attempts, fast=fast)
    result = await retrier.run(capability, setup, name)

    report = await ConfigSynthesizer(config).apply_capability(project_dir, capability, result)
    for path in report.written:
        print_success(f"Updated {path}")

    steps = ["Restart the development server: pnpm run dev"]
    if capability is SetupCapability.DATABASE:
        steps.append("Create the schema in the new database: pnpm run post-setup")
    if capability is SetupCapability.DEPLOY:
        steps.append("Deploy the API: pnpm run deploy")
    if backups:
        steps.append("To revert, restore the .backup copies written next to each file")
    console.print(Panel("\n".join(steps), title=f"{label} connected", border_style="green"))
    return result


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


def show_status(project_dir: Path, config: Config | None = None) -> ProjectState:
    """Print a table with one row per capability and return the detected state."""
    project_dir = Path(project_dir).resolve()
    validate_project(project_dir)
    state = detect_project_state(project_dir, config)

    table = Table(title=f"{state.name} configuration", show_header=True, header_style="bold cyan")
    table.add_column("Capability", style="bold", no_wrap=True)
    table.add_column("Mode")
    table.add_column("Details")

    for capability in SetupCapability:
        mode = state.mode(capability)
        style = _MODE_STYLES[mode]
        table.add_row(
            CAPABILITY_LABELS[capability],
            f"[{style}]{mode.value}[/{style}]",
            describe_capability(state, capability),
        )
    console.print(table)

    connected = enabled_capabilities(state.flags())
    pending = [c for c in SetupCapability if c not in connected]
    if pending:
        console.print("[dim]Connect production services:[/dim]")
        for capability in pending:
            console.print(f"  [cyan]{CONNECT_HINTS[capability]}[/cyan]")
    return state
