"""Maps a capability (and database provider) to its setup workflow."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from launchkit.config import Config, DatabaseProvider
from launchkit.prompts import Prompter
from launchkit.providers.cloudflare import CloudflareWorkflow
from launchkit.providers.custom import CustomDatabaseWorkflow
from launchkit.providers.firebase import FirebaseWorkflow
from launchkit.providers.neon import NeonWorkflow
from launchkit.providers.retry import SetupCapability
from launchkit.providers.supabase import SupabaseWorkflow
from launchkit.runner import ToolRunner

SetupFn = Callable[[], Awaitable[Any]]


def setup_for(
    capability: SetupCapability,
    project_name: str,
    prompter: Prompter,
    runner: ToolRunner,
    config: Config,
    fast: bool = False,
    db_provider: DatabaseProvider | None = None,
    project_dir: Path | None = None,
) -> tuple[str, SetupFn]:
    """Return a display label and a zero-argument setup coroutine factory.

    A fresh workflow is built per attempt so no state leaks between retries.
    """
    if capability is SetupCapability.AUTH:
        return "Firebase", lambda: FirebaseWorkflow(
            project_name, prompter, runner, config, fast
        ).run()

    if capability is SetupCapability.DEPLOY:
        return "Cloudflare", lambda: CloudflareWorkflow(
            project_name, prompter, runner, config, fast, project_dir=project_dir
        ).run()

    if db_provider is DatabaseProvider.NEON:
        return "Neon", lambda: NeonWorkflow(project_name, prompter, runner, config, fast).run()
    if db_provider is DatabaseProvider.SUPABASE:
        return "Supabase", lambda: SupabaseWorkflow(
            project_name, prompter, runner, config, fast
        ).run()
    return "Custom PostgreSQL", lambda: CustomDatabaseWorkflow(prompter).run()
