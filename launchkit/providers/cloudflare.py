"""Cloudflare Workers deploy target.

A Worker comes into existence on its first ``wrangler deploy``, so creation
only reserves a validated name.  Discovery offers the name already written
in the project's manifest, which matters when reconfiguring a project.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from launchkit.auth.status import Provider
from launchkit.config import Config
from launchkit.prompts import Prompter
from launchkit.providers.base import ProvisioningWorkflow, Resource
from launchkit.providers.models import DeployConfig
from launchkit.runner import ToolRunner
from launchkit.utils import print_debug, validate_worker_name

MANIFEST_PATH = Path("server") / "wrangler.toml"


class CloudflareWorkflow(ProvisioningWorkflow[DeployConfig]):
    """Choose the Worker name the API deploys under."""

    display_name = "Cloudflare"
    resource_kind = "worker"
    command = "wrangler"
    provider = Provider.CLOUDFLARE
    name_suffix = "-api"
    max_name_length = 63
    manual_url = "https://dash.cloudflare.com"
    manual_steps = (
        "Log in to the Cloudflare dashboard",
        "Open Workers & Pages and note (or create) the Worker name",
        "Names use lowercase letters, numbers and hyphens",
    )

    def __init__(
        self,
        project_name: str,
        prompter: Prompter,
        runner: ToolRunner,
        config: Config | None = None,
        fast: bool = False,
        project_dir: Path | None = None,
    ) -> None:
        super().__init__(project_name, prompter, runner, config, fast)
        self.project_dir = project_dir

    async def list_resources(self) -> list[Resource]:
        if self.project_dir is None:
            return []
        manifest = self.project_dir / MANIFEST_PATH
        if not manifest.exists():
            return []
        try:
            data = tomllib.loads(manifest.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            print_debug(f"unreadable manifest {manifest}: {exc}")
            return []
        name = data.get("name")
        if not name or name.endswith(self.config.local.worker_suffix):
            return []
        return [Resource(id=name, name=name, details={"source": str(manifest)})]

    async def create_resource(self, name: str) -> Resource:
        return Resource(id=name, name=name)

    async def extract(self, resource: Resource) -> DeployConfig | None:
        return DeployConfig(worker_name=resource.id)

    def validate_name(self, name: str) -> str | None:
        return validate_worker_name(name)

    async def manual_entry(self, resource: Resource | None = None) -> DeployConfig:
        self.show_manual_instructions()
        name = await self.prompter.text(
            "Worker name", default=self.default_name(), validate=validate_worker_name
        )
        return DeployConfig(worker_name=name)
