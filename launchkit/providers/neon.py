"""Neon Postgres provider workflow."""

from __future__ import annotations

from launchkit.auth.status import Provider
from launchkit.config import DatabaseProvider
from launchkit.providers.base import ProvisioningWorkflow, Resource
from launchkit.providers.models import DatabaseConfig
from launchkit.utils import parse_json_output, validate_postgres_url


class NeonWorkflow(ProvisioningWorkflow[DatabaseConfig]):
    """Create or select a Neon project and read its connection string."""

    display_name = "Neon"
    resource_kind = "project"
    command = "neonctl"
    provider = Provider.NEON
    name_suffix = "-db"
    max_name_length = 63
    conflict_markers = ("already exists",)
    manual_url = "https://console.neon.tech"
    manual_steps = (
        "Sign up or log in at https://neon.tech",
        "Create a new project (the default region is fine)",
        "Open Connection Details on the project dashboard",
        "Copy the connection string (it starts with postgresql://)",
    )

    async def cli_available(self) -> bool:
        result = await self.runner.run(
            self.command, ["--version"], timeout=self.config.timeouts.local_probe, check=False
        )
        return result.ok

    async def list_resources(self) -> list[Resource]:
        result = await self.cli("projects", "list", "--output", "json")
        payload = parse_json_output(result.stdout)
        if isinstance(payload, dict):
            projects = payload.get("projects", [])
        elif isinstance(payload, list):
            projects = payload
        else:
            projects = []
        return [
            Resource(id=p["id"], name=p.get("name", p["id"]), details=p)
            for p in projects
            if isinstance(p, dict) and p.get("id")
        ]

    async def create_resource(self, name: str) -> Resource:
        result = await self.cli("projects", "create", "--name", name, "--output", "json")
        payload = parse_json_output(result.stdout) or {}
        project = payload.get("project", payload) if isinstance(payload, dict) else {}
        project_id = project.get("id")
        if not project_id:
            # Creation went through but the id is unknown; listing finds it.
            for resource in await self.list_resources():
                if resource.name == name:
                    return resource
            return Resource(id=name, name=name)
        return Resource(id=project_id, name=project.get("name", name), details=project)

    async def extract(self, resource: Resource) -> DatabaseConfig | None:
        result = await self.cli("connection-string", "--project-id", resource.id)
        url = result.stdout.strip().splitlines()[-1].strip() if result.stdout.strip() else ""
        if validate_postgres_url(url) is not None:
            return None
        return DatabaseConfig(url=url, provider=DatabaseProvider.NEON)

    async def manual_entry(self, resource: Resource | None = None) -> DatabaseConfig:
        self.show_manual_instructions()
        url = await self.prompter.secret(
            "Paste your Neon connection string", validate=validate_postgres_url
        )
        return DatabaseConfig(url=url, provider=DatabaseProvider.NEON)
