"""Supabase Postgres provider workflow.

Supabase never reveals an existing project's database password, so only a
project created in this run can be turned into a connection string
automatically; an existing project goes through manual entry with a link
to its database settings page.
"""

from __future__ import annotations

import secrets
from urllib.parse import quote

from launchkit.auth.status import Provider
from launchkit.config import Config, DatabaseProvider
from launchkit.prompts import Choice, Prompter
from launchkit.providers.base import ProvisioningWorkflow, Resource
from launchkit.providers.models import DatabaseConfig
from launchkit.runner import ToolRunner
from launchkit.utils import parse_json_output, print_info, validate_postgres_url


def build_connection_string(project_ref: str, password: str) -> str:
    return f"postgresql://postgres:{quote(password, safe='')}@db.{project_ref}.supabase.co:5432/postgres"


class SupabaseWorkflow(ProvisioningWorkflow[DatabaseConfig]):
    """Create or select a Supabase project."""

    display_name = "Supabase"
    resource_kind = "project"
    command = "supabase"
    provider = Provider.SUPABASE
    name_suffix = "-db"
    max_name_length = 50
    conflict_markers = ("already exists",)
    manual_url = "https://supabase.com/dashboard"
    manual_steps = (
        "Sign up or log in at https://supabase.com",
        "Create a new project and note the database password",
        "Open Project Settings > Database > Connection string (URI)",
        "Copy the string and replace [YOUR-PASSWORD] with your password",
    )

    def __init__(
        self,
        project_name: str,
        prompter: Prompter,
        runner: ToolRunner,
        config: Config | None = None,
        fast: bool = False,
    ) -> None:
        super().__init__(project_name, prompter, runner, config, fast)
        # Generated once; the same password must reach both the API and the env file.
        self.db_password = secrets.token_urlsafe(24)

    async def list_resources(self) -> list[Resource]:
        result = await self.cli("projects", "list", "--output", "json")
        payload = parse_json_output(result.stdout)
        projects = payload if isinstance(payload, list) else []
        resources = []
        for project in projects:
            if not isinstance(project, dict):
                continue
            ref = project.get("id") or project.get("ref")
            if ref:
                resources.append(Resource(id=ref, name=project.get("name", ref), details=project))
        return resources

    async def create_resource(self, name: str) -> Resource:
        org_id = await self._choose_organization()
        args = ["projects", "create", name]
        if org_id:
            args += ["--org-id", org_id]
        args += [
            "--db-password", self.db_password,
            "--region", self.config.supabase_region,
            "--output", "json",
        ]
        result = await self.cli(*args)
        payload = parse_json_output(result.stdout)
        details = payload if isinstance(payload, dict) else {}
        ref = details.get("id") or details.get("ref") or name
        return Resource(id=ref, name=name, details={**details, "created": True})

    async def _choose_organization(self) -> str | None:
        result = await self.cli("orgs", "list", "--output", "json")
        orgs = parse_json_output(result.stdout)
        orgs = [o for o in orgs if isinstance(o, dict) and o.get("id")] if isinstance(orgs, list) else []
        if not orgs:
            return None
        if len(orgs) == 1 or self.fast:
            return orgs[0]["id"]
        return await self.prompter.select(
            "Select the Supabase organization",
            [Choice(o["id"], o.get("name", o["id"])) for o in orgs],
        )

    async def extract(self, resource: Resource) -> DatabaseConfig | None:
        if not resource.details.get("created"):
            return None
        return DatabaseConfig(
            url=build_connection_string(resource.id, self.db_password),
            provider=DatabaseProvider.SUPABASE,
        )

    async def manual_entry(self, resource: Resource | None = None) -> DatabaseConfig:
        if resource is not None:
            self.show_manual_instructions(
                [
                    f"Open the database settings of project '{resource.name}'",
                    "Copy the Connection string (URI)",
                    "Replace [YOUR-PASSWORD] with the project's database password",
                ]
            )
            print_info(f"Database settings: {self.manual_url}/project/{resource.id}/settings/database")
        else:
            self.show_manual_instructions()
        url = await self.prompter.secret(
            "Paste your Supabase connection string", validate=validate_postgres_url
        )
        return DatabaseConfig(url=url, provider=DatabaseProvider.SUPABASE)
