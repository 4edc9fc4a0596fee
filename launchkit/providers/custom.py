"""Bring-your-own Postgres database.

There is no CLI to drive, so this workflow is the manual path alone: paste
a connection string, or assemble one from its parts.
"""

from __future__ import annotations

from urllib.parse import quote

from launchkit.config import DatabaseProvider
from launchkit.prompts import Choice, Prompter
from launchkit.providers.models import DatabaseConfig
from launchkit.utils import print_instructions, validate_postgres_url


def _required(label: str):
    def check(value: str) -> str | None:
        return None if value else f"{label} is required"

    return check


def _validate_port(value: str) -> str | None:
    if value.isdigit() and 0 < int(value) < 65536:
        return None
    return "Port must be a number between 1 and 65535"


def build_postgres_url(host: str, port: str, database: str, user: str, password: str) -> str:
    credentials = quote(user, safe="")
    if password:
        credentials += ":" + quote(password, safe="")
    return f"postgresql://{credentials}@{host}:{port}/{database}"


class CustomDatabaseWorkflow:
    """Collect connection details for a self-managed Postgres server."""

    display_name = "Custom PostgreSQL"

    def __init__(self, prompter: Prompter) -> None:
        self.prompter = prompter

    async def run(self) -> DatabaseConfig:
        return await self.manual_entry()

    async def manual_entry(self) -> DatabaseConfig:
        print_instructions(
            "Custom PostgreSQL",
            [
                "Make sure the database server is reachable from your machine",
                "Have the host, port, database name, user and password ready",
            ],
        )
        mode = await self.prompter.select(
            "How would you like to provide the connection?",
            [
                Choice("url", "Paste a full connection string"),
                Choice("parts", "Enter host, port, database and credentials"),
            ],
            default="url",
        )
        if mode == "url":
            url = await self.prompter.secret("Connection string", validate=validate_postgres_url)
            return DatabaseConfig(url=url, provider=DatabaseProvider.OTHER)

        host = await self.prompter.text("Host", default="localhost", validate=_required("Host"))
        port = await self.prompter.text("Port", default="5432", validate=_validate_port)
        database = await self.prompter.text("Database", default="postgres", validate=_required("Database"))
        user = await self.prompter.text("User", default="postgres", validate=_required("User"))
        password = await self.prompter.secret("Password")
        return DatabaseConfig(
            url=build_postgres_url(host, port, database, user, password),
            provider=DatabaseProvider.OTHER,
        )
