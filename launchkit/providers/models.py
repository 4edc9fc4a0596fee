"""Provider configuration models.

Each setup workflow produces exactly one of ``AuthConfig``, ``DatabaseConfig``
or ``DeployConfig``.  They are frozen once built and are gathered into a
``ProjectConfig`` for configuration synthesis.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from launchkit.config import Config, DatabaseProvider, LocalDefaults


class AuthConfig(BaseModel):
    """Firebase web-app credentials."""

    model_config = ConfigDict(frozen=True)

    project_id: str = Field(min_length=1)
    api_key: str = Field(min_length=1)
    messaging_sender_id: str = Field(min_length=1)
    app_id: str = Field(min_length=1)
    measurement_id: str = ""

    @property
    def auth_domain(self) -> str:
        return f"{self.project_id}.firebaseapp.com"

    @property
    def storage_bucket(self) -> str:
        return f"{self.project_id}.appspot.com"

    @classmethod
    def local(cls, defaults: LocalDefaults) -> "AuthConfig":
        return cls(
            project_id=defaults.firebase_project_id,
            api_key=defaults.firebase_api_key,
            messaging_sender_id=defaults.firebase_sender_id,
            app_id=defaults.firebase_app_id,
            measurement_id=defaults.firebase_measurement_id,
        )


class DatabaseConfig(BaseModel):
    """Postgres connection details and the provider that hosts them."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(min_length=1)
    provider: DatabaseProvider = DatabaseProvider.OTHER

    @classmethod
    def local(cls, defaults: LocalDefaults) -> "DatabaseConfig":
        return cls(url=defaults.database_url, provider=DatabaseProvider.OTHER)


class DeployConfig(BaseModel):
    """Cloudflare Worker target."""

    model_config = ConfigDict(frozen=True)

    worker_name: str = Field(min_length=1)

    @classmethod
    def local(cls, project_name: str, defaults: LocalDefaults) -> "DeployConfig":
        return cls(worker_name=defaults.worker_name(project_name))


class ConnectionFlags(BaseModel):
    """Per-capability switch between the production and local path.

    Every one of the eight combinations is valid.
    """

    model_config = ConfigDict(frozen=True)

    auth: bool = False
    database: bool = False
    deploy: bool = False

    @property
    def any_production(self) -> bool:
        return self.auth or self.database or self.deploy

    @classmethod
    def from_options(cls, full: bool, auth: bool, database: bool, deploy: bool) -> "ConnectionFlags":
        """``full`` switches every capability to production."""
        return cls(auth=auth or full, database=database or full, deploy=deploy or full)


class ProjectConfig(BaseModel):
    """Everything configuration synthesis needs; every field is required."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    directory: Path
    auth: AuthConfig
    database: DatabaseConfig
    deploy: DeployConfig


def build_project_config(
    name: str,
    directory: Path,
    flags: ConnectionFlags,
    config: Config | None = None,
    auth: AuthConfig | None = None,
    database: DatabaseConfig | None = None,
    deploy: DeployConfig | None = None,
) -> ProjectConfig:
    """Assemble a complete ``ProjectConfig``.

    Capabilities whose flag is off get their local defaults.  A capability
    whose flag is on must come with its provider config.

    Raises:
        ValueError: A production capability has no config.
    """
    defaults = (config or Config()).local
    missing = [
        label
        for label, enabled, value in (
            ("auth", flags.auth, auth),
            ("database", flags.database, database),
            ("deploy", flags.deploy, deploy),
        )
        if enabled and value is None
    ]
    if missing:
        raise ValueError(f"Missing provider configuration for: {', '.join(missing)}")

    return ProjectConfig(
        name=name,
        directory=directory,
        auth=auth if flags.auth and auth else AuthConfig.local(defaults),
        database=database if flags.database and database else DatabaseConfig.local(defaults),
        deploy=deploy if flags.deploy and deploy else DeployConfig.local(name, defaults),
    )
