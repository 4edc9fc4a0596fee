"""Detect an existing project's configuration state from the files on disk.

Used by ``--status`` and by ``--connect`` before anything is rewritten.
Reads ``server/.env`` (via python-dotenv), the client Firebase JSON and the
Worker manifest, and classifies each capability as production, local,
not configured or partial (files disagree with each other).
"""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

from launchkit.config import Config, DatabaseProvider
from launchkit.providers.models import ConnectionFlags
from launchkit.providers.retry import SetupCapability
from launchkit.synth.synthesizer import CLIENT_CONFIG_FILE, ENV_FILE, MANIFEST_FILE, parse_env
from launchkit.utils import load_json

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "0.0.0.0"})


class CapabilityMode(str, Enum):
    PRODUCTION = "production"
    LOCAL = "local"
    NOT_CONFIGURED = "not configured"
    PARTIAL = "partial"


@dataclass
class ProjectState:
    """What the configuration files of one project currently say."""

    directory: Path
    name: str
    modes: dict[SetupCapability, CapabilityMode] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    client_config: dict[str, str] = field(default_factory=dict)
    manifest_name: str | None = None
    database_provider: DatabaseProvider | None = None

    def mode(self, capability: SetupCapability) -> CapabilityMode:
        return self.modes.get(capability, CapabilityMode.NOT_CONFIGURED)

    def is_production(self, capability: SetupCapability) -> bool:
        return self.mode(capability) is CapabilityMode.PRODUCTION

    def flags(self) -> ConnectionFlags:
        return ConnectionFlags(
            auth=self.is_production(SetupCapability.AUTH),
            database=self.is_production(SetupCapability.DATABASE),
            deploy=self.is_production(SetupCapability.DEPLOY),
        )


def provider_from_url(url: str) -> DatabaseProvider:
    host = (urlparse(url).hostname or "").lower()
    if host.endswith("neon.tech"):
        return DatabaseProvider.NEON
    if host.endswith("supabase.co") or host.endswith("supabase.com"):
        return DatabaseProvider.SUPABASE
    return DatabaseProvider.OTHER


def is_loopback_url(url: str) -> bool:
    return (urlparse(url).hostname or "").lower() in LOOPBACK_HOSTS


def classify_database(env: dict[str, str]) -> CapabilityMode:
    url = env.get("DATABASE_URL")
    if not url:
        return CapabilityMode.NOT_CONFIGURED
    return CapabilityMode.LOCAL if is_loopback_url(url) else CapabilityMode.PRODUCTION


def classify_auth(env: dict[str, str], client: dict[str, str], config: Config) -> CapabilityMode:
    env_id = env.get("FIREBASE_PROJECT_ID")
    client_id = client.get("projectId")
    if not env_id and not client_id:
        return CapabilityMode.NOT_CONFIGURED
    if env_id and client_id and env_id != client_id:
        return CapabilityMode.PARTIAL
    if (env_id or client_id) == config.local.firebase_project_id:
        return CapabilityMode.LOCAL
    if not env_id or not client_id:
        return CapabilityMode.PARTIAL
    return CapabilityMode.PRODUCTION


def classify_deploy(
    env: dict[str, str], manifest_name: str | None, config: Config
) -> CapabilityMode:
    worker = env.get("WORKER_NAME") or manifest_name
    if not worker:
        return CapabilityMode.NOT_CONFIGURED
    if manifest_name and env.get("WORKER_NAME") and manifest_name != env["WORKER_NAME"]:
        return CapabilityMode.PARTIAL
    if worker.endswith(config.local.worker_suffix):
        return CapabilityMode.LOCAL
    return CapabilityMode.PRODUCTION


def read_manifest_name(path: Path) -> str | None:
    if not path.exists():
        return None
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError:
        return None
    name = data.get("name")
    return name if isinstance(name, str) and name else None


def read_project_name(project_dir: Path) -> str:
    """Name from ``package.json``, falling back to the directory name."""
    package = project_dir / "package.json"
    if package.exists():
        try:
            name = load_json(package).get("name")
        except (OSError, json.JSONDecodeError):
            name = None
        if isinstance(name, str) and name:
            return name
    return project_dir.resolve().name


def detect_project_state(project_dir: Path, config: Config | None = None) -> ProjectState:
    """Classify each capability of the project at *project_dir*."""
    config = config or Config()
    project_dir = Path(project_dir)

    env_path = project_dir / ENV_FILE
    env = parse_env(env_path.read_text(encoding="utf-8")) if env_path.exists() else {}

    client: dict[str, str] = {}
    client_path = project_dir / CLIENT_CONFIG_FILE
    if client_path.exists():
        try:
            client = {k: str(v) for k, v in load_json(client_path).items()}
        except (OSError, json.JSONDecodeError):
            client = {}

    manifest_name = read_manifest_name(project_dir / MANIFEST_FILE)

    state = ProjectState(
        directory=project_dir,
        name=read_project_name(project_dir),
        env=env,
        client_config=client,
        manifest_name=manifest_name,
    )
    state.modes = {
        SetupCapability.AUTH: classify_auth(env, client, config),
        SetupCapability.DATABASE: classify_database(env),
        SetupCapability.DEPLOY: classify_deploy(env, manifest_name, config),
    }
    if env.get("DATABASE_URL"):
        state.database_provider = provider_from_url(env["DATABASE_URL"])
    return state
