"""Configuration synthesis.

Turns a complete ``ProjectConfig`` plus ``ConnectionFlags`` into four files:

* ``server/.env``                      - capability-keyed environment variables
* ``server/wrangler.toml``             - Worker manifest; ``[vars]`` mirrors the env file
* ``ui/src/lib/firebase-config.json``  - client-side Firebase settings
* ``ui/.env.local``                    - client build flags

Rendering is a pure function of its inputs, so running it twice yields
byte-identical files.  Every written file is scanned for leftover ``{{ }}``
placeholders afterwards.  ``apply_capability`` is the ``--connect`` path:
it rewrites one capability's entries and leaves the others untouched.
"""

from __future__ import annotations

import asyncio
import io
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from jinja2 import TemplateError

from launchkit.config import Config
from launchkit.errors import SynthesisError
from launchkit.providers.models import AuthConfig, ConnectionFlags, ProjectConfig
from launchkit.providers.retry import SetupCapability
from launchkit.synth.templates import TemplateRenderer, env_value_filter, write_file
from launchkit.utils import print_debug

ENV_FILE = Path("server") / ".env"
MANIFEST_FILE = Path("server") / "wrangler.toml"
CLIENT_CONFIG_FILE = Path("ui") / "src" / "lib" / "firebase-config.json"
UI_ENV_FILE = Path("ui") / ".env.local"
MANIFEST_TEMPLATE = Path("server") / "platforms" / "cloudflare" / "wrangler.toml.template"

PLACEHOLDER_PATTERN = re.compile(r"\{\{.*?\}\}")


@dataclass
class SynthesisReport:
    """Which files were (re)written and which already matched."""

    written: list[Path] = field(default_factory=list)
    unchanged: list[Path] = field(default_factory=list)

    @property
    def files(self) -> list[Path]:
        return [*self.written, *self.unchanged]


def find_placeholders(text: str) -> list[str]:
    return PLACEHOLDER_PATTERN.findall(text)


def parse_env(text: str) -> dict[str, str]:
    """Parse dotenv text, preserving key order and dropping empty values."""
    values = dotenv_values(stream=io.StringIO(text))
    return {key: value for key, value in values.items() if value}


def update_env_text(text: str, updates: Mapping[str, str | None]) -> str:
    """Rewrite selected ``KEY=value`` lines of a dotenv file.

    A ``None`` value deletes the key.  Keys that are not present yet are
    appended.  Every other line, comments included, is kept verbatim.
    """
    remaining = dict(updates)
    lines_out: list[str] = []

    for line in text.splitlines():
        match = re.match(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=", line)
        key = match.group(1) if match else None
        if key is not None and key in remaining:
            value = remaining.pop(key)
            if value is not None:
                lines_out.append(f"{key}={env_value_filter(value)}")
            continue
        lines_out.append(line)

    appended = [(k, v) for k, v in remaining.items() if v is not None]
    if appended:
        if lines_out and lines_out[-1].strip():
            lines_out.append("")
        lines_out.extend(f"{k}={env_value_filter(v)}" for k, v in appended)

    return "\n".join(lines_out) + "\n"


class ConfigSynthesizer:
    """Renders and writes a project's configuration files."""

    def __init__(self, config: Config | None = None, renderer: TemplateRenderer | None = None) -> None:
        self.config = config or Config()
        self.renderer = renderer or TemplateRenderer()

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def effective_auth(self, project: ProjectConfig, flags: ConnectionFlags) -> AuthConfig:
        return project.auth if flags.auth else AuthConfig.local(self.config.local)

    def env_values(self, project: ProjectConfig, flags: ConnectionFlags) -> dict[str, str]:
        """Capability-keyed variables for ``server/.env``, in file order."""
        local = self.config.local
        auth = self.effective_auth(project, flags)
        return {
            "DATABASE_URL": project.database.url if flags.database else local.database_url,
            "FIREBASE_PROJECT_ID": auth.project_id,
            "FIREBASE_AUTH_EMULATOR_HOST": "" if flags.auth else local.auth_emulator_host,
            "WORKER_NAME": (
                project.deploy.worker_name if flags.deploy else local.worker_name(project.name)
            ),
            "NODE_ENV": "development",
        }

    def client_config(self, auth: AuthConfig) -> dict[str, str]:
        data = {
            "apiKey": auth.api_key,
            "authDomain": auth.auth_domain,
            "projectId": auth.project_id,
            "storageBucket": auth.storage_bucket,
            "messagingSenderId": auth.messaging_sender_id,
            "appId": auth.app_id,
        }
        if auth.measurement_id:
            data["measurementId"] = auth.measurement_id
        return data

    # ------------------------------------------------------------------
    # Rendering (pure)
    # ------------------------------------------------------------------

    def render_env(self, values: Mapping[str, str]) -> str:
        return self._render("server.env.j2", dict(values))

    def render_manifest(self, project_dir: Path, env: Mapping[str, str]) -> str:
        """Render the Worker manifest from the (parsed) env file.

        A project-supplied ``wrangler.toml.template`` wins over the built-in
        one; it sees the same variables plus ``vars``.
        """
        vars_ = {key: value for key, value in env.items() if value}
        context: dict[str, Any] = {**vars_, "vars": vars_}
        context.setdefault("WORKER_NAME", "")

        custom = project_dir / MANIFEST_TEMPLATE
        if custom.exists():
            try:
                text = self.renderer.render_string(custom.read_text(encoding="utf-8"), context)
            except TemplateError as exc:
                raise SynthesisError(
                    f"Could not render {MANIFEST_TEMPLATE}: {exc}",
                    [f"Check the placeholders used in {MANIFEST_TEMPLATE}"],
                ) from exc
            if "[vars]" not in text:
                block = self._render("wrangler.toml.j2", context).split("[vars]", 1)[1]
                text = text.rstrip("\n") + "\n\n[vars]" + block
            return text
        return self._render("wrangler.toml.j2", context)

    def render_all(self, project: ProjectConfig, flags: ConnectionFlags) -> dict[Path, str]:
        """Render every file for *project*; keys are paths relative to the project."""
        env_text = self.render_env(self.env_values(project, flags))
        auth = self.effective_auth(project, flags)
        return {
            ENV_FILE: env_text,
            MANIFEST_FILE: self.render_manifest(project.directory, parse_env(env_text)),
            CLIENT_CONFIG_FILE: self._render(
                "firebase-config.json.j2", {"firebase": self.client_config(auth)}
            ),
            UI_ENV_FILE: self._render(
                "ui.env.local.j2",
                {"auth_emulator": not flags.auth, "api_url": self.config.local.api_url},
            ),
        }

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    async def synthesize(self, project: ProjectConfig, flags: ConnectionFlags) -> SynthesisReport:
        """Write all configuration files for *project*.

        Raises:
            SynthesisError: A generated file still contains placeholders.
        """
        rendered = self.render_all(project, flags)
        report = await self._write(project.directory, rendered)
        self.validate(project.directory, report.files)
        return report

    async def apply_capability(
        self,
        project_dir: Path,
        capability: SetupCapability,
        value: Any,
    ) -> SynthesisReport:
        """Switch one capability of an existing project to production.

        Only the env entries owned by *capability* change (plus the client
        files for auth); the manifest is re-rendered from the updated env so
        its ``[vars]`` stay in step.
        """
        env_path = project_dir / ENV_FILE
        current = env_path.read_text(encoding="utf-8") if env_path.exists() else ""

        files: dict[Path, str] = {}
        if capability is SetupCapability.DATABASE:
            updates: dict[str, str | None] = {"DATABASE_URL": value.url}
        elif capability is SetupCapability.AUTH:
            updates = {"FIREBASE_PROJECT_ID": value.project_id, "FIREBASE_AUTH_EMULATOR_HOST": None}
            files[CLIENT_CONFIG_FILE] = self._render(
                "firebase-config.json.j2", {"firebase": self.client_config(value)}
            )
            files[UI_ENV_FILE] = self._render(
                "ui.env.local.j2", {"auth_emulator": False, "api_url": self.config.local.api_url}
            )
        else:
            updates = {"WORKER_NAME": value.worker_name}

        env_text = update_env_text(current, updates)
        files[ENV_FILE] = env_text
        files[MANIFEST_FILE] = self.render_manifest(project_dir, parse_env(env_text))

        report = await self._write(project_dir, files)
        self.validate(project_dir, report.files)
        return report

    def validate(self, project_dir: Path, paths: list[Path]) -> None:
        """Fail if any generated file still contains ``{{ ... }}``."""
        leftovers = []
        for path in paths:
            text = (project_dir / path).read_text(encoding="utf-8")
            found = find_placeholders(text)
            if found:
                leftovers.append(f"{path}: {', '.join(sorted(set(found)))}")
        if leftovers:
            raise SynthesisError(
                "Generated configuration still contains template placeholders",
                [*leftovers, "Please report this, then fill in the values by hand"],
            )

    async def _write(self, project_dir: Path, files: Mapping[Path, str]) -> SynthesisReport:
        report = SynthesisReport()
        for relative, content in files.items():
            target = project_dir / relative
            if target.exists() and target.read_text(encoding="utf-8") == content:
                report.unchanged.append(relative)
                continue
            await asyncio.to_thread(write_file, target, content)
            report.written.append(relative)
            print_debug(f"wrote {relative}")
        return report

    def _render(self, template: str, context: dict[str, Any]) -> str:
        try:
            return self.renderer.render(template, context)
        except TemplateError as exc:
            raise SynthesisError(
                f"Could not render {template}: {exc}",
                ["Please report this; it is a bug in the configuration templates"],
            ) from exc
