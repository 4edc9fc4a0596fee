"""Jinja2 template rendering for generated configuration files.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``launchkit/synth/templates/`` directory and renders them with configuration
values.  Undefined variables raise instead of rendering empty, so a missing
value can never slip into a generated file unnoticed.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

_BARE_ENV_VALUE = re.compile(r"^[A-Za-z0-9_./:@?&=%+,\-]*$")


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders the ``.j2`` templates that make up a project's configuration."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Register custom filters
        self.env.filters["env_value"] = env_value_filter
        self.env.filters["toml_str"] = toml_str_filter
        self.env.filters["pretty_json"] = pretty_json_filter

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"server.env.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string, such as a project-supplied manifest."""
        template = self.env.from_string(template_string)
        return template.render(**context)

    def list_templates(self) -> list[str]:
        """Return the names of all available templates."""
        return sorted(self.env.list_templates(extensions=["j2"]))


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def env_value_filter(value: Any) -> str:
    """Format a value for a dotenv file, quoting only when needed.

    ``postgresql://u:p@host/db`` stays bare; ``has spaces`` becomes
    ``"has spaces"``.
    """
    text = "" if value is None else str(value)
    if _BARE_ENV_VALUE.match(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def toml_str_filter(value: Any) -> str:
    """Format a value as a TOML basic string."""
    return json.dumps("" if value is None else str(value), ensure_ascii=False)


def pretty_json_filter(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_file(path: Path, content: str) -> None:
    """Write *content* to *path*, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
