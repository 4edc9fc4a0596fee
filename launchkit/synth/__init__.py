"""Launchkit synthesis module.

Writes a project's configuration files and reads them back.

Key classes:
    TemplateRenderer   - Jinja2 environment over the bundled ``.j2`` templates
    ConfigSynthesizer  - Mode-aware, idempotent file generation and slice rewrites
    ProjectState       - Per-capability mode detected from existing files
"""

from .detect import CapabilityMode, ProjectState, detect_project_state
from .synthesizer import (
    CLIENT_CONFIG_FILE,
    ENV_FILE,
    MANIFEST_FILE,
    UI_ENV_FILE,
    ConfigSynthesizer,
    SynthesisReport,
    find_placeholders,
    parse_env,
    update_env_text,
)
from .templates import TemplateRenderer

__all__ = [
    # Rendering
    "TemplateRenderer",
    # Synthesis
    "ConfigSynthesizer",
    "SynthesisReport",
    "find_placeholders",
    "parse_env",
    "update_env_text",
    "ENV_FILE",
    "MANIFEST_FILE",
    "CLIENT_CONFIG_FILE",
    "UI_ENV_FILE",
    # Detection
    "CapabilityMode",
    "ProjectState",
    "detect_project_state",
]
