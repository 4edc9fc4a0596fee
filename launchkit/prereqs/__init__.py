"""Launchkit prerequisite module.

Finds, installs and verifies the external CLIs a project needs.

Key classes:
    PrerequisiteChecker   - Bundled -> global -> local resolution strategies
    ToolInstaller         - npm global/local install with permission fallback
    PrerequisiteResolver  - Check, install and recheck loop with user decisions
"""

from .catalog import CORE_PREREQUISITES, required_prerequisites
from .checker import PrerequisiteChecker, ProbeKind, ProbeResult
from .installer import ToolInstaller
from .models import InstallScope, Prerequisite, PrerequisiteResult, PrerequisiteStatus
from .network import check_network
from .resolver import PrerequisiteResolver, ResolutionPlan, plan_resolution

__all__ = [
    # Models
    "Prerequisite",
    "PrerequisiteResult",
    "PrerequisiteStatus",
    "InstallScope",
    # Catalogue
    "CORE_PREREQUISITES",
    "required_prerequisites",
    # Checking
    "PrerequisiteChecker",
    "ProbeKind",
    "ProbeResult",
    "check_network",
    # Installing
    "ToolInstaller",
    # Resolution loop
    "PrerequisiteResolver",
    "ResolutionPlan",
    "plan_resolution",
]
