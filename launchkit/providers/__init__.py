"""Launchkit provider module.

Provisions the external services a project can be connected to.

Key classes:
    ProvisioningWorkflow    - Discover -> create-or-select -> extract -> manual fallback
    FirebaseWorkflow        - Identity (Firebase project + web app)
    NeonWorkflow            - Database on Neon
    SupabaseWorkflow        - Database on Supabase
    CustomDatabaseWorkflow  - Self-managed Postgres (manual entry)
    CloudflareWorkflow      - Deploy target (Worker name)
    SetupRetrier            - Bounded retries with policy-aware classification
"""

from .base import ProvisioningWorkflow, Resource
from .cloudflare import CloudflareWorkflow
from .custom import CustomDatabaseWorkflow
from .firebase import FirebaseWorkflow
from .models import (
    AuthConfig,
    ConnectionFlags,
    DatabaseConfig,
    DeployConfig,
    ProjectConfig,
    build_project_config,
)
from .neon import NeonWorkflow
from .registry import setup_for
from .retry import SetupAttempt, SetupCapability, SetupRetrier
from .supabase import SupabaseWorkflow

__all__ = [
    # Models
    "AuthConfig",
    "DatabaseConfig",
    "DeployConfig",
    "ProjectConfig",
    "ConnectionFlags",
    "build_project_config",
    # Workflows
    "ProvisioningWorkflow",
    "Resource",
    "FirebaseWorkflow",
    "NeonWorkflow",
    "SupabaseWorkflow",
    "CustomDatabaseWorkflow",
    "CloudflareWorkflow",
    "setup_for",
    # Retry
    "SetupRetrier",
    "SetupAttempt",
    "SetupCapability",
]
