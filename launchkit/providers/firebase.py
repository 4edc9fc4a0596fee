"""Firebase identity provider workflow.

Creates or selects a Firebase project, makes sure it has a web app, and reads
the web SDK config.  Two Google-side conditions cannot be automated and are
raised as policy errors with remediation: unaccepted Terms of Service, and
an account that has never created a project (the first one has to go
through the web console).
"""

from __future__ import annotations

import re
from typing import Any

from launchkit.auth.status import Provider
from launchkit.errors import (
    FirstResourceManualError,
    LaunchkitError,
    ProviderError,
    TermsOfServiceError,
)
from launchkit.prompts import Choice
from launchkit.providers.base import ProvisioningWorkflow, Resource
from launchkit.providers.models import AuthConfig
from launchkit.runner import CommandError
from launchkit.utils import (
    parse_json_output,
    print_instructions,
    sanitize_name,
    validate_firebase_project_id,
)

TOS_MARKERS = (
    "Terms of Service",
    "TOS",
    "The caller does not have permission",
    "Callers must accept Terms of Service",
    "Failed to create project. See firebase-debug.log",
    "Failed to add Firebase to Google Cloud Platform project",
)

CONFLICT_MARKERS = ("already exists", "ALREADY_EXISTS", "project with ID")

_APP_ID_PATTERNS = (
    re.compile(r"App ID:\s*(\S+)"),
    re.compile(r'"appId"\s*:\s*"([^"]+)"'),
    re.compile(r"(1:\d+:web:[a-f0-9]+)"),
)

TOS_REMEDIATION = [
    "Open https://console.cloud.google.com and sign in with the same Google account",
    "Accept the Google Cloud Terms of Service when prompted",
    "Come back here and confirm to retry",
]

FIRST_PROJECT_REMEDIATION = [
    "Open https://console.firebase.google.com",
    "Click 'Create a project' and finish the wizard (any name works)",
    "Come back here and confirm to retry; later projects are created automatically",
]


def is_terms_of_service_error(output: str) -> bool:
    return any(marker in output for marker in TOS_MARKERS)


def parse_app_id(output: str) -> str | None:
    for pattern in _APP_ID_PATTERNS:
        match = pattern.search(output)
        if match:
            return match.group(1)
    return None


def _result(payload: Any) -> Any:
    """Unwrap the ``{"status": ..., "result": ...}`` envelope of ``firebase -j``."""
    if isinstance(payload, dict) and "result" in payload:
        return payload["result"]
    return payload


def derive_project_id(project_name: str) -> str:
    """Turn a project name into a valid Firebase project id (6-30 chars)."""
    base = sanitize_name(project_name)
    if not base or not base[0].isalpha():
        base = f"app-{base}".rstrip("-")
    if len(base) < 6:
        base = f"{base}-auth"
    return base[:30].rstrip("-")


def _validate_api_key(value: str) -> str | None:
    return None if value else "API key is required"


def _validate_sender_id(value: str) -> str | None:
    return None if value.isdigit() else "Messaging sender ID is numeric"


def _validate_app_id(value: str) -> str | None:
    return None if ":web:" in value else "App ID looks like 1:123456789:web:abc123"


def _validate_measurement_id(value: str) -> str | None:
    if not value or value.startswith("G-"):
        return None
    return "Measurement ID starts with G- (leave blank if you have none)"


class FirebaseWorkflow(ProvisioningWorkflow[AuthConfig]):
    """Provision the Firebase project backing authentication."""

    display_name = "Firebase"
    resource_kind = "project"
    command = "firebase"
    provider = Provider.FIREBASE
    max_name_length = 30
    conflict_markers = CONFLICT_MARKERS
    manual_url = "https://console.firebase.google.com"
    manual_steps = (
        "Open the Firebase console and create (or open) a project",
        "Add a Web app under Project settings > General > Your apps",
        "Copy the values from the firebaseConfig snippet",
        "Enable Google under Authentication > Sign-in method",
    )

    async def run(self) -> AuthConfig:
        config = await super().run()
        if not self.fast:
            self.show_sign_in_guidance(config.project_id)
        return config

    # -- Discovery / creation ----------------------------------------------

    async def list_resources(self) -> list[Resource]:
        result = await self.cli("projects:list", "-j")
        projects = _result(parse_json_output(result.stdout)) or []
        if not isinstance(projects, list):
            raise ProviderError(
                "Firebase CLI returned an unexpected project list",
                [f"Run `firebase projects:list` to check your account, or see {self.manual_url}"],
            )
        projects = [p for p in projects if isinstance(p, dict)]
        if not projects:
            raise FirstResourceManualError(
                "Your first Firebase project must be created in the Firebase console",
                FIRST_PROJECT_REMEDIATION,
            )
        return [
            Resource(
                id=p.get("projectId", ""),
                name=p.get("displayName") or p.get("projectId", ""),
                details=p,
            )
            for p in projects
            if p.get("projectId")
        ]

    async def create_resource(self, name: str) -> Resource:
        await self.cli("projects:create", name, "--display-name", self.project_name)
        return Resource(id=name, name=self.project_name)

    def default_name(self) -> str:
        return derive_project_id(self.project_name)

    def validate_name(self, name: str) -> str | None:
        return validate_firebase_project_id(name)

    def classify_error(self, error: CommandError, name: str | None = None) -> LaunchkitError:
        output = error.output
        if is_terms_of_service_error(output):
            return TermsOfServiceError(
                "Firebase requires the Google Cloud Terms of Service to be accepted",
                TOS_REMEDIATION,
            )
        if name is not None and self.is_conflict(output):
            return super().classify_error(error, name)
        return ProviderError(
            f"Firebase CLI error: {error}",
            [f"Check {self.manual_url} or run `firebase projects:list` to see what went wrong"],
        )

    # -- Extraction ----------------------------------------------------------

    async def extract(self, resource: Resource) -> AuthConfig | None:
        app_id = await self._ensure_web_app(resource.id)
        if app_id is None:
            return None

        result = await self.cli("apps:sdkconfig", "WEB", app_id, "--project", resource.id, "--json")
        payload = _result(parse_json_output(result.stdout))
        if not isinstance(payload, dict):
            return None
        sdk = payload.get("sdkConfig", payload)
        if not sdk.get("apiKey") or not sdk.get("messagingSenderId"):
            return None

        return AuthConfig(
            project_id=sdk.get("projectId") or resource.id,
            api_key=sdk["apiKey"],
            messaging_sender_id=str(sdk["messagingSenderId"]),
            app_id=sdk.get("appId") or app_id,
            measurement_id=sdk.get("measurementId", ""),
        )

    async def _ensure_web_app(self, project_id: str) -> str | None:
        result = await self.cli("apps:list", "WEB", "--project", project_id, "-j")
        apps = _result(parse_json_output(result.stdout)) or []
        apps = [a for a in apps if isinstance(a, dict) and a.get("appId")]

        if len(apps) == 1 or (apps and self.fast):
            return apps[0]["appId"]
        if apps:
            return await self.prompter.select(
                "Select the web app to use",
                [Choice(a["appId"], a.get("displayName") or a["appId"]) for a in apps],
            )

        created = await self.cli("apps:create", "WEB", f"{self.project_name}-web", "--project", project_id)
        return parse_app_id(created.output)

    # -- Manual path ---------------------------------------------------------

    async def manual_entry(self, resource: Resource | None = None) -> AuthConfig:
        steps = list(self.manual_steps)
        if resource is not None:
            steps[0] = f"Open project '{resource.id}' in the Firebase console"
        self.show_manual_instructions(steps)

        project_id = await self.prompter.text(
            "Firebase project ID",
            default=resource.id if resource else None,
            validate=validate_firebase_project_id,
        )
        api_key = await self.prompter.text("apiKey", validate=_validate_api_key)
        sender_id = await self.prompter.text("messagingSenderId", validate=_validate_sender_id)
        app_id = await self.prompter.text("appId", validate=_validate_app_id)
        measurement_id = await self.prompter.text(
            "measurementId (optional)", default="", validate=_validate_measurement_id
        )
        return AuthConfig(
            project_id=project_id,
            api_key=api_key,
            messaging_sender_id=sender_id,
            app_id=app_id,
            measurement_id=measurement_id,
        )

    def show_sign_in_guidance(self, project_id: str) -> None:
        print_instructions(
            "Enable Google sign-in",
            [
                "Open the Authentication providers page below",
                "Click 'Google', toggle Enable and pick a support email",
                "Save; users can now sign in with Google",
            ],
            f"https://console.firebase.google.com/project/{project_id}/authentication/providers",
        )
