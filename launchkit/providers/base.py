"""Generic resource provisioning workflow.

Every provider follows the same flow: discover existing resources, pick one
or create a new one, extract credentials, and fall back to manual entry when
automation cannot finish.  Subclasses supply the provider-specific pieces:

* ``list_resources``  - query the provider CLI
* ``create_resource`` - create one resource by name
* ``extract``         - turn a resource into a provider config (or ``None``)
* ``manual_entry``    - ask the user to paste the credentials

CLI failures are classified here, next to their source, into
``NameConflictError`` / ``PolicyBlockedError`` / ``ProviderError`` so the retry
layer can react on the exception type alone.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from launchkit.auth.status import AUTH_PROBES, AuthChecker, Provider
from launchkit.config import Config
from launchkit.errors import LaunchkitError, NameConflictError, NotAuthenticatedError, ProviderError
from launchkit.prompts import Choice, Prompter
from launchkit.runner import CommandError, CommandResult, ToolRunner
from launchkit.utils import (
    PROJECT_NAME_PATTERN,
    create_progress,
    print_debug,
    print_instructions,
    print_success,
    print_warning,
    sanitize_name,
)

ConfigT = TypeVar("ConfigT")

CREATE_NEW = "__create_new__"


@dataclass
class Resource:
    """A provider-side resource (project, database, worker)."""

    id: str
    name: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        if self.name and self.name != self.id:
            return f"{self.name} ({self.id})"
        return self.id


class ProvisioningWorkflow(ABC, Generic[ConfigT]):
    """Discover, create-or-select, extract, with a manual fallback."""

    display_name: str = "Provider"
    resource_kind: str = "resource"
    command: str = ""
    provider: Provider | None = None
    name_suffix: str = ""
    max_name_length: int = 63
    conflict_markers: tuple[str, ...] = ("already exists",)
    manual_url: str = ""
    manual_steps: tuple[str, ...] = ()

    def __init__(
        self,
        project_name: str,
        prompter: Prompter,
        runner: ToolRunner,
        config: Config | None = None,
        fast: bool = False,
    ) -> None:
        self.project_name = project_name
        self.prompter = prompter
        self.runner = runner
        self.config = config or Config()
        self.fast = fast

    # ------------------------------------------------------------------
    # Provider-specific hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_resources(self) -> list[Resource]: ...

    @abstractmethod
    async def create_resource(self, name: str) -> Resource: ...

    @abstractmethod
    async def extract(self, resource: Resource) -> ConfigT | None: ...

    @abstractmethod
    async def manual_entry(self, resource: Resource | None = None) -> ConfigT: ...

    async def cli_available(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Flow
    # ------------------------------------------------------------------

    async def run(self) -> ConfigT:
        """Run the whole workflow and return the provider config.

        Raises:
            NotAuthenticatedError: The provider CLI is not logged in.
            PolicyBlockedError: The provider needs action in its web console.
            ProviderError: A CLI call failed for any other reason.
        """
        if not await self.cli_available():
            print_warning(f"{self.display_name} CLI is not available, switching to manual setup.")
            return await self.manual_entry()

        await self.ensure_authenticated()
        resources = await self.discover()
        resource = await self.choose_or_create(resources)

        config = await self.safe_extract(resource)
        if config is None:
            print_warning(
                f"Could not read credentials for {resource.label} automatically, "
                "switching to manual entry."
            )
            return await self.manual_entry(resource)
        print_success(f"{self.display_name} {self.resource_kind} ready: {resource.label}")
        return config

    async def ensure_authenticated(self) -> None:
        if self.provider is None:
            return
        checker = AuthChecker(self.runner.session, self.runner, self.config)
        if await checker.is_authenticated(self.provider):
            return
        # Drop the cached answer so a retry re-probes after the user logs in.
        self.runner.session.invalidate_auth(self.provider.value)
        probe = AUTH_PROBES[self.provider]
        raise NotAuthenticatedError(
            f"Not logged in to {self.display_name}",
            [f"Run `{probe.login_command}`, then retry"],
        )

    async def discover(self) -> list[Resource]:
        with create_progress() as progress:
            progress.add_task(f"Loading {self.display_name} {self.resource_kind}s...", total=None)
            try:
                resources = await self.list_resources()
            except CommandError as exc:
                raise self.classify_error(exc) from exc
        print_debug(f"{self.display_name}: {len(resources)} existing {self.resource_kind}(s)")
        return resources

    async def choose_or_create(self, resources: list[Resource]) -> Resource:
        """Pick an existing resource or create a new one.

        Fast mode always creates a new resource under the derived name.
        """
        if self.fast:
            return await self.create_with_suffix(self.default_name())
        if not resources:
            return await self.create_with_suffix(await self.ask_new_name())

        choices = [Choice(r.id, r.label) for r in resources]
        choices.append(Choice(CREATE_NEW, f"+ Create a new {self.resource_kind}"))
        picked = await self.prompter.select(
            f"Select a {self.display_name} {self.resource_kind}", choices
        )
        if picked == CREATE_NEW:
            return await self.create_with_suffix(await self.ask_new_name())
        return next(r for r in resources if r.id == picked)

    async def ask_new_name(self) -> str:
        return await self.prompter.text(
            f"Name for the new {self.display_name} {self.resource_kind}",
            default=self.default_name(),
            validate=self.validate_name,
        )

    async def create_with_suffix(self, base_name: str) -> Resource:
        """Create a resource, appending ``-1``, ``-2``... while the name is taken."""
        attempts = self.config.retry.name_conflict_attempts
        for attempt in range(attempts):
            name = base_name if attempt == 0 else self.suffixed(base_name, attempt)
            try:
                with create_progress() as progress:
                    progress.add_task(
                        f"Creating {self.display_name} {self.resource_kind} '{name}'...", total=None
                    )
                    try:
                        return await self.create_resource(name)
                    except CommandError as exc:
                        raise self.classify_error(exc, name) from exc
            except NameConflictError:
                print_debug(f"{self.display_name}: name '{name}' is taken")

        raise ProviderError(
            f"Could not find a free {self.resource_kind} name after {attempts} attempts",
            [f"Create the {self.resource_kind} at {self.manual_url} and choose it on the next run"],
        )

    async def safe_extract(self, resource: Resource) -> ConfigT | None:
        try:
            return await self.extract(resource)
        except (CommandError, ProviderError) as exc:
            print_debug(f"{self.display_name}: extraction failed: {exc}")
            return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def default_name(self) -> str:
        base = sanitize_name(self.project_name) or "app"
        return base[: self.max_name_length - len(self.name_suffix)] + self.name_suffix

    def suffixed(self, base_name: str, attempt: int) -> str:
        suffix = f"-{attempt}"
        return base_name[: self.max_name_length - len(suffix)] + suffix

    def validate_name(self, name: str) -> str | None:
        if not name:
            return "Name is required"
        if len(name) > self.max_name_length:
            return f"Name must be {self.max_name_length} characters or less"
        if not PROJECT_NAME_PATTERN.match(name):
            return "Use lowercase letters, numbers and hyphens only"
        return None

    def is_conflict(self, output: str) -> bool:
        return any(marker in output for marker in self.conflict_markers)

    def classify_error(self, error: CommandError, name: str | None = None) -> LaunchkitError:
        """Translate a failed CLI call into the error taxonomy."""
        if name is not None and self.is_conflict(error.output):
            return NameConflictError(name)
        return ProviderError(
            f"{self.display_name} CLI error: {error}",
            [f"Check your {self.display_name} account at {self.manual_url}"],
        )

    async def cli(self, *args: str, timeout: float | None = None) -> CommandResult:
        return await self.runner.run(
            self.command, args, timeout=timeout or self.config.timeouts.provider_cli
        )

    def show_manual_instructions(self, steps: Sequence[str] | None = None) -> None:
        print_instructions(
            f"Manual {self.display_name} setup", list(steps or self.manual_steps), self.manual_url
        )
