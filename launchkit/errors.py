"""Exception taxonomy shared across launchkit.

Every error carries ``remediation`` lines so that whatever reaches the user
ends with something they can actually do next.  Errors are classified where
they originate; callers react to the class, never to the message text.
"""

from __future__ import annotations


class LaunchkitError(Exception):
    """Base class for all expected, user-facing failures."""

    def __init__(self, message: str, remediation: list[str] | None = None) -> None:
        self.message = message
        self.remediation = list(remediation or [])
        super().__init__(message)


class UserDeclinedError(LaunchkitError):
    """The user answered "no" to a confirmation that gates a required step."""


class PrerequisiteError(LaunchkitError):
    """Required tools are missing or outdated and were not resolved."""


class AuthenticationError(LaunchkitError):
    """A provider login failed or the user refused to log in."""

    def __init__(
        self, provider: str, message: str, remediation: list[str] | None = None
    ) -> None:
        self.provider = provider
        super().__init__(message, remediation)


class ProviderError(LaunchkitError):
    """A provider CLI call failed in a way that may succeed on retry."""


class NotAuthenticatedError(ProviderError):
    """The provider CLI reports no logged-in identity."""


class NameConflictError(ProviderError):
    """The requested resource name is already taken."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"Resource name '{name}' is already taken")


class PolicyBlockedError(LaunchkitError):
    """The provider refuses to proceed until the user acts in a web console."""


class TermsOfServiceError(PolicyBlockedError):
    """The provider's terms of service have not been accepted yet."""


class FirstResourceManualError(PolicyBlockedError):
    """The first resource on this account must be created in the web console."""


class TemplateStructureError(LaunchkitError):
    """The fetched template is missing files the configuration step relies on."""


class DirectoryConflictError(LaunchkitError):
    """The target directory exists and the user declined to overwrite it."""


class SynthesisError(LaunchkitError):
    """Generated configuration is incomplete or still contains placeholders."""
