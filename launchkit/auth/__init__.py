"""Launchkit authentication module.

Key classes:
    AuthChecker         - Fail-closed "who am I" probes per provider CLI
    BatchAuthenticator  - One consent prompt, then sequential browser logins
"""

from .batch import BatchAuthenticator, providers_needing_auth
from .status import AUTH_PROBES, AuthChecker, AuthStatus, Provider, providers_for

__all__ = [
    "AUTH_PROBES",
    "AuthChecker",
    "AuthStatus",
    "BatchAuthenticator",
    "Provider",
    "providers_for",
    "providers_needing_auth",
]
