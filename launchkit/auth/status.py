"""Provider authentication status checks.

Each provider CLI has a "whoami"-style command; a provider counts as logged
in only when that command succeeds and its output carries a known success
marker.  Anything else, including timeouts, reads as logged out.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum

from launchkit.config import Config, DatabaseProvider
from launchkit.runner import ToolRunner
from launchkit.session import ToolSession
from launchkit.utils import print_debug


class Provider(str, Enum):
    """External services that require an interactive login."""

    FIREBASE = "firebase"
    NEON = "neon"
    SUPABASE = "supabase"
    CLOUDFLARE = "cloudflare"


@dataclass(frozen=True)
class AuthProbe:
    """How to ask one provider CLI who is logged in, and how to log in."""

    display_name: str
    command: str
    status_args: tuple[str, ...]
    markers: tuple[str, ...]
    login_args: tuple[str, ...]

    @property
    def login_command(self) -> str:
        return " ".join((self.command, *self.login_args))


AUTH_PROBES: dict[Provider, AuthProbe] = {
    Provider.FIREBASE: AuthProbe("Firebase", "firebase", ("login:list",), ("@",), ("login",)),
    Provider.NEON: AuthProbe("Neon", "neonctl", ("me",), ("@",), ("auth",)),
    Provider.SUPABASE: AuthProbe(
        "Supabase", "supabase", ("projects", "list"), ("ID", "Name"), ("login",)
    ),
    Provider.CLOUDFLARE: AuthProbe(
        "Cloudflare", "wrangler", ("whoami",), ("@", "You are logged in"), ("login",)
    ),
}

# Fixed order in which logins are walked through.
PROVIDER_ORDER = (Provider.FIREBASE, Provider.NEON, Provider.SUPABASE, Provider.CLOUDFLARE)


@dataclass
class AuthStatus:
    """Authenticated flag per provider for one run."""

    firebase: bool = False
    neon: bool = False
    supabase: bool = False
    cloudflare: bool = False

    def get(self, provider: Provider) -> bool:
        return getattr(self, provider.value)

    def set(self, provider: Provider, authenticated: bool) -> None:
        setattr(self, provider.value, authenticated)

    def as_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def providers_for(
    auth: bool = False,
    database: bool = False,
    deploy: bool = False,
    db_provider: DatabaseProvider | None = None,
) -> list[Provider]:
    """Providers that need a login for the given capability selection."""
    providers = []
    if auth:
        providers.append(Provider.FIREBASE)
    if database and db_provider is DatabaseProvider.NEON:
        providers.append(Provider.NEON)
    if database and db_provider is DatabaseProvider.SUPABASE:
        providers.append(Provider.SUPABASE)
    if deploy:
        providers.append(Provider.CLOUDFLARE)
    return providers


class AuthChecker:
    """Probes provider CLIs for a logged-in identity."""

    def __init__(
        self,
        session: ToolSession,
        runner: ToolRunner | None = None,
        config: Config | None = None,
    ) -> None:
        self.session = session
        self.runner = runner or ToolRunner(session)
        self.config = config or Config()

    async def is_authenticated(self, provider: Provider) -> bool:
        cached = self.session.cached_auth(provider.value)
        if cached is not None:
            return cached

        probe = AUTH_PROBES[provider]
        result = await self.runner.run(
            probe.command,
            probe.status_args,
            timeout=self.config.timeouts.auth_probe,
            check=False,
        )
        authenticated = result.ok and any(marker in result.output for marker in probe.markers)
        print_debug(f"{probe.display_name} authenticated: {authenticated}")
        self.session.record_auth(provider.value, authenticated)
        return authenticated

    async def check(self, providers: list[Provider]) -> AuthStatus:
        """Build an ``AuthStatus`` for *providers*.

        Providers not in the list are not in use and are marked ``True`` so
        they never trigger a login.
        """
        status = AuthStatus(firebase=True, neon=True, supabase=True, cloudflare=True)
        for provider in providers:
            status.set(provider, await self.is_authenticated(provider))
        return status
