"""Sequential browser logins behind a single consent prompt."""

from __future__ import annotations

from launchkit.auth.status import AUTH_PROBES, PROVIDER_ORDER, AuthStatus, Provider
from launchkit.config import Config
from launchkit.errors import AuthenticationError, UserDeclinedError
from launchkit.prompts import Prompter
from launchkit.runner import ToolRunner
from launchkit.session import ToolSession
from launchkit.utils import console, print_step, print_success

SECONDS_PER_LOGIN = 30


def providers_needing_auth(status: AuthStatus, providers: list[Provider]) -> list[Provider]:
    """Providers from *providers* that are not logged in, in login order."""
    wanted = set(providers)
    return [p for p in PROVIDER_ORDER if p in wanted and not status.get(p)]


class BatchAuthenticator:
    """Walks the user through every missing login, one browser tab at a time."""

    def __init__(
        self,
        session: ToolSession,
        prompter: Prompter,
        runner: ToolRunner | None = None,
        config: Config | None = None,
    ) -> None:
        self.session = session
        self.prompter = prompter
        self.runner = runner or ToolRunner(session)
        self.config = config or Config()

    async def authenticate(self, status: AuthStatus, providers: list[Provider]) -> AuthStatus:
        """Log in to every provider in *providers* that *status* marks as logged out.

        Raises:
            UserDeclinedError: The user refused the consolidated login prompt.
            AuthenticationError: A login failed; remaining logins are not attempted.
        """
        pending = providers_needing_auth(status, providers)
        if not pending:
            print_success("All required services are already authenticated.")
            return status

        console.print("[bold]The following services need you to log in:[/bold]")
        for provider in pending:
            console.print(f"  - {AUTH_PROBES[provider].display_name}")

        count = len(pending)
        approved = await self.prompter.confirm(
            f"Open {count} browser tab{'s' if count > 1 else ''} to log in? "
            f"(about {count * SECONDS_PER_LOGIN} seconds)",
            default=True,
        )
        if not approved:
            raise UserDeclinedError(
                "Authentication is required to continue",
                [f"Run `{AUTH_PROBES[p].login_command}` yourself, then try again" for p in pending],
            )

        for provider in pending:
            probe = AUTH_PROBES[provider]
            print_step(f"Logging in to {probe.display_name}...")
            result = await self.runner.run(
                probe.command,
                probe.login_args,
                timeout=self.config.timeouts.login,
                interactive=True,
                check=False,
            )
            if not result.ok:
                raise AuthenticationError(
                    provider.value,
                    f"Failed to authenticate with {probe.display_name}",
                    [f"Run `{probe.login_command}` manually, then try again"],
                )
            self.session.record_auth(provider.value, True)
            status.set(provider, True)
            print_success(f"Authenticated with {probe.display_name}.")

        return status
