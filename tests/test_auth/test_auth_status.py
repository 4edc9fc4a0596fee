"""Unit tests for provider authentication probes (launchkit.auth.status).

Tests cover:
- AuthProbe login commands
- providers_for capability selection
- AuthChecker success markers, fail-closed behaviour, timeouts
- Session caching and explicit invalidation
- AuthStatus helpers
"""

from __future__ import annotations

import pytest

from launchkit.auth.status import (
    AUTH_PROBES,
    AuthChecker,
    AuthStatus,
    Provider,
    providers_for,
)
from launchkit.config import DatabaseProvider


class TestProbes:
    @pytest.mark.unit
    def test_login_commands(self):
        assert AUTH_PROBES[Provider.FIREBASE].login_command == "firebase login"
        assert AUTH_PROBES[Provider.NEON].login_command == "neonctl auth"
        assert AUTH_PROBES[Provider.SUPABASE].login_command == "supabase login"
        assert AUTH_PROBES[Provider.CLOUDFLARE].login_command == "wrangler login"


class TestProvidersFor:
    @pytest.mark.unit
    def test_local_mode_needs_nothing(self):
        assert providers_for() == []

    @pytest.mark.unit
    def test_full_mode_with_supabase(self):
        assert providers_for(True, True, True, DatabaseProvider.SUPABASE) == [
            Provider.FIREBASE,
            Provider.SUPABASE,
            Provider.CLOUDFLARE,
        ]

    @pytest.mark.unit
    def test_custom_database_needs_no_login(self):
        assert providers_for(database=True, db_provider=DatabaseProvider.OTHER) == []


class TestAuthChecker:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_firebase_logged_in(self, session, runner):
        runner.on("firebase", "login:list", stdout="Logged in as dev@example.com")
        assert await AuthChecker(session, runner).is_authenticated(Provider.FIREBASE)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success_without_marker_is_logged_out(self, session, runner):
        runner.on("firebase", "login:list", stdout="No authorized accounts")
        assert not await AuthChecker(session, runner).is_authenticated(Provider.FIREBASE)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_with_marker_is_logged_out(self, session, runner):
        runner.on("neonctl", "me", returncode=1, stderr="token for dev@example.com expired")
        assert not await AuthChecker(session, runner).is_authenticated(Provider.NEON)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_is_logged_out(self, session, runner):
        runner.on("wrangler", "whoami", returncode=-1, stderr="Command timed out after 15.0s")
        assert not await AuthChecker(session, runner).is_authenticated(Provider.CLOUDFLARE)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wrangler_text_marker(self, session, runner):
        runner.on("wrangler", "whoami", stdout="You are logged in with an OAuth Token")
        assert await AuthChecker(session, runner).is_authenticated(Provider.CLOUDFLARE)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_supabase_table_marker(self, session, runner):
        runner.on("supabase", "projects", "list", stdout="  ID | Name | Region\n")
        assert await AuthChecker(session, runner).is_authenticated(Provider.SUPABASE)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_result_is_cached_until_invalidated(self, session, runner):
        runner.on("firebase", "login:list", stdout="dev@example.com")
        checker = AuthChecker(session, runner)

        assert await checker.is_authenticated(Provider.FIREBASE)
        assert await checker.is_authenticated(Provider.FIREBASE)
        assert len(runner.calls) == 1

        session.invalidate_auth("firebase")
        await checker.is_authenticated(Provider.FIREBASE)
        assert len(runner.calls) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_check_marks_unused_providers_true(self, session, runner):
        runner.on("neonctl", "me", stdout="not logged in")
        status = await AuthChecker(session, runner).check([Provider.NEON])
        assert status.as_dict() == {
            "firebase": True,
            "neon": False,
            "supabase": True,
            "cloudflare": True,
        }
        assert runner.calls == [["neonctl", "me"]]


class TestAuthStatus:
    @pytest.mark.unit
    def test_get_and_set(self):
        status = AuthStatus()
        assert not status.get(Provider.NEON)
        status.set(Provider.NEON, True)
        assert status.neon is True
