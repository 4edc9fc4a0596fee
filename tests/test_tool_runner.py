"""Unit tests for tool resolution and provider CLI execution.

Tests cover:
- ToolSession path caching, local shims, npx fallback, invalidation
- ToolSession auth cache
- ToolRunner.run / exec results, history and CommandError
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from launchkit.runner import CommandError, CommandResult, ToolRunner
from launchkit.session import ToolSession


# ---------------------------------------------------------------------------
# ToolSession
# ---------------------------------------------------------------------------


class TestToolSession:
    @pytest.mark.unit
    def test_global_path_is_cached(self, tmp_path: Path):
        session = ToolSession(tmp_path)
        with patch("launchkit.session.shutil.which", return_value="/usr/bin/firebase") as which:
            assert session.global_path("firebase") == "/usr/bin/firebase"
            assert session.global_path("firebase") == "/usr/bin/firebase"
        which.assert_called_once_with("firebase")

    @pytest.mark.unit
    def test_resolve_prefers_global(self, tmp_path: Path):
        session = ToolSession(tmp_path)
        with patch("launchkit.session.shutil.which", return_value="/usr/local/bin/wrangler"):
            assert session.resolve("wrangler") == ["/usr/local/bin/wrangler"]

    @pytest.mark.unit
    def test_resolve_local_shim(self, tmp_path: Path):
        shim = tmp_path / "node_modules" / ".bin" / "wrangler"
        shim.parent.mkdir(parents=True)
        shim.write_text("#!/bin/sh\n", encoding="utf-8")
        session = ToolSession(tmp_path)
        with patch("launchkit.session.shutil.which", return_value=None):
            assert session.resolve("wrangler") == [str(shim)]

    @pytest.mark.unit
    def test_resolve_falls_back_to_npx(self, tmp_path: Path):
        session = ToolSession(tmp_path)
        with patch("launchkit.session.shutil.which", return_value=None):
            assert session.resolve("neonctl") == ["npx", "neonctl"]

    @pytest.mark.unit
    def test_invalidate_forgets_path(self, tmp_path: Path):
        session = ToolSession(tmp_path)
        with patch("launchkit.session.shutil.which", side_effect=[None, "/usr/bin/supabase"]):
            assert session.global_path("supabase") is None
            session.invalidate("supabase")
            assert session.global_path("supabase") == "/usr/bin/supabase"

    @pytest.mark.unit
    def test_move_to_resets_local_lookups(self, tmp_path: Path):
        session = ToolSession(tmp_path / "before")
        assert session.local_path("wrangler") is None

        project = tmp_path / "after"
        shim = project / "node_modules" / ".bin" / "wrangler"
        shim.parent.mkdir(parents=True)
        shim.write_text("", encoding="utf-8")
        session.move_to(project)

        assert session.project_dir == project
        assert session.local_path("wrangler") == str(shim)

    @pytest.mark.unit
    def test_auth_cache(self, tmp_path: Path):
        session = ToolSession(tmp_path)
        assert session.cached_auth("neon") is None
        session.record_auth("neon", True)
        session.record_auth("firebase", False)
        assert session.cached_auth("neon") is True

        session.invalidate_auth("neon")
        assert session.cached_auth("neon") is None
        assert session.cached_auth("firebase") is False

        session.invalidate_auth()
        assert session.cached_auth("firebase") is None


# ---------------------------------------------------------------------------
# CommandResult
# ---------------------------------------------------------------------------


class TestCommandResult:
    @pytest.mark.unit
    def test_flags_and_output(self):
        result = CommandResult(["wrangler", "whoami"], 0, "You are logged in", "warn")
        assert result.ok
        assert not result.timed_out
        assert result.output == "You are logged in\nwarn"
        assert result.summary().startswith("wrangler whoami (ok")

    @pytest.mark.unit
    def test_timeout_is_failure(self):
        result = CommandResult(["neonctl", "me"], -1, "", "timed out")
        assert not result.ok
        assert result.timed_out
        assert "exit -1" in result.summary()

    @pytest.mark.unit
    def test_command_error_message(self):
        error = CommandError(CommandResult(["supabase", "projects", "list"], 1, "", "Unauthorized"))
        assert str(error) == "`supabase projects list` failed: Unauthorized"
        assert error.output == "Unauthorized"


# ---------------------------------------------------------------------------
# ToolRunner
# ---------------------------------------------------------------------------


class TestToolRunner:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_run_resolves_tool(self, tmp_path: Path, mock_subprocess):
        runner = ToolRunner(ToolSession(tmp_path))
        proc = mock_subprocess(stdout="Logged in as dev@example.com\n")

        with patch("launchkit.session.shutil.which", return_value="/usr/bin/firebase"), \
             patch("asyncio.create_subprocess_exec", return_value=proc) as create:
            result = await runner.run("firebase", ["login:list"])

        assert create.call_args.args == ("/usr/bin/firebase", "login:list")
        assert result.ok
        assert result.command == ["/usr/bin/firebase", "login:list"]
        assert "dev@example.com" in result.stdout
        assert runner.history == [result]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_run_raises_on_failure(self, tmp_path: Path, mock_subprocess):
        runner = ToolRunner(ToolSession(tmp_path))
        proc = mock_subprocess(stderr="Error: not logged in", returncode=1)

        with patch("launchkit.session.shutil.which", return_value=None), \
             patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(CommandError) as exc_info:
                await runner.run("neonctl", ["me"])

        assert exc_info.value.result.command == ["npx", "neonctl", "me"]
        assert "not logged in" in str(exc_info.value)
        assert len(runner.history) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_run_unchecked(self, tmp_path: Path, mock_subprocess):
        runner = ToolRunner(ToolSession(tmp_path))
        proc = mock_subprocess(stderr="nope", returncode=2)

        with patch("launchkit.session.shutil.which", return_value="/usr/bin/wrangler"), \
             patch("asyncio.create_subprocess_exec", return_value=proc):
            result = await runner.run("wrangler", ["whoami"], check=False)

        assert result.returncode == 2
        assert not result.ok

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exec_uses_runner_cwd(self, tmp_path: Path, mock_subprocess):
        runner = ToolRunner(ToolSession(tmp_path), cwd=tmp_path)
        proc = mock_subprocess()

        with patch("asyncio.create_subprocess_exec", return_value=proc) as create:
            await runner.exec(["git", "init"])
            await runner.exec(["git", "status"], cwd=tmp_path / "other")

        assert create.call_args_list[0].kwargs["cwd"] == str(tmp_path)
        assert create.call_args_list[1].kwargs["cwd"] == str(tmp_path / "other")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exec_does_not_raise_by_default(self, tmp_path: Path):
        runner = ToolRunner(ToolSession(tmp_path))
        result = await runner.exec(["nonexistent-binary-12345-xyz"])
        assert result.returncode == 127
        assert "Command not found" in result.stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_interactive_does_not_capture(self, tmp_path: Path, mock_subprocess):
        runner = ToolRunner(ToolSession(tmp_path))
        proc = mock_subprocess()

        with patch("asyncio.create_subprocess_exec", return_value=proc) as create:
            await runner.exec(["pnpm", "install"], interactive=True)

        assert create.call_args.kwargs["stdout"] is None
        assert create.call_args.kwargs["stderr"] is None
