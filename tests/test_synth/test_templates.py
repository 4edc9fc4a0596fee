"""Unit tests for the Jinja2 renderer (launchkit.synth.templates).

Tests cover:
- Bundled template discovery
- env_value / toml_str / pretty_json filters
- Strict undefined handling
- Inline template rendering and file writing
"""

from __future__ import annotations

import pytest
from jinja2 import UndefinedError

from launchkit.synth.templates import (
    TemplateRenderer,
    env_value_filter,
    pretty_json_filter,
    toml_str_filter,
    write_file,
)


class TestFilters:
    @pytest.mark.unit
    def test_env_value_bare(self):
        assert env_value_filter("postgresql://u:p@host:5432/db?sslmode=require") == (
            "postgresql://u:p@host:5432/db?sslmode=require"
        )

    @pytest.mark.unit
    def test_env_value_quoted(self):
        assert env_value_filter("has spaces") == '"has spaces"'
        assert env_value_filter('say "hi"') == '"say \\"hi\\""'

    @pytest.mark.unit
    def test_env_value_none(self):
        assert env_value_filter(None) == ""

    @pytest.mark.unit
    def test_toml_str(self):
        assert toml_str_filter('my "api"') == '"my \\"api\\""'

    @pytest.mark.unit
    def test_pretty_json(self):
        assert pretty_json_filter({"a": 1}) == '{\n  "a": 1\n}'


class TestTemplateRenderer:
    @pytest.mark.unit
    def test_lists_bundled_templates(self):
        assert TemplateRenderer().list_templates() == [
            "firebase-config.json.j2",
            "server.env.j2",
            "ui.env.local.j2",
            "wrangler.toml.j2",
        ]

    @pytest.mark.unit
    def test_missing_variable_raises(self):
        with pytest.raises(UndefinedError):
            TemplateRenderer().render("server.env.j2", {"DATABASE_URL": "postgresql://x"})

    @pytest.mark.unit
    def test_ui_env(self):
        text = TemplateRenderer().render(
            "ui.env.local.j2", {"auth_emulator": True, "api_url": "http://localhost:8787"}
        )
        assert text == "VITE_FIREBASE_EMULATOR=true\nVITE_API_URL=http://localhost:8787\n"

    @pytest.mark.unit
    def test_render_string_uses_filters(self):
        text = TemplateRenderer().render_string('name = {{ n | toml_str }}', {"n": "api"})
        assert text == 'name = "api"'

    @pytest.mark.unit
    def test_custom_template_dir(self, tmp_path):
        (tmp_path / "hello.j2").write_text("hi {{ who }}\n", encoding="utf-8")
        renderer = TemplateRenderer(tmp_path)
        assert renderer.list_templates() == ["hello.j2"]
        assert renderer.render("hello.j2", {"who": "there"}) == "hi there\n"


class TestWriteFile:
    @pytest.mark.unit
    def test_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b" / "c.txt"
        write_file(target, "data")
        assert target.read_text(encoding="utf-8") == "data"
