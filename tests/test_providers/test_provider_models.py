"""Unit tests for provider config models (launchkit.providers.models).

Tests cover:
- ConnectionFlags.from_options (``--full`` implies every capability)
- build_project_config for all flag combinations
- Missing production configs rejected
- Derived Firebase fields and immutability
"""

from __future__ import annotations

from itertools import product
from pathlib import Path

import pytest
from pydantic import ValidationError

from launchkit.config import Config
from launchkit.providers.models import (
    AuthConfig,
    ConnectionFlags,
    DeployConfig,
    build_project_config,
)


class TestConnectionFlags:
    @pytest.mark.unit
    def test_full_enables_everything(self):
        flags = ConnectionFlags.from_options(full=True, auth=False, database=False, deploy=False)
        assert flags.auth and flags.database and flags.deploy

    @pytest.mark.unit
    def test_individual_flags(self):
        flags = ConnectionFlags.from_options(full=False, auth=False, database=True, deploy=False)
        assert flags == ConnectionFlags(database=True)
        assert flags.any_production
        assert not ConnectionFlags().any_production


class TestBuildProjectConfig:
    @pytest.mark.unit
    @pytest.mark.parametrize("auth, database, deploy", list(product([False, True], repeat=3)))
    def test_every_combination_is_complete(
        self, auth, database, deploy, sample_auth_config, sample_database_config, sample_deploy_config
    ):
        flags = ConnectionFlags(auth=auth, database=database, deploy=deploy)
        project = build_project_config(
            "my-app",
            Path("/tmp/my-app"),
            flags,
            auth=sample_auth_config if auth else None,
            database=sample_database_config if database else None,
            deploy=sample_deploy_config if deploy else None,
        )
        defaults = Config().local

        expected_auth = "my-app-prod" if auth else defaults.firebase_project_id
        expected_url = sample_database_config.url if database else defaults.database_url
        expected_worker = "my-app-api" if deploy else "my-app-local"
        assert project.auth.project_id == expected_auth
        assert project.database.url == expected_url
        assert project.deploy.worker_name == expected_worker

    @pytest.mark.unit
    def test_provider_config_ignored_when_flag_off(self, sample_auth_config):
        project = build_project_config(
            "my-app", Path("."), ConnectionFlags(), auth=sample_auth_config
        )
        assert project.auth.project_id == "demo-project"

    @pytest.mark.unit
    def test_missing_production_config(self):
        with pytest.raises(ValueError, match="auth, deploy"):
            build_project_config("my-app", Path("."), ConnectionFlags(auth=True, deploy=True))


class TestModels:
    @pytest.mark.unit
    def test_auth_derived_fields(self, sample_auth_config):
        assert sample_auth_config.auth_domain == "my-app-prod.firebaseapp.com"
        assert sample_auth_config.storage_bucket == "my-app-prod.appspot.com"

    @pytest.mark.unit
    def test_frozen(self, sample_deploy_config):
        with pytest.raises(ValidationError):
            sample_deploy_config.worker_name = "other"

    @pytest.mark.unit
    def test_required_fields(self):
        with pytest.raises(ValidationError):
            AuthConfig(project_id="", api_key="k", messaging_sender_id="1", app_id="1:1:web:a")

    @pytest.mark.unit
    def test_local_deploy_name(self):
        assert DeployConfig.local("shop", Config().local).worker_name == "shop-local"
