"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from teleporter.config import Settings, load_settings
from teleporter.exceptions import ConfigurationError


class TestSettings:
    def test_default_settings(self) -> None:
        s = Settings(_env_file=None)
        assert s.debug is False
        assert s.state_backend == "filesystem"
        assert s.state_table_name == "template_state"
        assert s.master_branch == "main"
        assert s.github_api_url == "https://api.github.com"

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TELEPORTER_MASTER_REPOSITORY", "acme/templates")
        monkeypatch.setenv("TELEPORTER_STATE_DIR", "/tmp/teleporter-state")
        s = Settings(_env_file=None)
        assert s.master_owner == "acme"
        assert s.master_name == "templates"
        assert s.state_dir == Path("/tmp/teleporter-state")

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValueError):
            Settings(_env_file=None, http_timeout=0)


class TestValidateRuntime:
    def test_fixture_settings_are_valid(self, test_settings: Settings) -> None:
        test_settings.validate_runtime()

    def test_empty_table_name(self) -> None:
        s = Settings(_env_file=None, state_table_name="  ")
        with pytest.raises(ConfigurationError, match="STATE_TABLE_NAME"):
            s.validate_runtime(require_platform=False)

    def test_missing_token_and_repository(self) -> None:
        s = Settings(_env_file=None)
        with pytest.raises(ConfigurationError) as exc_info:
            s.validate_runtime()
        assert "GITHUB_TOKEN" in str(exc_info.value)
        assert "MASTER_REPOSITORY" in str(exc_info.value)

    def test_malformed_master_repository(self) -> None:
        s = Settings(_env_file=None, github_token="t", master_repository="acme/a/b")
        with pytest.raises(ConfigurationError, match="owner/name"):
            s.validate_runtime()

    def test_local_commands_do_not_need_platform(self) -> None:
        Settings(_env_file=None).validate_runtime(require_platform=False)


class TestLoadSettings:
    def test_applies_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TELEPORTER_STATE_BACKEND", raising=False)
        s = load_settings(_env_file=None, state_backend="database")
        assert s.state_backend == "database"

    def test_invalid_value_becomes_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TELEPORTER_HTTP_TIMEOUT", "-1")
        with pytest.raises(ConfigurationError, match="http_timeout"):
            load_settings(_env_file=None)
