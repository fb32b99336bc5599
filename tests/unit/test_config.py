"""Tests for config.py"""

import pytest

from config import Settings, get_settings, reset_settings, validate_required_settings


class TestSettings:

    def test_defaults(self):
        settings = Settings(openai_api_key="k", relay_token="", opik_api_key="")
        assert settings.relay_dedup_content_evaluation is True
        assert settings.telemetry_grace_seconds == 2.0
        assert settings.opik_project_name == "Signal"
        assert settings.is_production is False

    def test_opik_url_precedence(self):
        assert Settings(opik_url="https://a", opik_url_override="https://b").opik_api_url == "https://b"
        assert Settings(opik_url="https://a").opik_api_url == "https://a"
        assert Settings().opik_api_url == "https://www.comet.com/opik/api"

    def test_opik_workspace_precedence(self):
        assert Settings(opik_workspace="ws", opik_workspace_name="named").opik_workspace_resolved == "named"
        assert Settings(opik_workspace="ws").opik_workspace_resolved == "ws"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RELAY_DEDUP_CONTENT_EVALUATION", "false")
        monkeypatch.setenv("ENVIRONMENT", "production")
        reset_settings()
        settings = get_settings()
        assert settings.relay_dedup_content_evaluation is False
        assert settings.is_production is True


class TestGlobalSettings:

    def test_memoized_until_reset(self):
        first = get_settings()
        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first

    def test_validate_required_settings(self):
        assert validate_required_settings() is True

    def test_missing_openai_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "")
        reset_settings()
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            validate_required_settings()
