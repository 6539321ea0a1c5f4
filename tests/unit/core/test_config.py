"""Unit tests for cement_ops.core.config."""

import pytest
from pydantic import ValidationError

from cement_ops.core.config import Settings, get_settings


class TestSettingsDefaults:
    """Default values match the documented configuration."""

    def test_service_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.service_name == "cement-ops-advisor"
        assert settings.port == 8090
        assert settings.environment == "development"

    def test_pipeline_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.telemetry_history_window == 20
        assert settings.pipeline_max_retries == 2
        assert settings.pipeline_repair_enabled is False
        assert settings.pipeline_parallel_fan_out is True
        assert settings.safety_fail_closed is True

    def test_api_key_defaults_to_none(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.gemini_api_key is None


class TestSettingsEnvironment:
    """Settings are read from CEMENT_OPS_ environment variables."""

    def test_reads_prefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CEMENT_OPS_GEMINI_MODEL", "gemini-pro")
        monkeypatch.setenv("CEMENT_OPS_TELEMETRY_HISTORY_WINDOW", "50")
        monkeypatch.setenv("CEMENT_OPS_SAFETY_FAIL_CLOSED", "false")

        settings = Settings(_env_file=None)

        assert settings.gemini_model == "gemini-pro"
        assert settings.telemetry_history_window == 50
        assert settings.safety_fail_closed is False

    def test_api_key_is_secret(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CEMENT_OPS_GEMINI_API_KEY", "abc123")

        settings = Settings(_env_file=None)

        assert settings.gemini_api_key is not None
        assert settings.gemini_api_key.get_secret_value() == "abc123"
        assert "abc123" not in repr(settings)


class TestSettingsValidation:
    """Out-of-range values are rejected."""

    def test_history_window_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, telemetry_history_window=0)

    def test_retry_budget_is_bounded(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, pipeline_max_retries=11)


class TestGetSettings:
    def test_returns_cached_instance(self) -> None:
        get_settings.cache_clear()

        assert get_settings() is get_settings()
