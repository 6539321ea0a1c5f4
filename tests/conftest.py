"""Test configuration and shared fixtures.

Pattern: Pytest fixtures, conftest.py
"""

from __future__ import annotations

import pytest

from cement_ops.advisory.retry import NO_RETRY
from cement_ops.advisory.runner import PipelineConfig
from cement_ops.core.config import Settings
from cement_ops.telemetry.models import TelemetrySnapshot
from tests.fakes.fake_clients import FakeModelGateway, FakeVisionClient
from tests.fakes.telemetry import make_snapshot


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        environment="test",
        log_level="DEBUG",
        telemetry_csv_path=str(tmp_path / "missing.csv"),
        pipeline_retry_initial_delay=0.0,
        recommendation_interval_seconds=0,
    )


@pytest.fixture
def fast_pipeline_config() -> PipelineConfig:
    """Pipeline config without backoff delays."""
    return PipelineConfig(retry=NO_RETRY)


# ============================================================================
# Telemetry Fixtures
# ============================================================================

@pytest.fixture
def sample_snapshot() -> TelemetrySnapshot:
    return make_snapshot()


@pytest.fixture
def sample_history() -> list[TelemetrySnapshot]:
    """Three snapshots, most recent first."""
    return [make_snapshot(index) for index in (2, 1, 0)]


# ============================================================================
# Client Fixtures
# ============================================================================

@pytest.fixture
def fake_gateway() -> FakeModelGateway:
    return FakeModelGateway()


@pytest.fixture
def fake_vision() -> FakeVisionClient:
    return FakeVisionClient()
