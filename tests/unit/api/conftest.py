"""Fixtures for API route tests.

Every test gets an application wired around fake clients; the lifespan
uses the injected ServiceContainer instead of building real clients.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from cement_ops.api.dependencies import ServiceContainer, wire_services
from cement_ops.main import create_app
from cement_ops.telemetry.store import InMemoryTelemetryStore
from tests.fakes.fake_clients import FakeModelGateway, FakeVisionClient


def build_container(settings, gateway: FakeModelGateway, vision: FakeVisionClient | None = None) -> ServiceContainer:
    services = wire_services(
        settings,
        gateway=gateway,
        vision=vision if vision is not None else FakeVisionClient(),
        store=InMemoryTelemetryStore(),
    )
    services.subscribe_history()
    return services


@pytest.fixture
def services(test_settings, fake_gateway) -> ServiceContainer:
    return build_container(test_settings, fake_gateway)


@pytest.fixture
def client(services: ServiceContainer) -> Iterator[TestClient]:
    with TestClient(create_app(services)) as test_client:
        yield test_client


@pytest.fixture
def seeded_client(services: ServiceContainer, sample_history) -> Iterator[TestClient]:
    """Client whose live history already holds three snapshots."""
    services.history.replace(sample_history)
    with TestClient(create_app(services)) as test_client:
        yield test_client
