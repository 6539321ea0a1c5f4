"""Tests for telemetry API routes."""

from fastapi.testclient import TestClient

from cement_ops.api.dependencies import ServiceContainer
from tests.fakes.telemetry import make_snapshot


def snapshot_body(index: int = 0) -> dict:
    return make_snapshot(index, id=None).model_dump(mode="json", exclude_none=True)


class TestAppendTelemetry:
    def test_append_returns_id_and_updates_history(self, client: TestClient, services: ServiceContainer) -> None:
        response = client.post("/v1/telemetry", json=snapshot_body())

        assert response.status_code == 201
        data = response.json()
        assert data["id"]
        assert data["history_size"] == 1
        assert services.history.latest.id == data["id"]

    def test_newest_snapshot_first(self, client: TestClient) -> None:
        client.post("/v1/telemetry", json=snapshot_body(0))
        client.post("/v1/telemetry", json=snapshot_body(1))

        data = client.get("/v1/telemetry/history").json()

        assert data["total"] == 2
        assert [s["kiln_temp_c"] for s in data["snapshots"]] == [1451.0, 1450.0]

    def test_missing_fields_rejected(self, client: TestClient) -> None:
        response = client.post("/v1/telemetry", json={"timestamp": "2024-05-01T10:00:00Z"})

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestTelemetryHistory:
    def test_limit(self, seeded_client: TestClient) -> None:
        data = seeded_client.get("/v1/telemetry/history", params={"limit": 2}).json()

        assert [s["id"] for s in data["snapshots"]] == ["snap-2", "snap-1"]
        assert data["window"] == 20

    def test_invalid_limit(self, client: TestClient) -> None:
        response = client.get("/v1/telemetry/history", params={"limit": 0})

        assert response.status_code == 422


class TestLatestTelemetry:
    def test_latest_404_when_empty(self, client: TestClient) -> None:
        response = client.get("/v1/telemetry/latest")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_latest_snapshot(self, seeded_client: TestClient) -> None:
        response = seeded_client.get("/v1/telemetry/latest")

        assert response.status_code == 200
        assert response.json()["id"] == "snap-2"
