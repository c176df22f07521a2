"""Tests for the sync and health endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def pipeline():
    from bugscout.pipeline import SyncSummary

    mock = MagicMock()
    mock.run = AsyncMock(return_value=SyncSummary(
        sessions_with_errors=3,
        event_only_count=1,
        new_issues=2,
        from_sessions=2,
        from_event_only=1,
    ))
    return mock


@pytest.fixture
def client(mock_env_vars, pipeline):
    from bugscout.api.dependencies import get_pipeline
    from bugscout.api.server import app

    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSyncEndpoint:
    """Tests for /api/v1/sync/error-events."""

    @pytest.mark.parametrize("method", ["get", "post"])
    def test_returns_summary(self, client, pipeline, method):
        response = getattr(client, method)("/api/v1/sync/error-events")

        assert response.status_code == 200
        assert response.json() == {
            "sessions_with_errors": 3,
            "event_only_count": 1,
            "new_issues": 2,
            "from_sessions": 2,
            "from_event_only": 1,
        }
        pipeline.run.assert_awaited_once()

    def test_unavailable_maps_to_503(self, client, pipeline):
        from bugscout.exceptions import PipelineUnavailableError

        pipeline.run.side_effect = PipelineUnavailableError("Issue store is not configured")

        response = client.post("/api/v1/sync/error-events")

        assert response.status_code == 503
        assert response.json()["detail"] == "Issue store is not configured"


class TestHealth:
    """Tests for /health."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store_configured"] is True
