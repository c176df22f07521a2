"""Tests for the issue revision and approval endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def pipeline():
    return MagicMock()


@pytest.fixture
def client(mock_env_vars, pipeline):
    from bugscout.api.dependencies import get_pipeline
    from bugscout.api.server import app

    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRevisionEndpoint:
    """Tests for POST /api/v1/issues/{recording_id}/revisions."""

    def test_revise(self, client, pipeline, sample_issue):
        from bugscout.core.issues import SuggestedFix
        from bugscout.pipeline import RevisedFix

        fix = SuggestedFix(
            recording_id="s1", title="t", suggested_fix="Use optional chaining",
            code_location="src/a.ts", agent_confidence_score=0.8,
        )
        pipeline.revise_fix = AsyncMock(return_value=RevisedFix(issue=sample_issue, fix=fix))

        response = client.post("/api/v1/issues/s1/revisions", json={"instructions": "shorter"})

        assert response.status_code == 200
        assert response.json()["suggested_fix"] == "Use optional chaining"
        assert response.json()["agent_confidence_score"] == 0.8
        pipeline.revise_fix.assert_awaited_once_with("s1", "shorter")

    def test_not_found(self, client, pipeline):
        from bugscout.exceptions import IssueNotFoundError

        pipeline.revise_fix = AsyncMock(side_effect=IssueNotFoundError("s404"))

        response = client.post("/api/v1/issues/s404/revisions", json={"instructions": "x"})

        assert response.status_code == 404

    def test_analysis_failure(self, client, pipeline):
        from bugscout.exceptions import AnalysisError

        pipeline.revise_fix = AsyncMock(side_effect=AnalysisError("model timeout"))

        response = client.post("/api/v1/issues/s1/revisions", json={"instructions": "x"})

        assert response.status_code == 502

    def test_empty_instructions_rejected(self, client, pipeline):
        response = client.post("/api/v1/issues/s1/revisions", json={"instructions": ""})

        assert response.status_code == 422


class TestApprovalEndpoint:
    """Tests for POST /api/v1/issues/{recording_id}/approval."""

    def test_approve(self, client, pipeline, sample_issue):
        from dataclasses import replace

        pipeline.approve_fix = AsyncMock(return_value=replace(sample_issue, approved=True, approved_rating=4))

        response = client.post("/api/v1/issues/s1/approval", json={"rating": 4})

        assert response.status_code == 200
        assert response.json() == {"recording_id": "s1", "approved": True, "approved_rating": 4}
        pipeline.approve_fix.assert_awaited_once_with("s1", 4)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, client, pipeline, rating):
        pipeline.approve_fix = AsyncMock()

        response = client.post("/api/v1/issues/s1/approval", json={"rating": rating})

        assert response.status_code == 422
        pipeline.approve_fix.assert_not_awaited()

    def test_store_unavailable(self, client, pipeline):
        from bugscout.exceptions import PipelineUnavailableError

        pipeline.approve_fix = AsyncMock(side_effect=PipelineUnavailableError("Issue store is not configured"))

        response = client.post("/api/v1/issues/s1/approval", json={"rating": 3})

        assert response.status_code == 503
