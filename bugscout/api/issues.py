"""API endpoints for developer follow-up on stored issues.

- Revise a suggested fix with free-text instructions
- Approve a fix with a 1-5 rating (feeds the knowledge ledger)
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
import structlog

from bugscout.api.dependencies import get_pipeline
from bugscout.exceptions import AnalysisError, BugScoutError, IssueNotFoundError, PipelineUnavailableError
from bugscout.pipeline import IssuePipeline

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/issues", tags=["Issues"])


# =============================================================================
# Request/Response Models
# =============================================================================


class RevisionRequest(BaseModel):
    """Developer instructions for revising a fix."""

    instructions: str = Field(..., min_length=1, description="What to change in the suggested fix")


class RevisionResponse(BaseModel):
    recording_id: str
    suggested_fix: str
    code_edits: list[dict[str, Any]] = Field(default_factory=list)
    agent_confidence_score: Optional[float] = None


class ApprovalRequest(BaseModel):
    """Developer approval of a suggested fix."""

    rating: int = Field(..., ge=1, le=5, description="How useful the fix was, 1-5")


class ApprovalResponse(BaseModel):
    recording_id: str
    approved: bool
    approved_rating: Optional[int] = None


def _http_error(e: Exception, recording_id: str) -> HTTPException:
    if isinstance(e, IssueNotFoundError):
        return HTTPException(status_code=404, detail=f"Issue not found: {recording_id}")
    if isinstance(e, PipelineUnavailableError):
        return HTTPException(status_code=503, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, AnalysisError):
        return HTTPException(status_code=502, detail=str(e))
    logger.exception("Issue request failed", recording_id=recording_id, error=str(e))
    return HTTPException(status_code=500, detail=str(e))


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/{recording_id}/revisions", response_model=RevisionResponse)
async def revise_fix(
    recording_id: str,
    request: RevisionRequest,
    pipeline: IssuePipeline = Depends(get_pipeline),
):
    """Ask the solution stage to revise the stored fix."""
    try:
        revised = await pipeline.revise_fix(recording_id, request.instructions)
    except (BugScoutError, ValueError) as e:
        raise _http_error(e, recording_id) from e
    return RevisionResponse(**revised.to_dict())


@router.post("/{recording_id}/approval", response_model=ApprovalResponse)
async def approve_fix(
    recording_id: str,
    request: ApprovalRequest,
    pipeline: IssuePipeline = Depends(get_pipeline),
):
    """Approve a fix and log the developer rating."""
    try:
        issue = await pipeline.approve_fix(recording_id, request.rating)
    except (BugScoutError, ValueError) as e:
        raise _http_error(e, recording_id) from e
    return ApprovalResponse(
        recording_id=issue.recording_id,
        approved=issue.approved,
        approved_rating=issue.approved_rating,
    )
