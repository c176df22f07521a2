"""API endpoint that triggers an error-event sync.

Exposed for both GET and POST so it can be called from a cron scheduler or
from the dashboard.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
import structlog

from bugscout.api.dependencies import get_pipeline
from bugscout.exceptions import PipelineUnavailableError
from bugscout.pipeline import IssuePipeline

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/sync", tags=["Sync"])


class SyncResponse(BaseModel):
    """Counts from one sync run."""

    sessions_with_errors: int = Field(..., description="Session aggregates found in the lookback window")
    event_only_count: int = Field(..., description="Session-less events analyzed on their own")
    new_issues: int = Field(..., description="Issues persisted by this run")
    from_sessions: int = Field(..., description="New session aggregates sent to analysis")
    from_event_only: int = Field(..., description="New event-only aggregates sent to analysis")


@router.api_route("/error-events", methods=["GET", "POST"], response_model=SyncResponse)
async def sync_error_events(pipeline: IssuePipeline = Depends(get_pipeline)):
    """Fetch recent error events, analyze the new ones and persist issues."""
    try:
        summary = await pipeline.run()
    except PipelineUnavailableError as e:
        logger.warning("Sync unavailable", error=str(e))
        raise HTTPException(status_code=503, detail=str(e))
    return SyncResponse(**summary.to_dict())
