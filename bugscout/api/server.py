"""FastAPI service for BugScout.

Provides REST API endpoints for:
- Triggering an error-event sync
- Revising and approving suggested fixes
- Health checks
"""

from datetime import UTC, datetime

from fastapi import FastAPI
from pydantic import BaseModel
import structlog

from bugscout import __version__
from bugscout.api.issues import router as issues_router
from bugscout.api.sync import router as sync_router
from bugscout.config import get_settings

logger = structlog.get_logger()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    store_configured: bool


# ============================================================================
# App Configuration
# ============================================================================

app = FastAPI(
    title="BugScout API",
    description="Turns product telemetry into classified issues with suggested fixes",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(sync_router)
app.include_router(issues_router)


# ============================================================================
# Health & Status Endpoints
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        store_configured=bool(settings.supabase_url and settings.supabase_service_key),
    )
