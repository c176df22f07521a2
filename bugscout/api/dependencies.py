"""Shared FastAPI dependencies."""

from functools import lru_cache

from bugscout.pipeline import IssuePipeline, create_pipeline


@lru_cache
def get_pipeline() -> IssuePipeline:
    """Process-wide pipeline built from settings."""
    return create_pipeline()
