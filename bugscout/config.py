"""Configuration management for BugScout sync."""

from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # PostHog (telemetry source)
    posthog_api_key: Optional[SecretStr] = Field(None, description="PostHog personal API key")
    posthog_host: str = Field("https://eu.posthog.com", description="PostHog host")
    posthog_project_id: Optional[str] = Field(None, description="PostHog project ID")

    # Analysis stages
    anthropic_api_key: Optional[SecretStr] = Field(None, description="Anthropic API key")
    analysis_model: str = Field("claude-haiku-4-5", description="Model for classification and fix suggestion")
    analysis_max_tokens: int = Field(2500, description="Maximum response tokens per analysis call")
    codebase_map_path: Optional[str] = Field(
        None,
        description="Text file describing the monitored app's code layout, included in prompts"
    )

    # Durable store
    supabase_url: Optional[str] = Field(None, description="Supabase project URL")
    supabase_service_key: Optional[SecretStr] = Field(None, description="Supabase service role key")
    default_owner_id: Optional[str] = Field(
        None,
        description="Owner recorded on issues created by scheduled syncs"
    )

    # Secondary search index (Cloudflare Vectorize)
    cloudflare_account_id: Optional[str] = Field(None, description="Cloudflare account ID")
    cloudflare_api_token: Optional[SecretStr] = Field(None, description="Cloudflare API token")
    vectorize_index_name: str = Field("bugscout-issues", description="Vectorize index for issues")

    # Notifications (optional)
    slack_webhook_url: Optional[str] = Field(None, description="Slack webhook for new-issue alerts")

    # Pipeline tunables
    lookback_days: int = Field(7, description="How far back to fetch telemetry events")
    max_events_per_kind: int = Field(200, description="Max events fetched per tracked event kind")
    analysis_batch_size: int = Field(20, description="Aggregates per analysis call")
    max_concurrent_batches: int = Field(1, description="Batches analyzed in parallel")
    knowledge_context_limit: int = Field(25, description="Ledger entries supplied to fix suggestion")
    session_join_window_seconds: int = Field(
        1800,
        description="Window for attaching session-less events to a session of the same actor (0 disables)"
    )
    analysis_timeout_seconds: float = Field(90.0, description="Timeout for one Anthropic call")
    batch_timeout_seconds: float = Field(
        300.0,
        description="Budget for classifying and suggesting fixes for one batch; persistence runs outside it"
    )
    http_timeout_seconds: float = Field(30.0, description="Timeout for HTTP calls to external services")

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Render logs as JSON")

    # Server Settings
    server_host: str = Field("0.0.0.0", description="Server host")
    server_port: int = Field(8000, description="Server port")


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
