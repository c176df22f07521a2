"""
PostHog telemetry source.

Fetches raw $exception, $rageclick and $dead_click events from the PostHog
events API. Each kind is queried independently so one failing query only
reduces the input volume of a sync run.

Docs: https://posthog.com/docs/api/events
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

import httpx
import structlog

from bugscout.config import get_settings
from bugscout.core.normalizer import TRACKED_KINDS, EventKind
from bugscout.exceptions import TelemetryFetchError

logger = structlog.get_logger()


class PostHogEventSource:
    """Read-only client for the PostHog events API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        host: Optional[str] = None,
        project_id: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or (
            settings.posthog_api_key.get_secret_value()
            if settings.posthog_api_key
            else None
        )
        self.host = (host or settings.posthog_host).rstrip("/")
        self.project_id = project_id or settings.posthog_project_id or "@current"
        self.http = http or httpx.AsyncClient(timeout=timeout or settings.http_timeout_seconds)
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        self.log = logger.bind(component="posthog_source")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def events_url(self) -> str:
        return f"{self.host}/api/projects/{self.project_id}/events/"

    async def close(self):
        await self.http.aclose()

    async def fetch(
        self,
        kind: EventKind | str,
        since: datetime,
        limit: int,
    ) -> list[dict[str, Any]]:
        """
        Fetch up to `limit` raw events of one kind newer than `since`.

        Follows the `next` cursor across pages.

        Raises:
            TelemetryFetchError: PostHog is not configured or a page request failed
        """
        if not self.is_configured:
            raise TelemetryFetchError("PostHog API key is not set")

        event_name = kind.value if isinstance(kind, EventKind) else str(kind)
        url: Optional[str] = self.events_url
        params: Optional[dict] = {
            "event": event_name,
            "limit": str(limit),
            "after": since.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S"),
        }
        events: list[dict[str, Any]] = []

        while url and len(events) < limit:
            try:
                response = await self.http.get(url, headers=self.headers, params=params)
            except httpx.HTTPError as e:
                raise TelemetryFetchError(f"PostHog request failed for {event_name}: {e}") from e

            if response.status_code != 200:
                raise TelemetryFetchError(
                    f"PostHog API error {response.status_code} for {event_name}: {response.text[:200]}"
                )

            data = response.json()
            page = data.get("results") or []
            events.extend(row for row in page if isinstance(row, dict))
            url = data.get("next")
            # The next URL already carries the query string.
            params = None

        return events[:limit]

    async def fetch_recent(
        self,
        lookback: timedelta,
        limit: int,
        kinds: tuple[EventKind, ...] = TRACKED_KINDS,
    ) -> dict[EventKind, list[dict[str, Any]]]:
        """
        Fetch every tracked kind concurrently.

        A kind whose query fails maps to an empty list.
        """
        since = datetime.now(UTC) - lookback
        results = await asyncio.gather(
            *(self.fetch(kind, since, limit) for kind in kinds),
            return_exceptions=True,
        )

        by_kind: dict[EventKind, list[dict[str, Any]]] = {}
        for kind, result in zip(kinds, results):
            if isinstance(result, Exception):
                self.log.warning("Event fetch failed", kind=kind.value, error=str(result))
                by_kind[kind] = []
            else:
                by_kind[kind] = result

        self.log.info(
            "Fetched telemetry events",
            counts={kind.value: len(rows) for kind, rows in by_kind.items()},
        )
        return by_kind
