"""
Cloudflare Vectorize REST API client.

Secondary search index for persisted issues. The durable store is the
source of truth; this index only mirrors it for semantic search, so every
write here is best-effort.
"""

import json
from typing import Optional

import httpx
import structlog

from bugscout.config import get_settings
from bugscout.core.issues import Issue

logger = structlog.get_logger()

CF_API_BASE = "https://api.cloudflare.com/client/v4/accounts"


class CloudflareVectorizeClient:
    """Cloudflare Vectorize REST API client."""

    def __init__(self, account_id: str, index_name: str, api_token: str, timeout: float = 30.0):
        self.account_id = account_id
        self.index_name = index_name
        self.api_token = api_token
        self.timeout = timeout
        # v2 indexes require the v2 API
        self.base_url = f"{CF_API_BASE}/{account_id}/vectorize/v2/indexes/{index_name}"
        # bge-large-en-v1.5, 1024 dimensions
        self.ai_url = f"{CF_API_BASE}/{account_id}/ai/run/@cf/baai/bge-large-en-v1.5"
        self._client: httpx.AsyncClient | None = None
        self.log = logger.bind(component="vectorize")

    def _get_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json"
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def generate_embedding(self, text: str) -> list[float] | None:
        """Generate a text embedding using Cloudflare Workers AI."""
        try:
            client = await self._get_client()
            # Workers AI expects text as an array
            response = await client.post(
                self.ai_url,
                headers=self._get_headers(),
                json={"text": [text]}
            )

            if response.status_code == 200:
                result = response.json()
                # {"result": {"data": [[...embedding...]]}}
                if result.get("success") and result.get("result"):
                    data = result["result"].get("data", [])
                    if data:
                        return data[0]
                self.log.warning("Embedding response missing data", result=str(result)[:200])
                return None
            self.log.warning("Embedding generation error", status=response.status_code, error=response.text[:200])
            return None
        except Exception as e:
            self.log.warning("Embedding generation exception", error=str(e))
            return None

    async def upsert(self, vectors: list[dict]) -> bool:
        """
        Upsert vectors into the index (insert or update).

        Args:
            vectors: List of dicts with id, values, and optional metadata

        Returns:
            True if successful
        """
        try:
            client = await self._get_client()

            response = await client.post(
                f"{self.base_url}/upsert",
                headers=self._get_headers(),
                json={"vectors": vectors}
            )

            if response.status_code == 200:
                return bool(response.json().get("success", False))
            self.log.warning("Vectorize upsert error", status=response.status_code, error=response.text[:200])
            return False
        except Exception as e:
            self.log.warning("Vectorize upsert exception", error=str(e))
            return False

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def issue_document(issue: Issue) -> str:
    """Searchable text for one issue."""
    return json.dumps({
        "recording_id": issue.recording_id,
        "title": issue.title,
        "description": issue.description,
        "severity": issue.severity.value,
        "code_location": issue.code_location,
        "suggested_fix": issue.suggested_fix,
        "status": issue.status.value,
    })[:2000]


def issue_metadata(issue: Issue) -> dict[str, str]:
    """Vectorize metadata values must be strings, numbers or booleans."""
    return {
        "recording_id": issue.recording_id,
        "table": "issues",
        "severity": issue.severity.value,
        "title": issue.title[:200],
        "source": "bugscout",
    }


class IssueIndexMirror:
    """Mirrors persisted issues into Vectorize, keyed by recording ID."""

    def __init__(self, client: Optional[CloudflareVectorizeClient] = None):
        self.client = client
        self.log = logger.bind(component="issue_index_mirror")

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    async def mirror(self, issues: list[Issue]) -> int:
        """Embed and upsert issues. Returns how many were indexed; never raises."""
        if not self.client or not issues:
            return 0

        vectors = []
        for issue in issues:
            embedding = await self.client.generate_embedding(issue_document(issue))
            if embedding is None:
                continue
            vectors.append({
                "id": issue.recording_id,
                "values": embedding,
                "metadata": issue_metadata(issue),
            })

        if not vectors:
            return 0
        if not await self.client.upsert(vectors):
            self.log.warning("Issue mirror upsert failed", count=len(vectors))
            return 0
        self.log.info("Mirrored issues to search index", count=len(vectors))
        return len(vectors)


def get_issue_index_mirror() -> IssueIndexMirror:
    """Build a mirror from settings; unconfigured means a no-op mirror."""
    settings = get_settings()

    if not settings.cloudflare_api_token or not settings.cloudflare_account_id:
        logger.info("Cloudflare Vectorize not configured - issue mirroring disabled")
        return IssueIndexMirror(None)

    return IssueIndexMirror(CloudflareVectorizeClient(
        account_id=settings.cloudflare_account_id,
        index_name=settings.vectorize_index_name,
        api_token=settings.cloudflare_api_token.get_secret_value(),
        timeout=settings.http_timeout_seconds,
    ))
