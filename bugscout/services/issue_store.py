"""
Issue Store

Durable storage for issues, fix revisions and the knowledge ledger.

Tables (PostgreSQL via Supabase):
- issues: one row per (user_id, recording_id), enforced by a unique index.
  Upserts rely on that index; the pipeline holds no locks of its own.
- issue_revisions: developer revision instructions and the resulting fix.
- logs: the append-only knowledge ledger.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, Optional

import structlog

from bugscout.core.issues import Issue, KnowledgeLogEntry
from bugscout.exceptions import IssueNotFoundError, IssueStoreError
from bugscout.services.supabase_client import SupabaseClient, get_supabase_client

logger = structlog.get_logger()

ISSUES_TABLE = "issues"
REVISIONS_TABLE = "issue_revisions"
KNOWLEDGE_TABLE = "logs"
ISSUE_CONFLICT_KEY = "user_id,recording_id"
EXISTING_IDS_FUNCTION = "existing_recording_ids"


class IssueStore(ABC):
    """Key-value style access to persisted issues and the knowledge ledger."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the store can be reached at all."""

    @abstractmethod
    async def existing_recording_ids(self, recording_ids: list[str]) -> set[str]:
        """Which of the given recording IDs already have an issue (one query)."""

    @abstractmethod
    async def upsert_issue(self, issue: Issue) -> Issue:
        """Insert the issue or update its mutable fields; never duplicates."""

    @abstractmethod
    async def get_issue(self, recording_id: str) -> Issue:
        """Fetch one issue. Raises IssueNotFoundError."""

    @abstractmethod
    async def update_issue(self, recording_id: str, fields: dict[str, Any]) -> Issue:
        """Patch fields of an existing issue and bump updated_at."""

    @abstractmethod
    async def record_revision(
        self,
        issue: Issue,
        instruction: str,
        suggested_fix_after: Optional[str],
    ) -> None:
        """Store a developer revision request and its outcome."""

    @abstractmethod
    async def append_knowledge(self, entry: KnowledgeLogEntry) -> None:
        """Append a ledger row. Always a new row."""

    @abstractmethod
    async def recent_knowledge(self, limit: int) -> list[KnowledgeLogEntry]:
        """Most recent ledger rows, newest first."""


class SupabaseIssueStore(IssueStore):
    """IssueStore backed by Supabase PostgREST."""

    def __init__(
        self,
        client: Optional[SupabaseClient] = None,
        owner_id: Optional[str] = None,
    ):
        self.client = client or get_supabase_client()
        self.owner_id = owner_id
        self.log = logger.bind(component="issue_store")

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    def _owner_filter(self) -> dict[str, str]:
        if self.owner_id is None:
            return {"user_id": "is.null"}
        return {"user_id": f"eq.{self.owner_id}"}

    def _issue_filter(self, recording_id: str) -> dict[str, str]:
        return {**self._owner_filter(), "recording_id": f"eq.{recording_id}"}

    @staticmethod
    def _check(result: dict[str, Any], operation: str) -> Any:
        if result.get("error"):
            raise IssueStoreError(f"{operation} failed: {result['error']}")
        return result.get("data")

    async def existing_recording_ids(self, recording_ids: list[str]) -> set[str]:
        if not recording_ids:
            return set()
        # Ids go in the request body, never the query string.
        result = await self.client.rpc(
            EXISTING_IDS_FUNCTION,
            {"ids": list(recording_ids), "owner_id": self.owner_id},
        )
        rows = self._check(result, "existence check") or []
        return {row["recording_id"] for row in rows if row.get("recording_id")}

    async def upsert_issue(self, issue: Issue) -> Issue:
        record = {
            **issue.to_record(),
            "user_id": self.owner_id,
            "updated_at": datetime.now(UTC).isoformat(),
        }
        result = await self.client.upsert(ISSUES_TABLE, record, on_conflict=ISSUE_CONFLICT_KEY)
        rows = self._check(result, "issue upsert")
        if isinstance(rows, list) and rows:
            return Issue.from_record(rows[0])
        return issue

    async def get_issue(self, recording_id: str) -> Issue:
        result = await self.client.select(
            ISSUES_TABLE,
            filters=self._issue_filter(recording_id),
            limit=1,
        )
        rows = self._check(result, "issue lookup") or []
        if not rows:
            raise IssueNotFoundError(recording_id)
        return Issue.from_record(rows[0])

    async def update_issue(self, recording_id: str, fields: dict[str, Any]) -> Issue:
        data = {**fields, "updated_at": datetime.now(UTC).isoformat()}
        result = await self.client.update(ISSUES_TABLE, self._issue_filter(recording_id), data)
        rows = self._check(result, "issue update") or []
        if not rows:
            raise IssueNotFoundError(recording_id)
        return Issue.from_record(rows[0])

    async def record_revision(
        self,
        issue: Issue,
        instruction: str,
        suggested_fix_after: Optional[str],
    ) -> None:
        if issue.id is None:
            raise IssueStoreError(f"Issue {issue.recording_id} has no row ID")
        result = await self.client.insert(REVISIONS_TABLE, {
            "issue_id": issue.id,
            "instruction": instruction,
            "suggested_fix_after": suggested_fix_after,
        })
        self._check(result, "revision insert")

    async def append_knowledge(self, entry: KnowledgeLogEntry) -> None:
        result = await self.client.insert(KNOWLEDGE_TABLE, entry.to_record())
        self._check(result, "knowledge append")

    async def recent_knowledge(self, limit: int) -> list[KnowledgeLogEntry]:
        result = await self.client.select(
            KNOWLEDGE_TABLE,
            order="created_at.desc",
            limit=limit,
        )
        rows = self._check(result, "knowledge lookup") or []
        return [KnowledgeLogEntry.from_record(row) for row in rows]
