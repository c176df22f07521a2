"""
Persistence Sink

Writes merged issues to the durable store one record at a time, appends a
knowledge-ledger row for every scored fix, and hands the stored issues to the
search-index mirror as a detached task.
"""

from typing import Optional

import structlog

from bugscout.core.issues import Issue, KnowledgeLogEntry, SuggestedFix
from bugscout.services.background import BackgroundTasks
from bugscout.services.issue_store import IssueStore
from bugscout.services.vectorize import IssueIndexMirror

logger = structlog.get_logger()


def knowledge_entry(issue: Issue, fix: SuggestedFix) -> KnowledgeLogEntry:
    """Ledger row for a scored fix, described by the issue it belongs to."""
    return KnowledgeLogEntry(
        recording_id=fix.recording_id,
        title=fix.title or issue.title,
        description=issue.description,
        severity=issue.severity.value,
        suggested_fix=fix.suggested_fix,
        agent_confidence_score=fix.agent_confidence_score,
    )


class PersistenceSink:
    """Stores issues and their ledger entries; never raises for a single record."""

    def __init__(
        self,
        store: IssueStore,
        mirror: Optional[IssueIndexMirror] = None,
        background: Optional[BackgroundTasks] = None,
    ):
        self.store = store
        self.mirror = mirror
        self.background = background or BackgroundTasks()
        self.log = logger.bind(component="persistence_sink")

    async def persist(self, issues: list[Issue], fixes: list[SuggestedFix]) -> int:
        """Persist issues and return how many were stored."""
        return len(await self.persist_issues(issues, fixes))

    async def persist_issues(
        self,
        issues: list[Issue],
        fixes: list[SuggestedFix],
    ) -> list[Issue]:
        """
        Upsert each issue, then append ledger rows for scored fixes.

        Returns:
            The issues that were stored, as returned by the store
        """
        saved: list[Issue] = []
        for issue in issues:
            try:
                saved.append(await self.store.upsert_issue(issue))
            except Exception as e:
                self.log.error(
                    "Failed to persist issue",
                    recording_id=issue.recording_id,
                    error=str(e),
                )

        await self.append_scored_fixes(issues, fixes)

        if saved and self.mirror is not None and self.mirror.is_configured:
            self.background.spawn(self.mirror.mirror(saved), name="mirror_issues")

        self.log.info("Persisted issues", requested=len(issues), stored=len(saved))
        return saved

    async def append_scored_fixes(self, issues: list[Issue], fixes: list[SuggestedFix]) -> int:
        """Append one ledger row per fix with a usable confidence score."""
        by_id = {issue.recording_id: issue for issue in issues}
        appended = 0
        for fix in fixes:
            issue = by_id.get(fix.recording_id)
            if fix.agent_confidence_score is None or issue is None:
                continue
            try:
                await self.store.append_knowledge(knowledge_entry(issue, fix))
                appended += 1
            except Exception as e:
                self.log.warning(
                    "Failed to append knowledge entry",
                    recording_id=fix.recording_id,
                    error=str(e),
                )
        return appended
