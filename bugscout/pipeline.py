"""
Issue Pipeline

Runs the sync end to end:

    fetch -> normalize -> group -> dedupe -> classify -> suggest fixes
          -> merge -> persist (+ ledger, search mirror) -> alert

and the developer follow-ups on a stored issue (fix revision and approval).
Each stage is injected so it can be swapped or faked; create_pipeline()
wires the production components from settings.
"""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Optional, Protocol

import structlog

from bugscout.analysis.base import FixRevision, FixSuggester, IssueClassifier
from bugscout.config import Settings, get_settings
from bugscout.core.dedup import DeduplicationGate
from bugscout.core.grouper import AggregateKind, SessionAggregate, SessionGrouper
from bugscout.core.issues import ClassifiedIssue, Issue, KnowledgeLogEntry, SuggestedFix
from bugscout.core.merge import merge_issues
from bugscout.core.normalizer import EventKind, EventNormalizer, NormalizedEvent
from bugscout.core.scheduler import for_each_batch
from bugscout.exceptions import AnalysisError, PipelineUnavailableError
from bugscout.integrations.slack import SlackNotifier
from bugscout.services.background import BackgroundTasks
from bugscout.services.issue_store import IssueStore
from bugscout.services.persistence import PersistenceSink
from bugscout.services.vectorize import IssueIndexMirror
from bugscout.utils.logging import log_operation

logger = structlog.get_logger()

MIN_RATING = 1
MAX_RATING = 5


class EventSource(Protocol):
    """Anything that can return raw telemetry events per tracked kind."""

    async def fetch_recent(self, lookback: timedelta, limit: int) -> dict[EventKind, list[dict]]:
        ...


@dataclass
class SyncSummary:
    """Counts reported by one sync run."""
    sessions_with_errors: int = 0
    event_only_count: int = 0
    new_issues: int = 0
    from_sessions: int = 0
    from_event_only: int = 0

    def to_dict(self) -> dict:
        return {
            "sessions_with_errors": self.sessions_with_errors,
            "event_only_count": self.event_only_count,
            "new_issues": self.new_issues,
            "from_sessions": self.from_sessions,
            "from_event_only": self.from_event_only,
        }


@dataclass
class RevisedFix:
    """Outcome of a developer-requested fix revision."""
    issue: Issue
    fix: SuggestedFix

    def to_dict(self) -> dict:
        return {
            "recording_id": self.issue.recording_id,
            "suggested_fix": self.fix.suggested_fix,
            "code_edits": [e.to_dict() for e in self.fix.code_edits],
            "agent_confidence_score": self.fix.agent_confidence_score,
        }


def batch_issues(
    classified: list[ClassifiedIssue],
    batch_ids: set[str],
) -> list[ClassifiedIssue]:
    """Keep the first classified issue per aggregate of this batch."""
    seen: set[str] = set()
    kept = []
    for issue in classified:
        if issue.recording_id not in batch_ids or issue.recording_id in seen:
            continue
        seen.add(issue.recording_id)
        kept.append(issue)
    return kept


def latest_issue(issues: list[Issue]) -> Issue:
    """Most recently created issue; falls back to the last one stored."""
    dated = [i for i in issues if i.created_at is not None]
    if dated:
        return max(dated, key=lambda i: i.created_at)
    return issues[-1]


class IssuePipeline:
    """Orchestrates a sync run and the fix follow-up flows."""

    def __init__(
        self,
        source: EventSource,
        store: IssueStore,
        classifier: IssueClassifier,
        suggester: FixSuggester,
        mirror: Optional[IssueIndexMirror] = None,
        notifier: Optional[SlackNotifier] = None,
        settings: Optional[Settings] = None,
        background: Optional[BackgroundTasks] = None,
    ):
        self.settings = settings or get_settings()
        self.source = source
        self.store = store
        self.classifier = classifier
        self.suggester = suggester
        self.mirror = mirror
        self.notifier = notifier
        self.background = background or BackgroundTasks()

        self.normalizer = EventNormalizer()
        self.grouper = SessionGrouper(
            join_window=timedelta(seconds=self.settings.session_join_window_seconds),
        )
        self.dedup = DeduplicationGate(store)
        self.sink = PersistenceSink(store, mirror=mirror, background=self.background)
        self.log = logger.bind(component="issue_pipeline")

    async def close(self) -> None:
        """Close HTTP clients held by the injected components."""
        for resource in (self.source, getattr(self.store, "client", None), getattr(self.mirror, "client", None)):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()

    def _require_store(self) -> None:
        if not self.store.is_configured:
            raise PipelineUnavailableError("Issue store is not configured")

    async def run(self) -> SyncSummary:
        """
        Run one sync over the lookback window.

        Returns:
            SyncSummary with candidate and new-issue counts

        Raises:
            PipelineUnavailableError: No issue store is configured
        """
        self._require_store()

        with log_operation("sync_error_events", self.log) as op:
            events = await self._fetch_events()
            aggregates = self.grouper.group(events)
            fresh = await self.dedup.filter_new(aggregates)

            new_issues: list[Issue] = []
            if fresh:
                knowledge = await self._load_knowledge()

                async def analyze(batch: list[SessionAggregate]) -> int:
                    saved = await self._analyze_batch(batch, knowledge)
                    new_issues.extend(saved)
                    return len(saved)

                await for_each_batch(
                    fresh,
                    self.settings.analysis_batch_size,
                    analyze,
                    max_concurrency=self.settings.max_concurrent_batches,
                )

            if new_issues:
                self._notify(new_issues)

            summary = SyncSummary(
                sessions_with_errors=sum(1 for a in aggregates if a.kind == AggregateKind.SESSION),
                event_only_count=sum(1 for a in aggregates if a.kind == AggregateKind.EVENT_ONLY),
                new_issues=len(new_issues),
                from_sessions=sum(1 for a in fresh if a.kind == AggregateKind.SESSION),
                from_event_only=sum(1 for a in fresh if a.kind == AggregateKind.EVENT_ONLY),
            )
            op.update(summary.to_dict())
        return summary

    async def _fetch_events(self) -> list[NormalizedEvent]:
        raw_by_kind = await self.source.fetch_recent(
            lookback=timedelta(days=self.settings.lookback_days),
            limit=self.settings.max_events_per_kind,
        )
        events: list[NormalizedEvent] = []
        for kind, rows in raw_by_kind.items():
            events.extend(self.normalizer.normalize_many(rows, kind))
        return events

    async def _load_knowledge(self) -> list[KnowledgeLogEntry]:
        """Recent ledger entries; an unreadable ledger only removes calibration."""
        try:
            return await self.store.recent_knowledge(self.settings.knowledge_context_limit)
        except Exception as e:
            self.log.warning("Knowledge ledger unavailable", error=str(e))
            return []

    async def _analyze_batch(
        self,
        batch: list[SessionAggregate],
        knowledge: list[KnowledgeLogEntry],
    ) -> list[Issue]:
        by_id = {a.aggregate_id: a for a in batch}

        analyzed = await asyncio.wait_for(
            self._classify_and_suggest(batch, by_id, knowledge),
            timeout=self.settings.batch_timeout_seconds,
        )
        if analyzed is None:
            return []

        classified, fixes = analyzed
        issues = merge_issues(classified, fixes, by_id)
        return await self.sink.persist_issues(issues, fixes)

    async def _classify_and_suggest(
        self,
        batch: list[SessionAggregate],
        by_id: dict[str, SessionAggregate],
        knowledge: list[KnowledgeLogEntry],
    ) -> Optional[tuple[list[ClassifiedIssue], list[SuggestedFix]]]:
        classified = batch_issues(await self.classifier.classify(batch), set(by_id))
        if not classified:
            return None
        fixes = await self.suggester.suggest_fixes(classified, knowledge)
        return classified, fixes

    def _notify(self, issues: list[Issue]) -> None:
        if self.notifier is None or not self.notifier.is_configured:
            return
        self.background.spawn(
            self.notifier.send_new_issue_alert([latest_issue(issues)]),
            name="slack_new_issue_alert",
        )

    async def revise_fix(self, recording_id: str, instructions: str) -> RevisedFix:
        """
        Revise the stored fix of one issue following developer instructions.

        Raises:
            ValueError: Empty instructions
            IssueNotFoundError: No issue for recording_id
            AnalysisError: The suggester returned no fix for the issue
        """
        self._require_store()
        instructions = (instructions or "").strip()
        if not instructions:
            raise ValueError("Revision instructions must not be empty")

        issue = await self.store.get_issue(recording_id)
        knowledge = await self._load_knowledge()
        fixes = await self.suggester.suggest_fixes(
            [issue.to_classified()],
            knowledge,
            revision=FixRevision(previous_fix=issue.suggested_fix or "", instructions=instructions),
        )
        fix = next((f for f in fixes if f.recording_id == recording_id), None)
        if fix is None:
            raise AnalysisError(f"No revised fix returned for {recording_id}")

        updated = await self.store.update_issue(recording_id, {"suggested_fix": fix.suggested_fix})
        await self.store.record_revision(updated, instructions, fix.suggested_fix)
        await self.sink.append_scored_fixes([updated], [fix])

        if self.mirror is not None and self.mirror.is_configured:
            self.background.spawn(self.mirror.mirror([updated]), name="mirror_revised_issue")

        self.log.info(
            "Fix revised",
            recording_id=recording_id,
            confidence=fix.agent_confidence_score,
        )
        return RevisedFix(issue=updated, fix=fix)

    async def approve_fix(self, recording_id: str, rating: int) -> Issue:
        """
        Mark an issue's fix as approved with a 1-5 developer rating.

        The rating is also appended to the knowledge ledger so future fix
        suggestions can calibrate against it.
        """
        self._require_store()
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"Rating must be an integer from {MIN_RATING} to {MAX_RATING}")

        issue = await self.store.update_issue(recording_id, {
            "approved": True,
            "approved_rating": rating,
            "approved_at": datetime.now(UTC).isoformat(),
        })

        entry = KnowledgeLogEntry(
            recording_id=issue.recording_id,
            title=issue.title,
            description=issue.description,
            severity=issue.severity.value,
            suggested_fix=issue.suggested_fix or "",
            developer_rating=rating,
        )
        try:
            await self.store.append_knowledge(entry)
        except Exception as e:
            self.log.warning("Failed to log approval", recording_id=recording_id, error=str(e))

        self.log.info("Fix approved", recording_id=recording_id, rating=rating)
        return issue


def create_pipeline(settings: Optional[Settings] = None) -> IssuePipeline:
    """Wire the production pipeline from settings."""
    from bugscout.analysis.claude import ClaudeFixSuggester, ClaudeIssueClassifier
    from bugscout.integrations.posthog import PostHogEventSource
    from bugscout.services.issue_store import SupabaseIssueStore
    from bugscout.services.vectorize import get_issue_index_mirror

    settings = settings or get_settings()
    return IssuePipeline(
        source=PostHogEventSource(),
        store=SupabaseIssueStore(owner_id=settings.default_owner_id or None),
        classifier=ClaudeIssueClassifier(),
        suggester=ClaudeFixSuggester(),
        mirror=get_issue_index_mirror(),
        notifier=SlackNotifier(webhook_url=settings.slack_webhook_url),
        settings=settings,
    )
