"""Core sync logic: normalization, grouping, deduplication, batching and merging."""

from .dedup import DeduplicationGate, filter_new
from .grouper import (
    EVENT_AGGREGATE_PREFIX,
    AggregateKind,
    EventCounts,
    SessionAggregate,
    SessionGrouper,
    event_aggregate_id,
)
from .issues import (
    ClassifiedIssue,
    CodeEdit,
    Issue,
    IssueStatus,
    KnowledgeLogEntry,
    Severity,
    SuggestedFix,
    parse_classified_issue,
    parse_confidence,
    parse_severity,
    parse_suggested_fix,
)
from .merge import merge_issues, with_provenance
from .normalizer import TRACKED_KINDS, EventKind, EventNormalizer, NormalizedEvent, normalize
from .scheduler import BatchOutcome, BatchRunResult, chunk, for_each_batch

__all__ = [
    # Normalizer
    "EventKind",
    "EventNormalizer",
    "NormalizedEvent",
    "TRACKED_KINDS",
    "normalize",
    # Grouper
    "AggregateKind",
    "EVENT_AGGREGATE_PREFIX",
    "EventCounts",
    "SessionAggregate",
    "SessionGrouper",
    "event_aggregate_id",
    # Dedup
    "DeduplicationGate",
    "filter_new",
    # Scheduler
    "BatchOutcome",
    "BatchRunResult",
    "chunk",
    "for_each_batch",
    # Issues
    "ClassifiedIssue",
    "CodeEdit",
    "Issue",
    "IssueStatus",
    "KnowledgeLogEntry",
    "Severity",
    "SuggestedFix",
    "parse_classified_issue",
    "parse_confidence",
    "parse_severity",
    "parse_suggested_fix",
    # Merge
    "merge_issues",
    "with_provenance",
]
