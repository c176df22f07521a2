"""Join classification output with fix suggestions into persistable issues."""

from datetime import datetime
from typing import Optional

from bugscout.core.grouper import SessionAggregate
from bugscout.core.issues import ClassifiedIssue, Issue, SuggestedFix

PROVENANCE_MARKER = "Session ID:"
UNKNOWN_TIME = "see events"


def format_detection_time(timestamp: Optional[datetime]) -> str:
    """Human readable detection time, e.g. 'Oct 17, 2026, 3:04 PM'."""
    if timestamp is None:
        return UNKNOWN_TIME
    hour = timestamp.hour % 12 or 12
    meridiem = "AM" if timestamp.hour < 12 else "PM"
    return f"{timestamp:%b} {timestamp.day}, {timestamp.year}, {hour}:{timestamp:%M} {meridiem}"


def provenance_prefix(recording_id: str, detected_at: Optional[datetime]) -> str:
    return f"{PROVENANCE_MARKER} {recording_id}. Time faced: {format_detection_time(detected_at)}.\n\n"


def with_provenance(description: str, recording_id: str, detected_at: Optional[datetime]) -> str:
    """Prefix the description once; already-prefixed text is returned unchanged."""
    text = description or ""
    if text.strip().startswith(PROVENANCE_MARKER):
        return text
    return provenance_prefix(recording_id, detected_at) + text


def merge_issues(
    classified: list[ClassifiedIssue],
    fixes: list[SuggestedFix],
    aggregates: dict[str, SessionAggregate],
) -> list[Issue]:
    """
    Build final issues by recording ID.

    Issues without a matching fix are kept with suggested_fix unset. The
    start URL falls back to the aggregate's first URL.
    """
    fix_by_id: dict[str, SuggestedFix] = {}
    for fix in fixes:
        fix_by_id.setdefault(fix.recording_id, fix)

    issues = []
    for item in classified:
        aggregate = aggregates.get(item.recording_id)
        detected_at = aggregate.first_timestamp if aggregate else None
        fix = fix_by_id.get(item.recording_id)
        issues.append(Issue(
            recording_id=item.recording_id,
            category=item.category,
            issue_type=item.issue_type,
            title=item.title,
            description=with_provenance(item.description, item.recording_id, detected_at),
            severity=item.severity,
            code_location=item.code_location or (fix.code_location if fix else ""),
            code_snippet_hint=item.code_snippet_hint,
            start_url=item.start_url or (aggregate.first_url if aggregate else None),
            suggested_fix=fix.suggested_fix if fix else None,
        ))
    return issues
