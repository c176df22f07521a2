"""
Issue data model and boundary validation.

Analysis stages return loosely structured JSON. The parse_* functions here
are the single place where that output is validated: a malformed record is
dropped (parse returns None) rather than raising, and a malformed confidence
score is reduced to None while the rest of the record stays usable.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

import structlog

logger = structlog.get_logger()

DEFAULT_CATEGORY = "ux"
DEFAULT_ISSUE_TYPE = "js-frontend-errors"


class Severity(str, Enum):
    """Allowed issue severities."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class IssueStatus(str, Enum):
    """Resolution state of a persisted issue."""
    UNRESOLVED = "Unresolved"
    RESOLVED = "Resolved"


@dataclass
class ClassifiedIssue:
    """Output of the classification stage for one aggregate."""
    recording_id: str
    severity: Severity
    title: str
    description: str
    category: str = DEFAULT_CATEGORY
    issue_type: str = DEFAULT_ISSUE_TYPE
    code_location: str = ""
    code_snippet_hint: Optional[str] = None
    start_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "recording_id": self.recording_id,
            "category": self.category,
            "issue_type": self.issue_type,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "code_location": self.code_location,
            "code_snippet_hint": self.code_snippet_hint,
            "start_url": self.start_url,
        }


@dataclass
class CodeEdit:
    """A concrete code change proposed alongside a fix."""
    file: str
    description: str
    snippet: str

    def to_dict(self) -> dict:
        return {"file": self.file, "description": self.description, "snippet": self.snippet}


@dataclass
class SuggestedFix:
    """Output of the fix-suggestion stage for one issue."""
    recording_id: str
    title: str
    suggested_fix: str
    code_location: str
    code_edits: list[CodeEdit] = field(default_factory=list)
    agent_confidence_score: Optional[float] = None  # 0.0 - 1.0, None when unusable

    def to_dict(self) -> dict:
        return {
            "recording_id": self.recording_id,
            "title": self.title,
            "suggested_fix": self.suggested_fix,
            "code_location": self.code_location,
            "code_edits": [e.to_dict() for e in self.code_edits],
            "agent_confidence_score": self.agent_confidence_score,
        }


@dataclass
class Issue:
    """Persisted issue: classification merged with its suggested fix."""
    recording_id: str
    category: str
    issue_type: str
    title: str
    description: str
    severity: Severity
    code_location: str
    code_snippet_hint: Optional[str] = None
    start_url: Optional[str] = None
    suggested_fix: Optional[str] = None
    status: IssueStatus = IssueStatus.UNRESOLVED
    approved: bool = False
    approved_rating: Optional[int] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_record(self) -> dict:
        """Columns written by the pipeline; status and approval are left to the store."""
        return {
            "recording_id": self.recording_id,
            "posthog_category_id": self.category,
            "posthog_issue_type_id": self.issue_type,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "code_location": self.code_location,
            "code_snippet_hint": self.code_snippet_hint,
            "start_url": self.start_url,
            "suggested_fix": self.suggested_fix,
        }

    @classmethod
    def from_record(cls, row: dict) -> "Issue":
        return cls(
            id=row.get("id"),
            recording_id=row["recording_id"],
            category=row.get("posthog_category_id") or DEFAULT_CATEGORY,
            issue_type=row.get("posthog_issue_type_id") or DEFAULT_ISSUE_TYPE,
            title=row.get("title") or "",
            description=row.get("description") or "",
            severity=parse_severity(row.get("severity")) or Severity.MEDIUM,
            code_location=row.get("code_location") or "",
            code_snippet_hint=row.get("code_snippet_hint"),
            start_url=row.get("start_url"),
            suggested_fix=row.get("suggested_fix"),
            status=_parse_status(row.get("status")),
            approved=bool(row.get("approved", False)),
            approved_rating=row.get("approved_rating"),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )

    def to_classified(self) -> ClassifiedIssue:
        return ClassifiedIssue(
            recording_id=self.recording_id,
            severity=self.severity,
            title=self.title,
            description=self.description,
            category=self.category,
            issue_type=self.issue_type,
            code_location=self.code_location,
            code_snippet_hint=self.code_snippet_hint,
            start_url=self.start_url,
        )


@dataclass
class KnowledgeLogEntry:
    """Append-only ledger row describing a past fix and how it was rated."""
    recording_id: str
    title: str
    description: str
    severity: str
    suggested_fix: str
    developer_rating: Optional[int] = None
    agent_confidence_score: Optional[float] = None
    created_at: Optional[datetime] = None

    def to_record(self) -> dict:
        return {
            "recording_id": self.recording_id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "suggested_fix": self.suggested_fix,
            "developer_rating": self.developer_rating,
            "agent_confidence_score": self.agent_confidence_score,
        }

    @classmethod
    def from_record(cls, row: dict) -> "KnowledgeLogEntry":
        score = row.get("agent_confidence_score")
        try:
            score = float(score) if score is not None else None
        except (TypeError, ValueError):
            score = None
        return cls(
            recording_id=row.get("recording_id") or "",
            title=row.get("title") or "",
            description=row.get("description") or "",
            severity=row.get("severity") or "",
            suggested_fix=row.get("suggested_fix") or "",
            developer_rating=row.get("developer_rating"),
            agent_confidence_score=score,
            created_at=_parse_timestamp(row.get("created_at")),
        )


def parse_severity(value: Any) -> Optional[Severity]:
    """Exact match against the four allowed values; anything else is None."""
    if not isinstance(value, str):
        return None
    try:
        return Severity(value)
    except ValueError:
        return None


def parse_confidence(value: Any) -> Optional[float]:
    """A usable confidence score is a real number in [0, 1]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    score = float(value)
    if math.isnan(score) or score < 0.0 or score > 1.0:
        return None
    return score


def parse_classified_issue(data: Any) -> Optional[ClassifiedIssue]:
    """Validate one classification record. Returns None when it must be dropped."""
    if not isinstance(data, dict):
        return None
    recording_id = _get(data, "recording_id", "recordingId")
    title = _get(data, "title")
    description = _get(data, "description")
    if not all(isinstance(v, str) and v for v in (recording_id, title)) or not isinstance(description, str):
        return None
    severity = parse_severity(_get(data, "severity"))
    if severity is None:
        logger.debug("Dropping classified issue with invalid severity", recording_id=recording_id)
        return None
    return ClassifiedIssue(
        recording_id=recording_id,
        severity=severity,
        title=title,
        description=description,
        category=_optional_str(_get(data, "category", "posthog_category_id", "posthogCategoryId")) or DEFAULT_CATEGORY,
        issue_type=_optional_str(_get(data, "issue_type", "posthog_issue_type_id", "posthogIssueTypeId")) or DEFAULT_ISSUE_TYPE,
        code_location=_optional_str(_get(data, "code_location", "codeLocation")) or "",
        code_snippet_hint=_optional_str(_get(data, "code_snippet_hint", "codeSnippetHint")),
        start_url=_optional_str(_get(data, "start_url", "startUrl")),
    )


def parse_suggested_fix(data: Any) -> Optional[SuggestedFix]:
    """Validate one fix-suggestion record. Returns None when it must be dropped."""
    if not isinstance(data, dict):
        return None
    recording_id = _get(data, "recording_id", "recordingId")
    title = _get(data, "title")
    suggested_fix = _get(data, "suggested_fix", "suggestedFix")
    code_location = _get(data, "code_location", "codeLocation")
    if not all(isinstance(v, str) for v in (recording_id, title, suggested_fix, code_location)):
        return None
    if not recording_id:
        return None

    edits = []
    raw_edits = _get(data, "code_edits", "codeEdits")
    if isinstance(raw_edits, list):
        for edit in raw_edits:
            if isinstance(edit, dict) and isinstance(edit.get("file"), str):
                edits.append(CodeEdit(
                    file=edit["file"],
                    description=str(edit.get("description") or ""),
                    snippet=str(edit.get("snippet") or ""),
                ))

    return SuggestedFix(
        recording_id=recording_id,
        title=title,
        suggested_fix=suggested_fix,
        code_location=code_location,
        code_edits=edits,
        agent_confidence_score=parse_confidence(_get(data, "agent_confidence_score", "agentConfidenceScore")),
    )


def _get(data: dict, *keys: str) -> Any:
    """First present key; model output mixes snake_case and camelCase."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _parse_status(value: Any) -> IssueStatus:
    try:
        return IssueStatus(value)
    except ValueError:
        return IssueStatus.UNRESOLVED
