"""Tests for issue models and validation of analysis output."""

import math

import pytest


class TestSeverity:
    """Tests for parse_severity."""

    @pytest.mark.parametrize("value", ["Critical", "High", "Medium", "Low"])
    def test_allowed_values(self, value):
        from bugscout.core.issues import parse_severity

        assert parse_severity(value).value == value

    @pytest.mark.parametrize("value", ["high", "URGENT", "", None, 3, "Medium "])
    def test_rejected_values(self, value):
        from bugscout.core.issues import parse_severity

        assert parse_severity(value) is None


class TestConfidence:
    """Tests for parse_confidence."""

    @pytest.mark.parametrize("value,expected", [(0, 0.0), (1, 1.0), (0.85, 0.85)])
    def test_valid_scores(self, value, expected):
        from bugscout.core.issues import parse_confidence

        assert parse_confidence(value) == expected

    @pytest.mark.parametrize("value", [1.5, -0.1, "high", "0.9", True, False, None, math.nan])
    def test_invalid_scores(self, value):
        from bugscout.core.issues import parse_confidence

        assert parse_confidence(value) is None


class TestParseClassifiedIssue:
    """Tests for parse_classified_issue."""

    def test_defaults_applied(self):
        from bugscout.core.issues import DEFAULT_CATEGORY, DEFAULT_ISSUE_TYPE, Severity, parse_classified_issue

        issue = parse_classified_issue({
            "recording_id": "s1",
            "title": "Checkout crash",
            "description": "TypeError on submit",
            "severity": "High",
        })

        assert issue.severity == Severity.HIGH
        assert issue.category == DEFAULT_CATEGORY == "ux"
        assert issue.issue_type == DEFAULT_ISSUE_TYPE == "js-frontend-errors"
        assert issue.code_location == ""

    def test_camel_case_keys(self):
        from bugscout.core.issues import parse_classified_issue

        issue = parse_classified_issue({
            "recordingId": "s1",
            "title": "t",
            "description": "d",
            "severity": "Low",
            "posthogCategoryId": "errors",
            "codeLocation": "src/a.ts",
            "startUrl": "https://x.example",
        })

        assert issue.recording_id == "s1"
        assert issue.category == "errors"
        assert issue.code_location == "src/a.ts"
        assert issue.start_url == "https://x.example"

    @pytest.mark.parametrize("data", [
        {"title": "t", "description": "d", "severity": "High"},
        {"recording_id": "s1", "description": "d", "severity": "High"},
        {"recording_id": "s1", "title": "t", "severity": "High"},
        {"recording_id": "s1", "title": "t", "description": "d", "severity": "Severe"},
        {"recording_id": "s1", "title": "t", "description": "d"},
        "not a dict",
    ])
    def test_invalid_records_dropped(self, data):
        from bugscout.core.issues import parse_classified_issue

        assert parse_classified_issue(data) is None


class TestParseSuggestedFix:
    """Tests for parse_suggested_fix."""

    def _fix(self, **overrides):
        data = {
            "recording_id": "s1",
            "title": "Checkout crash",
            "suggested_fix": "1. Guard cart\n2. Add test",
            "code_location": "src/checkout.ts",
            "agent_confidence_score": 0.9,
        }
        data.update(overrides)
        return data

    def test_valid_fix(self):
        from bugscout.core.issues import parse_suggested_fix

        fix = parse_suggested_fix(self._fix(code_edits=[
            {"file": "src/checkout.ts", "description": "guard", "snippet": "if (!cart) return;"},
            {"description": "no file, dropped"},
        ]))

        assert fix.agent_confidence_score == 0.9
        assert len(fix.code_edits) == 1
        assert fix.code_edits[0].file == "src/checkout.ts"

    def test_out_of_range_score_becomes_none(self):
        from bugscout.core.issues import parse_suggested_fix

        assert parse_suggested_fix(self._fix(agent_confidence_score=1.5)).agent_confidence_score is None
        assert parse_suggested_fix(self._fix(agent_confidence_score="high")).agent_confidence_score is None

    @pytest.mark.parametrize("missing", ["recording_id", "title", "suggested_fix", "code_location"])
    def test_missing_required_field(self, missing):
        from bugscout.core.issues import parse_suggested_fix

        data = self._fix()
        del data[missing]

        assert parse_suggested_fix(data) is None

    def test_non_string_field(self):
        from bugscout.core.issues import parse_suggested_fix

        assert parse_suggested_fix(self._fix(suggested_fix=["step"])) is None


class TestIssueRecords:
    """Tests for Issue and KnowledgeLogEntry record mapping."""

    def test_to_record_omits_status_and_approval(self, sample_issue):
        record = sample_issue.to_record()

        assert record["posthog_category_id"] == "errors"
        assert record["severity"] == "High"
        assert "status" not in record
        assert "approved" not in record

    def test_from_record(self):
        from bugscout.core.issues import Issue, IssueStatus, Severity

        issue = Issue.from_record({
            "id": "uuid-1",
            "recording_id": "s1",
            "posthog_category_id": "errors",
            "posthog_issue_type_id": "network-api-failures",
            "title": "t",
            "description": "d",
            "severity": "Critical",
            "code_location": "src/api.ts",
            "status": "Resolved",
            "approved": True,
            "approved_rating": 4,
            "created_at": "2026-10-17T10:00:00Z",
        })

        assert issue.id == "uuid-1"
        assert issue.severity == Severity.CRITICAL
        assert issue.status == IssueStatus.RESOLVED
        assert issue.approved_rating == 4
        assert issue.created_at.year == 2026

    def test_from_record_unknown_status_defaults(self):
        from bugscout.core.issues import Issue, IssueStatus

        issue = Issue.from_record({"recording_id": "s1", "status": "Archived", "severity": "Low"})

        assert issue.status == IssueStatus.UNRESOLVED

    def test_knowledge_entry_score_coerced(self):
        from bugscout.core.issues import KnowledgeLogEntry

        entry = KnowledgeLogEntry.from_record({
            "recording_id": "s1",
            "title": "t",
            "description": "d",
            "severity": "High",
            "suggested_fix": "f",
            "agent_confidence_score": "0.75",
        })

        assert entry.agent_confidence_score == 0.75
