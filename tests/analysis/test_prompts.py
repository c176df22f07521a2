"""Tests for prompt construction."""


def _aggregate(make_raw_event):
    from bugscout.core.grouper import SessionGrouper
    from bugscout.core.normalizer import normalize

    events = [
        normalize(make_raw_event("e1", session_id="s1", message="TypeError: x is undefined"), "$exception"),
        normalize(make_raw_event("r1", session_id="s1", timestamp="2026-10-17T10:00:05Z"), "$rageclick"),
    ]
    return SessionGrouper().group(events)[0]


class TestClassificationPrompt:
    """Tests for build_classification_prompt."""

    def test_includes_catalogue_and_sessions(self, make_raw_event):
        from bugscout.analysis.prompts import build_classification_prompt

        system, user = build_classification_prompt([_aggregate(make_raw_event)])

        assert "js-frontend-errors" in system
        assert "Critical" in system
        assert "Session s1 (session): 1 console error(s), 1 rage click(s)" in user
        assert "TypeError: x is undefined" in user

    def test_codebase_map_included_when_given(self, make_raw_event):
        from bugscout.analysis.prompts import build_classification_prompt

        system, _ = build_classification_prompt([_aggregate(make_raw_event)], "src/checkout/ - checkout flow")

        assert "# Codebase map\nsrc/checkout/ - checkout flow" in system


class TestFixPrompt:
    """Tests for build_fix_prompt."""

    def test_knowledge_listed(self, sample_issue):
        from bugscout.analysis.prompts import build_fix_prompt
        from bugscout.core.issues import KnowledgeLogEntry

        knowledge = [KnowledgeLogEntry(
            recording_id="old", title="Old cart crash", description="d", severity="High",
            suggested_fix="Guard cart", developer_rating=5,
        )]

        system, user = build_fix_prompt([sample_issue.to_classified()], knowledge)

        assert "Past solutions" in system
        assert "developer_rating: 5" in system
        assert "recording_id: s1" in user
        assert "revision" not in user

    def test_revision_mode_single_issue(self, sample_issue):
        from bugscout.analysis.prompts import build_fix_prompt

        _, user = build_fix_prompt(
            [sample_issue.to_classified()], [],
            previous_fix="Guard cart", instructions="Use optional chaining instead",
        )

        assert "requested a revision" in user
        assert "Previous suggested fix:\nGuard cart" in user
        assert "Use optional chaining instead" in user

    def test_no_knowledge_section_when_empty(self, sample_issue):
        from bugscout.analysis.prompts import build_fix_prompt

        system, _ = build_fix_prompt([sample_issue.to_classified()], [])

        assert "Past solutions" not in system
