"""Tests for the persistence sink."""

from unittest.mock import AsyncMock, MagicMock

import pytest


def _fix(recording_id, score):
    from bugscout.core.issues import SuggestedFix

    return SuggestedFix(
        recording_id=recording_id,
        title="Fix",
        suggested_fix="Guard the cart",
        code_location="src/cart.ts",
        agent_confidence_score=score,
    )


class TestPersistenceSink:
    """Tests for PersistenceSink."""

    @pytest.mark.asyncio
    async def test_failed_upsert_not_counted(self, issue_store, sample_issue):
        from dataclasses import replace

        from bugscout.services.persistence import PersistenceSink

        issue_store.fail_upsert_ids = {"s2"}
        issues = [sample_issue, replace(sample_issue, recording_id="s2")]

        count = await PersistenceSink(issue_store).persist(issues, [])

        assert count == 1
        assert set(issue_store.issues) == {"s1"}

    @pytest.mark.asyncio
    async def test_upsert_twice_keeps_one_row(self, issue_store, sample_issue):
        from dataclasses import replace

        from bugscout.services.persistence import PersistenceSink

        sink = PersistenceSink(issue_store)
        await sink.persist([sample_issue], [])
        await sink.persist([replace(sample_issue, title="Updated")], [])

        assert len(issue_store.issues) == 1
        assert issue_store.issues["s1"].title == "Updated"

    @pytest.mark.asyncio
    async def test_ledger_append_only_for_scored_fixes(self, issue_store, sample_issue):
        from dataclasses import replace

        from bugscout.services.persistence import PersistenceSink

        issues = [sample_issue, replace(sample_issue, recording_id="s2")]
        fixes = [_fix("s1", 0.9), _fix("s2", None), _fix("s3", 0.5)]

        await PersistenceSink(issue_store).persist(issues, fixes)

        assert len(issue_store.knowledge) == 1
        entry = issue_store.knowledge[0]
        assert entry.recording_id == "s1"
        assert entry.agent_confidence_score == 0.9
        assert entry.description == sample_issue.description
        assert entry.severity == "High"

    @pytest.mark.asyncio
    async def test_mirror_spawned_for_saved_issues(self, issue_store, sample_issue):
        from bugscout.services.background import BackgroundTasks
        from bugscout.services.persistence import PersistenceSink

        mirror = MagicMock()
        mirror.is_configured = True
        mirror.mirror = AsyncMock(return_value=1)
        background = BackgroundTasks()

        await PersistenceSink(issue_store, mirror=mirror, background=background).persist([sample_issue], [])
        await background.drain(timeout=1)

        mirrored = mirror.mirror.call_args.args[0]
        assert [i.recording_id for i in mirrored] == ["s1"]

    @pytest.mark.asyncio
    async def test_mirror_failure_does_not_fail_persist(self, issue_store, sample_issue):
        from bugscout.services.background import BackgroundTasks
        from bugscout.services.persistence import PersistenceSink

        mirror = MagicMock()
        mirror.is_configured = True
        mirror.mirror = AsyncMock(side_effect=RuntimeError("vectorize down"))
        background = BackgroundTasks()

        count = await PersistenceSink(issue_store, mirror=mirror, background=background).persist([sample_issue], [])
        await background.drain(timeout=1)

        assert count == 1
