"""
Deduplication Gate

Keeps each session/event from producing more than one issue across runs.
Known IDs are read from the durable issue store once per run; if that
lookup fails, every candidate is treated as already known (fail closed) so
an outage can only delay new issues, never duplicate them.
"""

from typing import TYPE_CHECKING

import structlog

from bugscout.core.grouper import SessionAggregate

if TYPE_CHECKING:
    from bugscout.services.issue_store import IssueStore

logger = structlog.get_logger()


def filter_new(
    aggregates: list[SessionAggregate],
    known_ids: set[str],
) -> list[SessionAggregate]:
    """Aggregates whose ID has not produced an issue yet, in input order."""
    return [a for a in aggregates if a.aggregate_id not in known_ids]


class DeduplicationGate:
    """Filters aggregates against issues already recorded in storage."""

    def __init__(self, store: "IssueStore"):
        self.store = store
        self.log = logger.bind(component="dedup_gate")

    async def known_ids(self, candidate_ids: list[str]) -> set[str]:
        """
        Batched existence lookup for the candidate IDs.

        Returns:
            IDs that already have an issue. On lookup failure, all candidate IDs.
        """
        if not candidate_ids:
            return set()
        try:
            existing = await self.store.existing_recording_ids(candidate_ids)
        except Exception as e:
            self.log.warning(
                "Existence check failed, treating all candidates as known",
                candidates=len(candidate_ids),
                error=str(e),
            )
            return set(candidate_ids)
        return set(existing) & set(candidate_ids)

    async def filter_new(self, aggregates: list[SessionAggregate]) -> list[SessionAggregate]:
        """Fetch known IDs once and drop aggregates that already have an issue."""
        known = await self.known_ids([a.aggregate_id for a in aggregates])
        fresh = filter_new(aggregates, known)
        self.log.info(
            "Deduplicated aggregates",
            candidates=len(aggregates),
            known=len(known),
            new=len(fresh),
        )
        return fresh
