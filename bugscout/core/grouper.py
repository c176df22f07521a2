"""
Session Grouper

Groups normalized events into SessionAggregates, the unit of analysis.
Events carrying a session key are grouped by it; session-less events are
attached to a session of the same actor when they fall inside the join
window, otherwise each becomes its own "event-only" aggregate whose ID is
namespaced with EVENT_AGGREGATE_PREFIX so it can never collide with a real
session key.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

import structlog

from bugscout.core.normalizer import EventKind, NormalizedEvent

logger = structlog.get_logger()

EVENT_AGGREGATE_PREFIX = "evt-"


class AggregateKind(str, Enum):
    """How an aggregate was formed."""
    SESSION = "session"
    EVENT_ONLY = "event-only"


@dataclass
class EventCounts:
    """Signal counts for one aggregate."""
    exceptions: int = 0
    rage_clicks: int = 0
    dead_clicks: int = 0

    def to_dict(self) -> dict:
        return {
            "exceptions": self.exceptions,
            "rage_clicks": self.rage_clicks,
            "dead_clicks": self.dead_clicks,
        }


@dataclass
class SessionAggregate:
    """
    Correlated unit of analysis built from one or more events.

    member_events is never empty and always sorted ascending by timestamp.
    """
    aggregate_id: str
    kind: AggregateKind
    member_events: list[NormalizedEvent] = field(default_factory=list)
    counts: EventCounts = field(default_factory=EventCounts)

    @property
    def first_event(self) -> NormalizedEvent:
        return self.member_events[0]

    @property
    def first_timestamp(self) -> datetime:
        return self.first_event.timestamp

    @property
    def last_timestamp(self) -> datetime:
        return self.member_events[-1].timestamp

    @property
    def first_url(self) -> Optional[str]:
        return next((e.url for e in self.member_events if e.url), None)

    def summary(self) -> dict:
        """Compact summary sent to the classification stage."""
        return {
            "recording_id": self.aggregate_id,
            "kind": self.kind.value,
            "console_error_count": self.counts.exceptions,
            "rage_click_count": self.counts.rage_clicks,
            "dead_click_count": self.counts.dead_clicks,
            "start_url": self.first_url,
            "start_time": self.first_timestamp.isoformat(),
        }

    def details(self) -> list[dict]:
        """Full ordered per-event detail list."""
        return [e.detail.to_dict() for e in self.member_events]


def event_aggregate_id(event_id: str) -> str:
    """Aggregate ID for a session-less event."""
    return f"{EVENT_AGGREGATE_PREFIX}{event_id}"


class SessionGrouper:
    """Builds SessionAggregates from normalized events."""

    def __init__(self, join_window: Optional[timedelta] = None):
        """
        Args:
            join_window: How far outside a session's first/last event a
                session-less event of the same actor may be and still join
                it. None or zero disables the join.
        """
        self.join_window = join_window if join_window and join_window > timedelta(0) else None
        self.log = logger.bind(component="session_grouper")

    def group(self, events: list[NormalizedEvent]) -> list[SessionAggregate]:
        """
        Group events into aggregates.

        Sessions come first, then event-only aggregates; both are ordered by
        first timestamp and ID, so the same input always yields the same output.
        """
        unique = self._dedupe(events)

        by_session: dict[str, list[NormalizedEvent]] = {}
        unkeyed: list[NormalizedEvent] = []
        for event in unique:
            if event.session_key:
                by_session.setdefault(event.session_key, []).append(event)
            else:
                unkeyed.append(event)

        for members in by_session.values():
            members.sort(key=_event_order)

        joined = 0
        event_only: list[NormalizedEvent] = []
        for event in unkeyed:
            session_key = self._find_session(event, by_session)
            if session_key is None:
                event_only.append(event)
            else:
                by_session[session_key].append(event)
                joined += 1

        sessions = [
            self._build(key, AggregateKind.SESSION, members)
            for key, members in by_session.items()
        ]
        singles = [
            self._build(event_aggregate_id(e.event_id), AggregateKind.EVENT_ONLY, [e])
            for e in event_only
        ]
        sessions.sort(key=_aggregate_order)
        singles.sort(key=_aggregate_order)

        self.log.debug(
            "Events grouped",
            events=len(unique),
            sessions=len(sessions),
            event_only=len(singles),
            joined_by_actor=joined,
        )
        return sessions + singles

    def _dedupe(self, events: list[NormalizedEvent]) -> list[NormalizedEvent]:
        """Drop repeated event IDs (overlapping pages); first occurrence wins."""
        seen: set[str] = set()
        unique = []
        for event in events:
            if event.event_id in seen:
                continue
            seen.add(event.event_id)
            unique.append(event)
        return unique

    def _find_session(
        self,
        event: NormalizedEvent,
        by_session: dict[str, list[NormalizedEvent]],
    ) -> Optional[str]:
        """Closest session of the same actor whose window covers the event."""
        if self.join_window is None or not event.actor_id:
            return None

        best: Optional[tuple[timedelta, str]] = None
        for key, members in by_session.items():
            if not any(m.actor_id == event.actor_id for m in members):
                continue
            # Membership is tested against the keyed members only, so joins
            # never chain through previously joined events.
            keyed = [m for m in members if m.session_key]
            start = keyed[0].timestamp - self.join_window
            end = keyed[-1].timestamp + self.join_window
            if not start <= event.timestamp <= end:
                continue
            if keyed[0].timestamp <= event.timestamp <= keyed[-1].timestamp:
                distance = timedelta(0)
            else:
                distance = min(
                    abs(event.timestamp - keyed[0].timestamp),
                    abs(event.timestamp - keyed[-1].timestamp),
                )
            candidate = (distance, key)
            if best is None or candidate < best:
                best = candidate
        return best[1] if best else None

    def _build(
        self,
        aggregate_id: str,
        kind: AggregateKind,
        members: list[NormalizedEvent],
    ) -> SessionAggregate:
        ordered = sorted(members, key=_event_order)
        counts = EventCounts(
            exceptions=sum(1 for e in ordered if e.kind == EventKind.EXCEPTION.value),
            rage_clicks=sum(1 for e in ordered if e.kind == EventKind.RAGE_CLICK.value),
            dead_clicks=sum(1 for e in ordered if e.kind == EventKind.DEAD_CLICK.value),
        )
        return SessionAggregate(
            aggregate_id=aggregate_id,
            kind=kind,
            member_events=ordered,
            counts=counts,
        )


def _event_order(event: NormalizedEvent) -> tuple[datetime, str]:
    return (event.timestamp, event.event_id)


def _aggregate_order(aggregate: SessionAggregate) -> tuple[datetime, str]:
    return (aggregate.first_timestamp, aggregate.aggregate_id)
