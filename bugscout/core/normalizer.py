"""
Event Normalizer - Unified Event Format

Converts raw PostHog event rows ($exception, $rageclick, $dead_click) into
the internal NormalizedEvent shape used for session grouping and analysis.

Raw rows are duck-typed: the same fact can live under several property
names depending on the SDK and event kind. Every output field is resolved
through a fixed precedence table below, structured fields first and
free-text fallbacks last.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional

import structlog

logger = structlog.get_logger()


class EventKind(str, Enum):
    """Tracked telemetry event kinds."""
    EXCEPTION = "$exception"
    RAGE_CLICK = "$rageclick"
    DEAD_CLICK = "$dead_click"


TRACKED_KINDS: tuple[EventKind, ...] = (
    EventKind.EXCEPTION,
    EventKind.RAGE_CLICK,
    EventKind.DEAD_CLICK,
)

# Top-level keys on the raw row
EVENT_ID_KEYS = ("id",)
EVENT_ID_PROPERTY_KEYS = ("$uuid",)
ACTOR_KEYS = ("distinct_id",)
ACTOR_PROPERTY_KEYS = ("distinct_id",)

# Property-bag keys, in precedence order
SESSION_PROPERTY_KEYS = ("$session_id", "session_id")
SESSION_KEYS = ("$session_id",)
MESSAGE_KEYS = ("$exception_message", "$exception_list.value", "message")
TYPE_KEYS = ("$exception_type", "$exception_list.type", "type")
URL_KEYS = ("$current_url", "$pathname")
ELEMENT_KEYS = ("$element", "tag_name", "$el_text")
SELECTOR_KEYS = ("$selector", "$elements_chain")


@dataclass
class EventDetail:
    """Per-event detail handed to the classification stage."""
    event: str
    timestamp: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    url: Optional[str] = None
    element: Optional[str] = None
    selector: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "event": self.event,
            "timestamp": self.timestamp,
            "message": self.message,
            "type": self.type,
            "url": self.url,
            "element": self.element,
            "selector": self.selector,
        }


@dataclass
class NormalizedEvent:
    """
    Uniform event shape derived from one raw telemetry row.

    `session_key` is set only when the property bag carries a session marker.
    """
    event_id: str
    kind: str
    timestamp: datetime
    session_key: Optional[str] = None
    actor_id: Optional[str] = None
    url: Optional[str] = None
    detail: EventDetail = field(default_factory=lambda: EventDetail(event=""))

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "kind": self.kind,
            "timestamp": self.timestamp.isoformat(),
            "session_key": self.session_key,
            "actor_id": self.actor_id,
            "url": self.url,
            "detail": self.detail.to_dict(),
        }


class EventNormalizer:
    """
    Normalizes raw PostHog events into the unified format.

    First step of the sync pipeline:
    Raw Event -> Normalized Event -> Session Aggregate -> Analysis
    """

    def __init__(self):
        self.log = logger.bind(component="event_normalizer")

    def normalize(self, raw: Any, kind: EventKind | str) -> NormalizedEvent:
        """
        Normalize one raw event. Never raises.

        Args:
            raw: Raw event row as returned by the PostHog events API
            kind: The event kind the row was fetched for

        Returns:
            NormalizedEvent with a non-empty event_id
        """
        data = raw if isinstance(raw, dict) else {}
        props = data.get("properties")
        if not isinstance(props, dict):
            props = {}

        kind_value = kind.value if isinstance(kind, EventKind) else str(kind)

        event_id = (
            _first(data, EVENT_ID_KEYS)
            or _first(props, EVENT_ID_PROPERTY_KEYS)
            or str(uuid.uuid4())
        )
        session_key = _first(props, SESSION_PROPERTY_KEYS) or _first(data, SESSION_KEYS)
        actor_id = _first(data, ACTOR_KEYS) or _first(props, ACTOR_PROPERTY_KEYS)
        url = _first(props, URL_KEYS)

        raw_timestamp = data.get("timestamp")
        timestamp = self._parse_datetime(raw_timestamp)
        if timestamp is None:
            if raw_timestamp is not None:
                self.log.debug("Unparseable event timestamp", event_id=event_id, value=str(raw_timestamp))
            timestamp = datetime.now(UTC)

        detail = EventDetail(
            event=kind_value,
            timestamp=str(raw_timestamp) if raw_timestamp is not None else timestamp.isoformat(),
            message=_first(props, MESSAGE_KEYS),
            type=_first(props, TYPE_KEYS),
            url=url,
            element=_first(props, ELEMENT_KEYS),
            selector=_first(props, SELECTOR_KEYS),
        )

        return NormalizedEvent(
            event_id=event_id,
            kind=kind_value,
            timestamp=timestamp,
            session_key=session_key,
            actor_id=actor_id,
            url=url,
            detail=detail,
        )

    def normalize_many(self, raws: list[Any], kind: EventKind | str) -> list[NormalizedEvent]:
        """Normalize every row fetched for one event kind."""
        return [self.normalize(raw, kind) for raw in raws or []]

    def _parse_datetime(self, value: Any) -> Optional[datetime]:
        """Parse a timestamp into an aware UTC datetime."""
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=UTC)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return datetime.fromtimestamp(value, UTC)
            except (OverflowError, OSError, ValueError):
                return None
        if isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        return None


def _first(bag: dict, keys: tuple[str, ...]) -> Optional[str]:
    """Return the first non-empty candidate as a string.

    A dotted key `list_key.field` reads `field` from the first element of a
    list-valued property (PostHog `$exception_list`).
    """
    for key in keys:
        if "." in key:
            list_key, _, sub_key = key.partition(".")
            items = bag.get(list_key)
            if not isinstance(items, list) or not items or not isinstance(items[0], dict):
                continue
            value = items[0].get(sub_key)
        else:
            value = bag.get(key)
        if value is None or value == "":
            continue
        return str(value)
    return None


_normalizer: Optional[EventNormalizer] = None


def normalize(raw: Any, kind: EventKind | str) -> NormalizedEvent:
    """Normalize a raw event with the shared normalizer."""
    global _normalizer
    if _normalizer is None:
        _normalizer = EventNormalizer()
    return _normalizer.normalize(raw, kind)
