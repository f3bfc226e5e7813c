"""
questline.engine.events — EventPayload and Payload Normalization
=================================================================

The universal event envelope.  Every inbound payload (native, Segment or
Jitsu shaped) is normalized into an :class:`EventPayload` before the
rollup processes it.  Pure, no DB I/O.

Accepted shapes::

    {"event": "order_create", "player_id": 42, "game_id": 1, "properties": {...}}
    {"event": "order_create", "store_id": 42}
    {"type": "order_create", "merchant": {"id": "42"}, "event_data": {...}}
    {"event": {"name": "order_create", "properties": {...}}, "merchant": {"id": 42}}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from questline.services.exceptions import InvalidPayloadError

__all__ = ["EventPayload", "normalize_payload"]


# ---------------------------------------------------------------------------
# EventPayload — the universal event envelope
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class EventPayload:
    """Normalized event from any source.

    ``raw`` keeps the payload exactly as received so it can be written to
    the event log.
    """

    event: str
    player_id: int
    game_id: int | None = None
    timestamp: datetime | None = None
    properties: dict = field(default_factory=dict)
    name: str | None = None
    email: str | None = None
    raw: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------
def _positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise InvalidPayloadError(f"{field_name} must be a positive integer", field=field_name)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise InvalidPayloadError(f"{field_name} must be a positive integer", field=field_name)
    return value


def _event_name(raw: dict) -> str:
    event = raw.get("event")
    if isinstance(event, dict):
        event = event.get("name")
    if event is None:
        event = raw.get("type")
    if not isinstance(event, str) or not event.strip():
        raise InvalidPayloadError("Invalid event format: missing event name", field="event")
    return event.strip()


def _actor_id(raw: dict) -> int:
    for key in ("player_id", "store_id", "storeId"):
        if raw.get(key) is not None:
            return _positive_int(raw[key], key)
    merchant = raw.get("merchant")
    if isinstance(merchant, dict) and merchant.get("id") is not None:
        return _positive_int(merchant["id"], "merchant.id")
    raise InvalidPayloadError("Missing player_id (or store_id / merchant.id)", field="player_id")


def _properties(raw: dict) -> dict:
    props = raw.get("properties")
    if props is None and isinstance(raw.get("event"), dict):
        props = raw["event"].get("properties")
    if props is None:
        props = raw.get("event_data")
    if props is None:
        return {}
    if not isinstance(props, dict):
        raise InvalidPayloadError("properties must be an object", field="properties")
    return dict(props)


def _timestamp(raw: dict) -> datetime | None:
    value = raw.get("timestamp")
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise InvalidPayloadError("timestamp must be an ISO-8601 string", field="timestamp")
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidPayloadError(
            f"timestamp is not ISO-8601: {value!r}", field="timestamp"
        ) from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def normalize_payload(raw: dict) -> EventPayload:
    """Build an :class:`EventPayload` from an inbound JSON body.

    Raises
    ------
    InvalidPayloadError
        If *raw* is not an object, or the event name or actor id is
        missing or malformed.
    """
    if not isinstance(raw, dict) or not raw:
        raise InvalidPayloadError("No payload provided")

    game_id = raw.get("game_id")
    name = raw.get("name")
    email = raw.get("email")
    return EventPayload(
        event=_event_name(raw),
        player_id=_actor_id(raw),
        game_id=_positive_int(game_id, "game_id") if game_id is not None else None,
        timestamp=_timestamp(raw),
        properties=_properties(raw),
        name=name if isinstance(name, str) and name else None,
        email=email if isinstance(email, str) and email else None,
        raw=raw,
    )
