"""questline.services.event_service — Event type registry and event log reads."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from questline.database.models import EventLog, EventType
from questline.repository import EventRepository
from questline.services.exceptions import ConflictError

logger = logging.getLogger(__name__)


def event_type_dict(event: EventType) -> dict:
    return {
        "id": event.id,
        "name": event.name,
        "description": event.description,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


def event_log_dict(log: EventLog) -> dict:
    return {
        "id": log.id,
        "player_id": log.player_id,
        "event_id": log.event_id,
        "game_id": log.game_id,
        "payload": log.payload,
        "processed": log.processed,
        "created_at": log.created_at.isoformat() if log.created_at else None,
    }


def list_events(engine) -> list[dict]:
    with Session(engine) as session:
        return [event_type_dict(e) for e in EventRepository(session).list_all()]


def get_event(engine, event_id: int) -> dict | None:
    with Session(engine) as session:
        event = EventRepository(session).get(event_id)
        return event_type_dict(event) if event else None


def register_event(engine, name: str, description: str | None = None) -> dict:
    """Register a new event type.

    Raises
    ------
    ConflictError
        If an event type with *name* already exists.
    """
    name = name.strip()
    with Session(engine) as session:
        events = EventRepository(session)
        if events.get_by_name(name) is not None:
            raise ConflictError("Event with this name already exists", event=name)
        data = event_type_dict(events.create(name, description))
        session.commit()
    logger.info("Event type %r registered (id=%d)", name, data["id"])
    return data


def list_event_logs(
    engine, player_id: int | None = None, page: int = 1, limit: int = 10
) -> tuple[list[dict], int]:
    with Session(engine) as session:
        rows, total = EventRepository(session).list_logs(player_id, page, limit)
        return [event_log_dict(r) for r in rows], total
