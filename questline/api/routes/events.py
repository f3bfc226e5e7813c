"""
questline.api.routes.events — Event intake, registry & kill switch
===================================================================

Static paths (``/logs``, ``/processing``, ``/segment``, ``/jitsu``) are
declared before ``/{event_id}`` so they are not captured by it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from questline.api.deps import Page, get_current_admin, get_engine, get_page
from questline.api.envelope import ok, paginated
from questline.engine.events import normalize_payload
from questline.services import event_processor, event_service

router = APIRouter(prefix="/events", tags=["events"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class EventRegister(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class ProcessingToggle(BaseModel):
    enabled: bool


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------
def _process(engine: Engine, raw: dict) -> dict:
    payload = normalize_payload(raw)
    result = event_processor.process_event(engine, payload)
    return ok(result.as_dict(), result.message)


@router.post("")
def submit_event(
    body: dict = Body(...),
    engine: Engine = Depends(get_engine),
):
    """Submit an event: ``{event, player_id|store_id, game_id?, timestamp?, properties?}``."""
    return _process(engine, body)


@router.post("/segment")
def submit_segment_event(
    body: dict = Body(...),
    engine: Engine = Depends(get_engine),
):
    """Segment-shaped payload (``event.name``, ``merchant.id``)."""
    return _process(engine, body)


@router.post("/jitsu")
def submit_jitsu_event(
    body: dict = Body(...),
    engine: Engine = Depends(get_engine),
):
    """Jitsu-shaped payload (``type`` / ``event_data``)."""
    return _process(engine, body)


# ---------------------------------------------------------------------------
# Kill switch
# ---------------------------------------------------------------------------
@router.get("/processing")
def get_processing(engine: Engine = Depends(get_engine)):
    return ok({"enabled": event_processor.get_processing_enabled(engine)})


@router.post("/processing")
def set_processing(
    body: ProcessingToggle,
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    enabled = event_processor.set_processing_enabled(engine, body.enabled)
    logger.warning("Admin %s set event processing to %s", admin.get("sub"), enabled)
    return ok(
        {"enabled": enabled},
        "Event processing enabled" if enabled else "Event processing paused",
    )


# ---------------------------------------------------------------------------
# Registry & log
# ---------------------------------------------------------------------------
@router.get("/logs")
def list_event_logs(
    player_id: int | None = Query(None, ge=1),
    paging: Page = Depends(get_page),
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    items, total = event_service.list_event_logs(engine, player_id, paging.page, paging.limit)
    return paginated(items, paging.page, paging.limit, total)


@router.post("/register")
def register_event(
    body: EventRegister,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    data = event_service.register_event(engine, body.name, body.description)
    return ok(data, "Event registered successfully")


@router.get("")
def list_events(engine: Engine = Depends(get_engine)):
    return ok(event_service.list_events(engine))


@router.get("/{event_id}")
def get_event(event_id: int, engine: Engine = Depends(get_engine)):
    data = event_service.get_event(engine, event_id)
    if data is None:
        raise HTTPException(404, "Event not found")
    return ok(data)
