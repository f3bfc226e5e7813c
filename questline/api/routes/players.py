"""
questline.api.routes.players — Player registry
===============================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from questline.api.deps import Page, get_current_admin, get_engine, get_page
from questline.api.envelope import ok, paginated
from questline.services import player_service


router = APIRouter(prefix="/players", tags=["players"])


class PlayerCreate(BaseModel):
    id: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=255)
    email: str | None = None
    metadata: dict | None = None


class PlayerUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = None
    metadata: dict | None = None


@router.get("")
def list_players(
    search: str | None = Query(None, max_length=100),
    paging: Page = Depends(get_page),
    engine: Engine = Depends(get_engine),
):
    items, total = player_service.list_players(engine, paging.page, paging.limit, search)
    return paginated(items, paging.page, paging.limit, total)


@router.get("/{player_id}")
def get_player(player_id: int, engine: Engine = Depends(get_engine)):
    return ok(player_service.get_player_summary(engine, player_id))


@router.post("")
def create_player(
    body: PlayerCreate,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    data = player_service.create_player(engine, body.id, body.name, body.email, body.metadata)
    return ok(data, "Player created successfully")


@router.put("/{player_id}")
def update_player(
    player_id: int,
    body: PlayerUpdate,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    return ok(player_service.update_player(engine, player_id, **changes), "Player updated")
