"""
questline.api.routes.games — Games and their missions
======================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from questline.api.deps import Page, get_current_admin, get_engine, get_page
from questline.api.envelope import ok, paginated
from questline.database.models import TargetType
from questline.services import game_service

router = APIRouter(prefix="/games", tags=["games"])


class GameCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None
    target_type: TargetType = TargetType.ALL
    target_players: list[int] | None = None


@router.get("")
def list_games(
    active_only: bool = Query(False),
    paging: Page = Depends(get_page),
    engine: Engine = Depends(get_engine),
):
    items, total = game_service.list_games(engine, active_only, paging.page, paging.limit)
    return paginated(items, paging.page, paging.limit, total)


@router.get("/{game_id}/missions")
def list_game_missions(game_id: int, engine: Engine = Depends(get_engine)):
    return ok(game_service.list_game_missions(engine, game_id))


@router.post("")
def create_game(
    body: GameCreate,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    fields = body.model_dump()
    fields["target_type"] = body.target_type.value
    try:
        data = game_service.create_game(engine, **fields)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return ok(data, "Game created successfully")
