"""
questline.api.routes.missions — Mission reads & admin CRUD
===========================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from questline.api.deps import Page, get_current_admin, get_engine, get_page
from questline.api.envelope import ok, paginated
from questline.database.models import MissionStatus, TargetType
from questline.services import mission_service, reward_service

router = APIRouter(prefix="/missions", tags=["missions"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class MissionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    game_id: int | None = None
    points_required: int = Field(0, ge=0)
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_recurring: bool = False
    recurrence_pattern: str | None = None
    prerequisite_mission_id: int | None = None
    target_type: TargetType = TargetType.ALL
    target_players: list[int] | None = None
    affects_leaderboard: bool = False
    leaderboard_points: int = Field(0, ge=0)
    optional_tasks_count_as_complete: bool = True


class TaskCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    event_id: int | None = None
    event_name: str | None = None
    description: str | None = None
    points: int = Field(0, ge=0)
    is_optional: bool = False
    is_active: bool = True
    sort_order: int | None = None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
@router.get("")
def list_missions(
    player_id: int = Query(..., ge=1),
    game_id: int | None = Query(None, ge=1),
    status: MissionStatus | None = Query(None),
    available_only: bool = Query(False),
    paging: Page = Depends(get_page),
    engine: Engine = Depends(get_engine),
):
    items, total = mission_service.list_player_missions(
        engine,
        player_id,
        game_id=game_id,
        status=status.value if status else None,
        page=paging.page,
        limit=paging.limit,
        available_only=available_only,
    )
    return paginated(items, paging.page, paging.limit, total)


@router.get("/{mission_id}")
def get_mission(
    mission_id: int,
    player_id: int = Query(..., ge=1),
    engine: Engine = Depends(get_engine),
):
    return ok(mission_service.get_mission_for_player(engine, player_id, mission_id))


@router.get("/{mission_id}/rewards")
def get_mission_rewards(mission_id: int, engine: Engine = Depends(get_engine)):
    return ok(reward_service.list_mission_rewards(engine, mission_id))


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
@router.post("")
def create_mission(
    body: MissionCreate,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    fields = body.model_dump()
    fields["target_type"] = body.target_type.value
    try:
        data = mission_service.create_mission(engine, **fields)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return ok(data, "Mission created successfully")


@router.post("/{mission_id}/tasks")
def create_task(
    mission_id: int,
    body: TaskCreate,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    if body.event_id is None and not body.event_name:
        raise HTTPException(400, "Either event_id or event_name is required")
    data = mission_service.create_task(engine, mission_id, **body.model_dump())
    return ok(data, "Task created successfully")


@router.delete("/{mission_id}")
def delete_mission(
    mission_id: int,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    mission_service.delete_mission(engine, mission_id)
    return ok(message="Mission deleted successfully")
