"""
questline.api.routes.rewards — Reward listing, claim & admin grants
====================================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from questline.api.deps import Page, get_current_admin, get_engine, get_page
from questline.api.envelope import fail, ok, paginated
from questline.database.models import RewardStatus
from questline.services import reward_service
from questline.services.reward_service import RewardOperationResult

router = APIRouter(prefix="/rewards", tags=["rewards"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RewardCreate(BaseModel):
    mission_id: int = Field(ge=1)
    reward_type_id: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    value: dict = Field(default_factory=dict)
    game_id: int | None = None


class RewardGrant(BaseModel):
    player_id: int = Field(ge=1)
    mission_id: int = Field(ge=1)


class RewardClaim(BaseModel):
    player_id: int = Field(ge=1)


def _operation_response(result: RewardOperationResult):
    if not result.found:
        return fail(404, result.message)
    body = {"success": result.success, "message": result.message}
    if result.data is not None:
        body["data"] = result.data
    return body


# ---------------------------------------------------------------------------
# Player endpoints
# ---------------------------------------------------------------------------
@router.get("")
def list_rewards(
    player_id: int = Query(..., ge=1),
    status: RewardStatus | None = Query(None),
    paging: Page = Depends(get_page),
    engine: Engine = Depends(get_engine),
):
    items, total = reward_service.list_player_rewards(
        engine, player_id, status.value if status else None, paging.page, paging.limit
    )
    return paginated(items, paging.page, paging.limit, total)


@router.get("/types")
def list_reward_types(engine: Engine = Depends(get_engine)):
    return ok(reward_service.list_reward_types(engine))


@router.post("/{reward_id}/claim")
def claim_reward(reward_id: int, body: RewardClaim, engine: Engine = Depends(get_engine)):
    return _operation_response(reward_service.claim_reward(engine, body.player_id, reward_id))


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------
@router.post("")
def create_reward(
    body: RewardCreate,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    data = reward_service.create_reward(engine, **body.model_dump())
    return ok(data, "Reward created successfully")


@router.post("/grant")
def grant_reward(
    body: RewardGrant,
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    return _operation_response(
        reward_service.grant_reward_for_mission(engine, body.player_id, body.mission_id)
    )


@router.post("/expire")
def expire_rewards(
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    count = reward_service.expire_rewards(engine)
    return ok({"expired": count}, f"{count} reward(s) expired")
