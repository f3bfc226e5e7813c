"""
questline.api.routes.leaderboard — Leaderboard reads & forced recalculation
============================================================================

``rank`` in responses is the stored rank as of the last recalculation;
``position`` is computed from live points.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy import Engine

from questline.api.deps import Page, get_config, get_current_admin, get_engine, get_page
from questline.api.envelope import ok, paginated
from questline.config import QuestlineConfig
from questline.services import leaderboard_service

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])
logger = logging.getLogger(__name__)


@router.get("")
def get_leaderboard(
    game_id: int | None = Query(None, ge=1),
    paging: Page = Depends(get_page),
    engine: Engine = Depends(get_engine),
):
    items, total = leaderboard_service.get_leaderboard(engine, game_id, paging.page, paging.limit)
    return paginated(items, paging.page, paging.limit, total)


@router.get("/stats")
def get_stats(
    game_id: int | None = Query(None, ge=1),
    engine: Engine = Depends(get_engine),
):
    return ok(leaderboard_service.get_statistics(engine, game_id))


@router.get("/top/{count}")
def get_top(
    count: int = Path(..., ge=1),
    game_id: int | None = Query(None, ge=1),
    engine: Engine = Depends(get_engine),
    config: QuestlineConfig = Depends(get_config),
):
    return ok(leaderboard_service.get_top_players(engine, min(count, config.max_page_size), game_id))


@router.get("/players/{player_id}")
def get_player_position(
    player_id: int,
    game_id: int | None = Query(None, ge=1),
    context: int | None = Query(None, ge=0, le=25),
    engine: Engine = Depends(get_engine),
    config: QuestlineConfig = Depends(get_config),
):
    size = config.leaderboard_context_size if context is None else context
    data = leaderboard_service.get_position_with_context(engine, player_id, game_id, size)
    if data is None:
        raise HTTPException(404, f"Player {player_id} is not on the leaderboard")
    return ok(data)


@router.post("/recalculate")
def recalculate(
    game_id: int | None = Query(None, ge=1),
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    changed = leaderboard_service.recalculate_rankings(engine, game_id)
    logger.info("Leaderboard recalculation requested by %s", admin.get("sub"))
    return ok({"updated": changed}, "Leaderboard recalculated successfully")
