"""questline.services.game_service — Games: optional grouping and targeting for missions."""

from __future__ import annotations

import json
import logging

from sqlalchemy.orm import Session

from questline.database.models import Game, TargetType
from questline.engine.targeting import parse_target_players
from questline.repository import GameRepository, MissionRepository
from questline.services.exceptions import NotFoundError
from questline.services.mission_service import mission_dict

logger = logging.getLogger(__name__)


def game_dict(game: Game) -> dict:
    return {
        "id": game.id,
        "name": game.name,
        "description": game.description,
        "is_active": game.is_active,
        "start_date": game.start_date.isoformat() if game.start_date else None,
        "end_date": game.end_date.isoformat() if game.end_date else None,
        "target_type": game.target_type,
        "target_players": parse_target_players(game.target_players),
    }


def list_games(
    engine, active_only: bool = False, page: int = 1, limit: int = 10
) -> tuple[list[dict], int]:
    with Session(engine) as session:
        rows, total = GameRepository(session).list(active_only, page, limit)
        return [game_dict(g) for g in rows], total


def list_game_missions(engine, game_id: int) -> list[dict]:
    with Session(engine) as session:
        if GameRepository(session).get(game_id) is None:
            raise NotFoundError(f"Game with ID {game_id} not found", game_id=game_id)
        return [mission_dict(m) for m in MissionRepository(session).list(game_id=game_id)]


def create_game(
    engine,
    *,
    name: str,
    description: str | None = None,
    is_active: bool = True,
    start_date=None,
    end_date=None,
    target_type: str = TargetType.ALL.value,
    target_players: list[int] | None = None,
) -> dict:
    if start_date and end_date and end_date < start_date:
        raise ValueError("end_date must not be before start_date")
    with Session(engine) as session:
        game = GameRepository(session).create(
            name=name,
            description=description,
            is_active=is_active,
            start_date=start_date,
            end_date=end_date,
            target_type=str(target_type),
            target_players=json.dumps([int(p) for p in target_players]) if target_players else None,
        )
        data = game_dict(game)
        session.commit()
    logger.info("Game %d (%s) created", data["id"], name)
    return data
