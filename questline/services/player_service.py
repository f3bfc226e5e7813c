"""
questline.services.player_service — Player CRUD & Summary
==========================================================

Players are normally created by their first event; these operations cover
explicit registration, profile edits and the summary view.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from questline.database.models import Player
from questline.repository import LeaderboardRepository, PlayerRepository, RewardRepository
from questline.services.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

_EDITABLE = ("name", "email", "metadata")


def player_dict(player: Player) -> dict:
    return {
        "id": player.id,
        "name": player.name,
        "email": player.email,
        "metadata": player.metadata_ or {},
        "points": player.points,
        "total_points": player.total_points,
        "tasks_completed": player.tasks_completed,
        "missions_completed": player.missions_completed,
        "created_at": player.created_at.isoformat() if player.created_at else None,
    }


def list_players(
    engine, page: int = 1, limit: int = 10, search: str | None = None
) -> tuple[list[dict], int]:
    with Session(engine) as session:
        rows, total = PlayerRepository(session).list(page, limit, search)
        return [player_dict(p) for p in rows], total


def create_player(
    engine,
    player_id: int,
    name: str,
    email: str | None = None,
    metadata: dict | None = None,
) -> dict:
    """Register a player up front.

    Raises
    ------
    ConflictError
        If a player with *player_id* already exists.
    """
    with Session(engine) as session:
        players = PlayerRepository(session)
        if players.get(player_id) is not None:
            raise ConflictError(f"Player with ID {player_id} already exists", player_id=player_id)
        data = player_dict(players.create(player_id, name, email, metadata))
        session.commit()
    logger.info("Player %d (%s) registered", player_id, name)
    return data


def update_player(engine, player_id: int, **fields) -> dict:
    """Edit name, email or metadata; point counters are not editable."""
    changes = {k: v for k, v in fields.items() if k in _EDITABLE and v is not None}
    with Session(engine) as session:
        players = PlayerRepository(session)
        player = players.get(player_id)
        if player is None:
            raise NotFoundError(f"Player with ID {player_id} not found", player_id=player_id)
        players.update(player, **changes)
        session.flush()
        data = player_dict(player)
        session.commit()
    return data


def get_player_summary(engine, player_id: int) -> dict:
    """Counters, global leaderboard standing and reward counts."""
    with Session(engine) as session:
        player = PlayerRepository(session).get(player_id)
        if player is None:
            raise NotFoundError(f"Player with ID {player_id} not found", player_id=player_id)

        boards = LeaderboardRepository(session)
        entry = boards.get_entry(player_id)
        rewards, reward_total = RewardRepository(session).list_player_rewards(
            player_id, page=1, limit=1
        )
        return {
            **player_dict(player),
            "leaderboard": {
                "total_points": entry.total_points,
                "completed_missions": entry.completed_missions,
                "rank": entry.rank,
                "position": boards.position(entry),
            } if entry else None,
            "rewards_earned": reward_total,
        }
