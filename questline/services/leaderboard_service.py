"""
questline.services.leaderboard_service — Leaderboard Aggregates & Ranking
==========================================================================

Two halves:

* **Writes inside the rollup** (:func:`update_leaderboard`,
  :func:`update_player_score`) take the caller's session and only bump
  totals.  They never touch ``rank``.
* **Rank refresh** (:func:`recalculate_rankings`) walks every row of one
  board in order and writes a sequential rank, skipping rows whose rank is
  already right.  Ties on points are ordered by ``player_id``.

Reads report both the stored ``rank`` (valid as of the last refresh) and a
live ``position`` computed from current points.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from questline.database.models import LeaderboardEntry, Player
from questline.repository import LeaderboardRepository

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def _entry_dict(entry: LeaderboardEntry, name: str | None, position: int | None = None) -> dict:
    return {
        "player_id": entry.player_id,
        "player_name": name,
        "game_id": entry.game_id,
        "total_points": entry.total_points,
        "completed_missions": entry.completed_missions,
        "completed_tasks": entry.completed_tasks,
        "rank": entry.rank,
        "position": position,
        "updated_at": entry.updated_at.isoformat() if entry.updated_at else None,
    }


# ---------------------------------------------------------------------------
# Writes (caller-owned session)
# ---------------------------------------------------------------------------
def update_leaderboard(
    session: Session,
    player_id: int,
    game_id: int | None = None,
    *,
    mission_completed: bool = False,
    tasks_completed: int = 0,
    points: int = 0,
) -> LeaderboardEntry:
    """Upsert the player's row and add to its totals."""
    entry = LeaderboardRepository(session).increment(
        player_id,
        game_id,
        points=points,
        missions=1 if mission_completed else 0,
        tasks=tasks_completed,
    )
    logger.debug(
        "Leaderboard player=%d game=%s +%d pts (mission=%s, tasks=+%d)",
        player_id, game_id, points, mission_completed, tasks_completed,
    )
    return entry


def update_player_score(
    session: Session, player_id: int, points: int, game_id: int | None = None
) -> LeaderboardEntry:
    """Add *points* without touching mission/task counts."""
    return update_leaderboard(session, player_id, game_id, points=points)


def recalculate_ranks(session: Session, game_id: int | None = None) -> int:
    """Write sequential ranks for one board; returns rows changed."""
    changed = 0
    for index, entry in enumerate(LeaderboardRepository(session).ordered_for_ranking(game_id)):
        new_rank = index + 1
        if entry.rank != new_rank:
            entry.rank = new_rank
            changed += 1
    session.flush()
    return changed


def recalculate_rankings(engine, game_id: int | None = None) -> int:
    """Refresh every rank on a board and commit."""
    with Session(engine) as session:
        changed = recalculate_ranks(session, game_id)
        session.commit()
    logger.info("Leaderboard recalculated (game=%s): %d ranks changed", game_id, changed)
    return changed


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_leaderboard(
    engine, game_id: int | None = None, page: int = 1, limit: int = 10
) -> tuple[list[dict], int]:
    offset = (page - 1) * limit
    with Session(engine) as session:
        rows, total = LeaderboardRepository(session).list_ranked(game_id, page, limit)
        return [
            _entry_dict(entry, name, offset + i + 1)
            for i, (entry, name) in enumerate(rows)
        ], total


def get_top_players(engine, count: int = 10, game_id: int | None = None) -> list[dict]:
    entries, _ = get_leaderboard(engine, game_id, page=1, limit=count)
    return entries


def _player_name(session: Session, player_id: int) -> str | None:
    player = session.get(Player, player_id)
    return player.name if player else None


def get_player_ranking(engine, player_id: int, game_id: int | None = None) -> dict | None:
    with Session(engine) as session:
        repo = LeaderboardRepository(session)
        entry = repo.get_entry(player_id, game_id)
        if entry is None:
            return None
        return _entry_dict(entry, _player_name(session, player_id), repo.position(entry))


def get_position_with_context(
    engine, player_id: int, game_id: int | None = None, context: int = 2
) -> dict | None:
    """The player's row plus up to *context* neighbours on each side.

    Neighbours come from live point comparisons, so the answer is right
    even when stored ranks are stale.
    """
    with Session(engine) as session:
        repo = LeaderboardRepository(session)
        entry = repo.get_entry(player_id, game_id)
        if entry is None:
            return None
        position = repo.position(entry)
        above = repo.above(entry, context)
        below = repo.below(entry, context)
        return {
            "player": _entry_dict(entry, _player_name(session, player_id), position),
            "above": [
                _entry_dict(e, name, position - len(above) + i)
                for i, (e, name) in enumerate(above)
            ],
            "below": [
                _entry_dict(e, name, position + i + 1)
                for i, (e, name) in enumerate(below)
            ],
        }


def get_statistics(engine, game_id: int | None = None) -> dict:
    with Session(engine) as session:
        stats = LeaderboardRepository(session).stats(game_id)
    stats["game_id"] = game_id
    stats["generated_at"] = datetime.now(UTC).isoformat()
    return stats
