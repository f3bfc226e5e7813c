"""
questline.repository.leaderboard_repository — Leaderboard Aggregates
=====================================================================

Rows are scoped by ``game_id``: ``None`` is the global board.  Ordering is
``total_points`` descending with ``player_id`` ascending as the tie-break,
and the context queries use the same ordering on live point values rather
than the stored ``rank``.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import and_, func, or_, select

from questline.database.models import LeaderboardEntry, Player
from questline.repository.base import BaseRepository


class LeaderboardRepository(BaseRepository[LeaderboardEntry]):
    model = LeaderboardEntry

    @staticmethod
    def _scope(game_id: int | None):
        if game_id is None:
            return LeaderboardEntry.game_id.is_(None)
        return LeaderboardEntry.game_id == game_id

    @staticmethod
    def _ordering():
        return (LeaderboardEntry.total_points.desc(), LeaderboardEntry.player_id.asc())

    def get_entry(self, player_id: int, game_id: int | None = None) -> LeaderboardEntry | None:
        return self._session.scalar(
            select(LeaderboardEntry).where(
                LeaderboardEntry.player_id == player_id, self._scope(game_id)
            )
        )

    def get_or_create_entry(
        self, player_id: int, game_id: int | None = None
    ) -> LeaderboardEntry:
        """Return the player's row on a board, inserting a zeroed one if absent."""
        entry = self.get_entry(player_id, game_id)
        if entry is not None:
            return entry
        entry, _ = self._insert_or_get(
            LeaderboardEntry(
                player_id=player_id,
                game_id=game_id,
                total_points=0,
                completed_missions=0,
                completed_tasks=0,
            ),
            (player_id, game_id),
            lookup=lambda: self.get_entry(player_id, game_id),
        )
        return entry

    def increment(
        self,
        player_id: int,
        game_id: int | None = None,
        *,
        points: int = 0,
        missions: int = 0,
        tasks: int = 0,
    ) -> LeaderboardEntry:
        """Add to the player's totals, creating the row at zero first.

        ``rank`` is left untouched.
        """
        entry = self.get_or_create_entry(player_id, game_id)
        entry.total_points = (entry.total_points or 0) + points
        entry.completed_missions = (entry.completed_missions or 0) + missions
        entry.completed_tasks = (entry.completed_tasks or 0) + tasks
        self._session.flush()
        return entry

    def list_ranked(
        self, game_id: int | None = None, page: int = 1, limit: int = 10
    ) -> tuple[Sequence[tuple[LeaderboardEntry, str | None]], int]:
        stmt = (
            select(LeaderboardEntry, Player.name)
            .join(Player, Player.id == LeaderboardEntry.player_id)
            .where(self._scope(game_id))
            .order_by(*self._ordering())
        )
        return self._paginate(stmt, page, limit, scalars=False)

    def ordered_for_ranking(self, game_id: int | None = None) -> Sequence[LeaderboardEntry]:
        return self._session.scalars(
            select(LeaderboardEntry)
            .where(self._scope(game_id))
            .order_by(*self._ordering())
        ).all()

    def above(
        self, entry: LeaderboardEntry, limit: int
    ) -> list[tuple[LeaderboardEntry, str | None]]:
        """Up to *limit* rows ranked directly ahead of *entry*, best first."""
        rows = self._session.execute(
            select(LeaderboardEntry, Player.name)
            .join(Player, Player.id == LeaderboardEntry.player_id)
            .where(
                self._scope(entry.game_id),
                or_(
                    LeaderboardEntry.total_points > entry.total_points,
                    and_(
                        LeaderboardEntry.total_points == entry.total_points,
                        LeaderboardEntry.player_id < entry.player_id,
                    ),
                ),
            )
            .order_by(LeaderboardEntry.total_points.asc(), LeaderboardEntry.player_id.desc())
            .limit(limit)
        ).all()
        return [tuple(r) for r in reversed(rows)]

    def below(
        self, entry: LeaderboardEntry, limit: int
    ) -> list[tuple[LeaderboardEntry, str | None]]:
        """Up to *limit* rows ranked directly behind *entry*, best first."""
        rows = self._session.execute(
            select(LeaderboardEntry, Player.name)
            .join(Player, Player.id == LeaderboardEntry.player_id)
            .where(
                self._scope(entry.game_id),
                or_(
                    LeaderboardEntry.total_points < entry.total_points,
                    and_(
                        LeaderboardEntry.total_points == entry.total_points,
                        LeaderboardEntry.player_id > entry.player_id,
                    ),
                ),
            )
            .order_by(*self._ordering())
            .limit(limit)
        ).all()
        return [tuple(r) for r in rows]

    def position(self, entry: LeaderboardEntry) -> int:
        """Live 1-based position of *entry*, independent of stored ranks."""
        ahead = self._session.scalar(
            select(func.count())
            .select_from(LeaderboardEntry)
            .where(
                self._scope(entry.game_id),
                or_(
                    LeaderboardEntry.total_points > entry.total_points,
                    and_(
                        LeaderboardEntry.total_points == entry.total_points,
                        LeaderboardEntry.player_id < entry.player_id,
                    ),
                ),
            )
        ) or 0
        return ahead + 1

    def stats(self, game_id: int | None = None) -> dict:
        row = self._session.execute(
            select(
                func.count(),
                func.max(LeaderboardEntry.total_points),
                func.avg(LeaderboardEntry.total_points),
                func.sum(LeaderboardEntry.completed_missions),
                func.sum(LeaderboardEntry.completed_tasks),
            ).where(self._scope(game_id))
        ).one()
        total_players, top, avg, missions, tasks = row
        return {
            "total_players": int(total_players or 0),
            "top_score": int(top or 0),
            "average_score": round(float(avg or 0), 2),
            "total_missions_completed": int(missions or 0),
            "total_tasks_completed": int(tasks or 0),
        }
