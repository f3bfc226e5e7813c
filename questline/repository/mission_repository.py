"""questline.repository.mission_repository — Missions and per-player mission progress."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import and_, or_, select

from questline.database.models import Mission, MissionProgress, MissionStatus
from questline.repository.base import BaseRepository


class MissionRepository(BaseRepository[Mission]):
    model = Mission

    def create(self, **fields) -> Mission:
        return self.add(Mission(**fields))

    def list(self, game_id: int | None = None, active_only: bool = False) -> Sequence[Mission]:
        stmt = select(Mission).order_by(Mission.id)
        if game_id is not None:
            stmt = stmt.where(Mission.game_id == game_id)
        if active_only:
            stmt = stmt.where(Mission.is_active.is_(True))
        return self._session.scalars(stmt).all()

    def list_with_progress(
        self,
        player_id: int,
        game_id: int | None = None,
        status: str | None = None,
    ) -> Sequence[tuple[Mission, MissionProgress | None]]:
        """Active missions joined with the player's progress.

        With *game_id*, only that game's missions and global missions.
        Not paginated: callers filter by availability before paging.
        """
        stmt = (
            select(Mission, MissionProgress)
            .outerjoin(
                MissionProgress,
                and_(
                    MissionProgress.mission_id == Mission.id,
                    MissionProgress.player_id == player_id,
                ),
            )
            .where(Mission.is_active.is_(True))
            .order_by(Mission.id)
        )
        if game_id is not None:
            stmt = stmt.where(or_(Mission.game_id == game_id, Mission.game_id.is_(None)))
        if status:
            if status == MissionStatus.NOT_STARTED:
                stmt = stmt.where(or_(
                    MissionProgress.status.is_(None),
                    MissionProgress.status == MissionStatus.NOT_STARTED.value,
                ))
            else:
                stmt = stmt.where(MissionProgress.status == status)
        return [tuple(row) for row in self._session.execute(stmt).all()]

    # -----------------------------------------------------------------------
    # Progress
    # -----------------------------------------------------------------------
    def get_progress(self, player_id: int, mission_id: int) -> MissionProgress | None:
        return self._session.get(MissionProgress, (player_id, mission_id))

    def progress_map(
        self, player_id: int, mission_ids: Iterable[int]
    ) -> dict[int, MissionProgress]:
        ids = list(mission_ids)
        if not ids:
            return {}
        rows = self._session.scalars(
            select(MissionProgress).where(
                MissionProgress.player_id == player_id,
                MissionProgress.mission_id.in_(ids),
            )
        ).all()
        return {row.mission_id: row for row in rows}

    def upsert_progress(
        self,
        player_id: int,
        mission_id: int,
        *,
        status: str,
        points_earned: int,
        progress: int,
        now: datetime,
    ) -> MissionProgress:
        """Write the player's rollup for a mission, creating the row if needed.

        ``started_at`` is stamped once; ``completed_at`` on the first write
        with status ``completed``.
        """
        row = self.get_progress(player_id, mission_id)
        if row is None:
            row, _ = self._insert_or_get(
                MissionProgress(
                    player_id=player_id,
                    mission_id=mission_id,
                    status=MissionStatus.NOT_STARTED.value,
                    points_earned=0,
                    progress=0,
                ),
                (player_id, mission_id),
            )
        row.status = str(status)
        row.points_earned = points_earned
        row.progress = progress
        if row.started_at is None:
            row.started_at = now
        if status == MissionStatus.COMPLETED and row.completed_at is None:
            row.completed_at = now
        self._session.flush()
        return row
