"""questline.repository.task_repository — Tasks and per-player task progress."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import and_, or_, select

from questline.database.models import Mission, Task, TaskProgress, TaskStatus
from questline.repository.base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    model = Task

    def create(self, **fields) -> Task:
        return self.add(Task(**fields))

    def find_active_by_event(self, event_id: int, game_id: int | None = None) -> Sequence[Task]:
        """Active tasks subscribed to *event_id*, in display order.

        With *game_id*, only tasks of that game's missions and of global
        missions are returned.
        """
        stmt = (
            select(Task)
            .join(Mission, Mission.id == Task.mission_id)
            .where(Task.event_id == event_id, Task.is_active.is_(True))
            .order_by(Task.sort_order, Task.id)
        )
        if game_id is not None:
            stmt = stmt.where(or_(Mission.game_id == game_id, Mission.game_id.is_(None)))
        return self._session.scalars(stmt).all()

    def find_by_mission(self, mission_id: int, active_only: bool = True) -> Sequence[Task]:
        stmt = (
            select(Task)
            .where(Task.mission_id == mission_id)
            .order_by(Task.sort_order, Task.id)
        )
        if active_only:
            stmt = stmt.where(Task.is_active.is_(True))
        return self._session.scalars(stmt).all()

    # -----------------------------------------------------------------------
    # Progress
    # -----------------------------------------------------------------------
    def get_progress(self, player_id: int, task_id: int) -> TaskProgress | None:
        return self._session.get(TaskProgress, (player_id, task_id))

    def progress_map(self, player_id: int, task_ids: Iterable[int]) -> dict[int, TaskProgress]:
        ids = list(task_ids)
        if not ids:
            return {}
        rows = self._session.scalars(
            select(TaskProgress).where(
                TaskProgress.player_id == player_id,
                TaskProgress.task_id.in_(ids),
            )
        ).all()
        return {row.task_id: row for row in rows}

    def upsert_progress(
        self, player_id: int, task_id: int, status: str, now: datetime
    ) -> TaskProgress:
        """Set the player's status on a task, creating the row if needed."""
        progress = self.get_progress(player_id, task_id)
        if progress is None:
            progress, _ = self._insert_or_get(
                TaskProgress(
                    player_id=player_id,
                    task_id=task_id,
                    status=TaskStatus.NOT_STARTED.value,
                ),
                (player_id, task_id),
            )
        progress.status = str(status)
        if status == TaskStatus.COMPLETED:
            progress.completed_at = now
        elif status == TaskStatus.SKIPPED:
            progress.skipped_at = now
        self._session.flush()
        return progress

    def list_for_player(
        self,
        player_id: int,
        mission_id: int | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[Sequence[tuple[Task, TaskProgress | None]], int]:
        """Tasks joined with the player's progress (``None`` = never touched)."""
        stmt = (
            select(Task, TaskProgress)
            .outerjoin(
                TaskProgress,
                and_(TaskProgress.task_id == Task.id, TaskProgress.player_id == player_id),
            )
            .where(Task.is_active.is_(True))
            .order_by(Task.mission_id, Task.sort_order, Task.id)
        )
        if mission_id is not None:
            stmt = stmt.where(Task.mission_id == mission_id)
        if status:
            if status == TaskStatus.NOT_STARTED:
                stmt = stmt.where(or_(
                    TaskProgress.status.is_(None),
                    TaskProgress.status == TaskStatus.NOT_STARTED.value,
                ))
            else:
                stmt = stmt.where(TaskProgress.status == status)
        return self._paginate(stmt, page, limit, scalars=False)
