"""
questline.services.task_service — Task Listing, Skip & Explicit Complete
=========================================================================

Skipping and completing are player actions outside the event stream.  Rule
violations come back as ``TaskOperationResult(success=False, message=...)``
rather than exceptions; the route turns them into ``{success: false}``.

Skip is allowed only for optional tasks that are neither completed nor
already skipped.  A successful skip or complete re-runs the mission rollup
and, if the mission completes, the reward/leaderboard cascade.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from questline.database.models import TaskStatus
from questline.engine.targeting import utcnow
from questline.repository import PlayerRepository, TaskRepository
from questline.services.mission_service import task_dict
from questline.services.progress_service import (
    CascadeOutcome,
    TaskUpdate,
    complete_and_cascade,
    recheck_mission,
)

logger = logging.getLogger(__name__)


@dataclass
class TaskOperationResult:
    success: bool
    message: str
    outcome: CascadeOutcome = field(default_factory=CascadeOutcome)
    found: bool = True

    def as_dict(self) -> dict:
        return {"success": self.success, "message": self.message, **self.outcome.as_dict()}


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_player_tasks(
    engine,
    player_id: int,
    *,
    mission_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    with Session(engine) as session:
        rows, total = TaskRepository(session).list_for_player(
            player_id, mission_id, status, page, limit
        )
        return [
            {
                **task_dict(task),
                "status": progress.status if progress else TaskStatus.NOT_STARTED.value,
                "completed_at": _iso(progress.completed_at) if progress else None,
                "skipped_at": _iso(progress.skipped_at) if progress else None,
            }
            for task, progress in rows
        ], total


def get_task_for_player(engine, player_id: int, task_id: int) -> dict | None:
    with Session(engine) as session:
        tasks = TaskRepository(session)
        task = tasks.get(task_id)
        if task is None:
            return None
        progress = tasks.get_progress(player_id, task_id)
        return {
            **task_dict(task),
            "status": progress.status if progress else TaskStatus.NOT_STARTED.value,
            "completed_at": _iso(progress.completed_at) if progress else None,
            "skipped_at": _iso(progress.skipped_at) if progress else None,
        }


# ---------------------------------------------------------------------------
# Player actions
# ---------------------------------------------------------------------------
def skip_task(
    engine, player_id: int, task_id: int, now: datetime | None = None
) -> TaskOperationResult:
    """Skip an optional task for *player_id*.

    Checks run in order: task exists, not completed, not already skipped,
    optional.
    """
    now = now or utcnow()
    with Session(engine) as session:
        tasks = TaskRepository(session)
        task = tasks.get(task_id)
        if task is None:
            return TaskOperationResult(False, f"Task with ID {task_id} not found", found=False)

        progress = tasks.get_progress(player_id, task_id)
        current = progress.status if progress else TaskStatus.NOT_STARTED.value
        if current == TaskStatus.COMPLETED:
            return TaskOperationResult(False, "Task is already completed and cannot be skipped")
        if current == TaskStatus.SKIPPED:
            return TaskOperationResult(False, "Task is already skipped")
        if not task.is_optional:
            logger.warning("Player %d tried to skip required task %d", player_id, task_id)
            return TaskOperationResult(
                False, f'Task "{task.name}" is required and cannot be skipped'
            )

        player, _ = PlayerRepository(session).get_or_create(player_id)
        tasks.upsert_progress(player_id, task_id, TaskStatus.SKIPPED, now)

        result = TaskOperationResult(True, "Task skipped successfully")
        result.outcome.task_updates.append(TaskUpdate(
            task_id=task.id,
            task_name=task.name,
            mission_id=task.mission_id,
            status=TaskStatus.SKIPPED.value,
            points=0,
        ))
        result.outcome.merge(recheck_mission(session, player, task.mission, now))
        session.commit()

    logger.info("Task %d skipped by player %d", task_id, player_id)
    return result


def complete_task(
    engine, player_id: int, task_id: int, now: datetime | None = None
) -> TaskOperationResult:
    """Complete a task without an event; same crediting as the event path."""
    now = now or utcnow()
    with Session(engine) as session:
        tasks = TaskRepository(session)
        task = tasks.get(task_id)
        if task is None:
            return TaskOperationResult(False, f"Task with ID {task_id} not found", found=False)
        if not task.is_active:
            return TaskOperationResult(False, f'Task "{task.name}" is not active')

        progress = tasks.get_progress(player_id, task_id)
        if progress is not None and progress.status == TaskStatus.COMPLETED:
            return TaskOperationResult(False, "Task is already completed")
        if progress is not None and progress.status == TaskStatus.SKIPPED:
            return TaskOperationResult(False, "Task is already skipped")

        player, _ = PlayerRepository(session).get_or_create(player_id)
        outcome = complete_and_cascade(session, player, task, now)
        session.commit()

    logger.info("Task %d completed explicitly by player %d", task_id, player_id)
    return TaskOperationResult(True, "Task completed successfully", outcome)
