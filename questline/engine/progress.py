"""
questline.engine.progress — Mission Rollup Math
================================================

Pure calculation of a mission's state from its tasks' states.  No DB I/O;
callers load the tasks and progress rows and hand in :class:`TaskState`
values.

Rules:
  * A task is *satisfied* when its status is ``completed`` or ``skipped``,
    or when it is optional and the mission lets optional tasks count.
  * ``points_earned`` sums only tasks whose own status is ``completed``.
  * ``percentage = floor(points_earned / total_points * 100)``, 0 when the
    mission carries no points.
  * The mission is ``completed`` exactly when every task is satisfied.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from questline.database.models import MissionStatus, TaskStatus

__all__ = ["MissionRollup", "TaskState", "compute_mission_rollup", "is_task_satisfied"]


@dataclass(frozen=True, slots=True)
class TaskState:
    """One task as seen by one player."""

    task_id: int
    points: int
    is_optional: bool
    status: str = TaskStatus.NOT_STARTED.value


@dataclass(frozen=True, slots=True)
class MissionRollup:
    satisfied_tasks: int
    completed_tasks: int
    total_tasks: int
    points_earned: int
    total_points: int
    percentage: int
    status: MissionStatus

    @property
    def is_complete(self) -> bool:
        return self.status == MissionStatus.COMPLETED


def is_task_satisfied(state: TaskState, optional_counts_as_complete: bool) -> bool:
    if state.status in (TaskStatus.COMPLETED, TaskStatus.SKIPPED):
        return True
    return state.is_optional and optional_counts_as_complete


def compute_mission_rollup(
    tasks: Iterable[TaskState], optional_counts_as_complete: bool = True
) -> MissionRollup:
    """Roll a mission's task states up into counts, points and a status.

    A mission with no tasks never completes; it stays ``in_progress`` at
    0%.
    """
    states = list(tasks)
    total = len(states)
    satisfied = sum(1 for s in states if is_task_satisfied(s, optional_counts_as_complete))
    completed = [s for s in states if s.status == TaskStatus.COMPLETED]
    points_earned = sum(s.points for s in completed)
    total_points = sum(s.points for s in states)

    percentage = (points_earned * 100) // total_points if total_points > 0 else 0

    status = (
        MissionStatus.COMPLETED
        if total > 0 and satisfied == total
        else MissionStatus.IN_PROGRESS
    )
    return MissionRollup(
        satisfied_tasks=satisfied,
        completed_tasks=len(completed),
        total_tasks=total,
        points_earned=points_earned,
        total_points=total_points,
        percentage=percentage,
        status=status,
    )
