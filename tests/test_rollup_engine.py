"""
tests/test_rollup_engine.py — Mission Rollup Math
==================================================
Pure tests for questline.engine.progress; no database.
"""

from __future__ import annotations

from questline.database.models import MissionStatus, TaskStatus
from questline.engine.progress import TaskState, compute_mission_rollup, is_task_satisfied


def _state(task_id, points, optional=False, status=TaskStatus.NOT_STARTED.value):
    return TaskState(task_id=task_id, points=points, is_optional=optional, status=status)


class TestTaskSatisfaction:
    def test_completed_and_skipped_are_satisfied(self):
        assert is_task_satisfied(_state(1, 10, status="completed"), False)
        assert is_task_satisfied(_state(1, 10, optional=True, status="skipped"), False)

    def test_pending_required_task_is_not_satisfied(self):
        assert not is_task_satisfied(_state(1, 10), True)

    def test_optional_task_follows_mission_flag(self):
        assert is_task_satisfied(_state(1, 10, optional=True), True)
        assert not is_task_satisfied(_state(1, 10, optional=True), False)


class TestMissionRollup:
    def test_no_tasks_never_completes(self):
        rollup = compute_mission_rollup([])
        assert rollup.status == MissionStatus.IN_PROGRESS
        assert rollup.percentage == 0
        assert rollup.total_tasks == 0

    def test_partial_progress(self):
        rollup = compute_mission_rollup([
            _state(1, 10, status="completed"),
            _state(2, 20),
        ])
        assert rollup.status == MissionStatus.IN_PROGRESS
        assert rollup.points_earned == 10
        assert rollup.total_points == 30
        assert rollup.percentage == 33  # floored

    def test_all_required_completed(self):
        rollup = compute_mission_rollup([
            _state(1, 10, status="completed"),
            _state(2, 30, status="completed"),
        ])
        assert rollup.is_complete
        assert rollup.percentage == 100
        assert rollup.completed_tasks == 2

    def test_pending_optional_counts_toward_completion(self):
        rollup = compute_mission_rollup([
            _state(1, 10, status="completed"),
            _state(2, 15, optional=True),
        ])
        assert rollup.is_complete
        assert rollup.satisfied_tasks == 2
        assert rollup.completed_tasks == 1
        # Points only come from completed tasks
        assert rollup.points_earned == 10
        assert rollup.percentage == 40

    def test_pending_optional_blocks_when_flag_off(self):
        rollup = compute_mission_rollup(
            [_state(1, 10, status="completed"), _state(2, 15, optional=True)],
            optional_counts_as_complete=False,
        )
        assert rollup.status == MissionStatus.IN_PROGRESS

    def test_skipped_task_earns_no_points(self):
        rollup = compute_mission_rollup([
            _state(1, 10, status="completed"),
            _state(2, 10, optional=True, status="skipped"),
        ], optional_counts_as_complete=False)
        assert rollup.is_complete
        assert rollup.points_earned == 10
        assert rollup.percentage == 50

    def test_zero_point_mission_reports_zero_percent(self):
        rollup = compute_mission_rollup([_state(1, 0, status="completed")])
        assert rollup.is_complete
        assert rollup.percentage == 0
