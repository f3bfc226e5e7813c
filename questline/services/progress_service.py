"""
questline.services.progress_service — Task → Mission → Reward Cascade
======================================================================

Shared by the event processor and the task service.  Every function takes
the caller's session and never commits, so a whole cascade lands in one
transaction.

    apply_task_completion      task progress → completed, player credited
    refresh_mission_progress   mission rollup recomputed and stored
    on_mission_completed       counters, rewards, leaderboard
    complete_and_cascade       all three for one task
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from questline.database.models import Mission, MissionStatus, Player, Task, TaskStatus
from questline.database.seed import RECALCULATE_ON_MISSION_COMPLETE
from questline.engine.progress import MissionRollup, TaskState, compute_mission_rollup
from questline.repository import MissionRepository, PlayerRepository, TaskRepository
from questline.services import leaderboard_service, reward_service
from questline.services.settings_service import get_bool_setting

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outcome records
# ---------------------------------------------------------------------------
@dataclass
class TaskUpdate:
    task_id: int
    task_name: str
    mission_id: int
    status: str
    points: int


@dataclass
class MissionUpdate:
    mission_id: int
    mission_name: str
    status: str
    points_earned: int
    progress: int
    completed_tasks: int
    total_tasks: int
    just_completed: bool = False


@dataclass
class RewardUpdate:
    reward_id: int
    reward_name: str
    mission_id: int
    status: str
    expires_at: str | None = None


@dataclass
class CascadeOutcome:
    task_updates: list[TaskUpdate] = field(default_factory=list)
    mission_updates: list[MissionUpdate] = field(default_factory=list)
    reward_updates: list[RewardUpdate] = field(default_factory=list)

    def merge(self, other: CascadeOutcome) -> None:
        self.task_updates.extend(other.task_updates)
        self.mission_updates.extend(other.mission_updates)
        self.reward_updates.extend(other.reward_updates)

    def as_dict(self) -> dict:
        return {
            "task_updates": [asdict(u) for u in self.task_updates],
            "mission_updates": [asdict(u) for u in self.mission_updates],
            "reward_updates": [asdict(u) for u in self.reward_updates],
        }


# ---------------------------------------------------------------------------
# Task level
# ---------------------------------------------------------------------------
def apply_task_completion(
    session: Session, player: Player, task: Task, now: datetime
) -> TaskUpdate | None:
    """Mark *task* completed for *player* and credit its points.

    Returns ``None`` when the task is already completed or skipped; both
    are final, so repeated events never credit twice.
    """
    tasks = TaskRepository(session)
    current = tasks.get_progress(player.id, task.id)
    if current is not None and current.status in (TaskStatus.COMPLETED, TaskStatus.SKIPPED):
        return None

    tasks.upsert_progress(player.id, task.id, TaskStatus.COMPLETED, now)
    PlayerRepository(session).add_points(player, task.points or 0)
    player.tasks_completed = (player.tasks_completed or 0) + 1
    session.flush()

    logger.debug("Task %d completed by player %d (+%d pts)", task.id, player.id, task.points)
    return TaskUpdate(
        task_id=task.id,
        task_name=task.name,
        mission_id=task.mission_id,
        status=TaskStatus.COMPLETED.value,
        points=task.points or 0,
    )


def leaderboard_boards(mission: Mission, game_id: int | None = None) -> list[int | None]:
    """Boards a leaderboard-affecting *mission* feeds: global, plus its game."""
    scope_game = mission.game_id if mission.game_id is not None else game_id
    return [None] if scope_game is None else [None, scope_game]


# ---------------------------------------------------------------------------
# Mission level
# ---------------------------------------------------------------------------
def compute_player_rollup(session: Session, player_id: int, mission: Mission) -> MissionRollup:
    """Rollup of *mission*'s active tasks as they stand for *player_id*."""
    tasks = TaskRepository(session)
    mission_tasks = tasks.find_by_mission(mission.id, active_only=True)
    progress = tasks.progress_map(player_id, [t.id for t in mission_tasks])
    states = [
        TaskState(
            task_id=t.id,
            points=t.points or 0,
            is_optional=t.is_optional,
            status=progress[t.id].status if t.id in progress else TaskStatus.NOT_STARTED.value,
        )
        for t in mission_tasks
    ]
    return compute_mission_rollup(states, mission.optional_tasks_count_as_complete)


def refresh_mission_progress(
    session: Session, player_id: int, mission: Mission, now: datetime
) -> tuple[MissionUpdate, MissionRollup]:
    """Recompute and store the player's progress on *mission*.

    A mission already ``completed`` stays completed whatever the rollup
    now says.  ``just_completed`` on the update marks the transition.
    """
    missions = MissionRepository(session)
    rollup = compute_player_rollup(session, player_id, mission)
    previous = missions.get_progress(player_id, mission.id)
    was_completed = previous is not None and previous.status == MissionStatus.COMPLETED

    status = MissionStatus.COMPLETED if was_completed else rollup.status
    row = missions.upsert_progress(
        player_id,
        mission.id,
        status=status,
        points_earned=rollup.points_earned,
        progress=rollup.percentage,
        now=now,
    )
    update = MissionUpdate(
        mission_id=mission.id,
        mission_name=mission.name,
        status=row.status,
        points_earned=row.points_earned,
        progress=row.progress,
        completed_tasks=rollup.completed_tasks,
        total_tasks=rollup.total_tasks,
        just_completed=rollup.is_complete and not was_completed,
    )
    return update, rollup


def on_mission_completed(
    session: Session,
    player: Player,
    mission: Mission,
    now: datetime,
    game_id: int | None = None,
) -> list[RewardUpdate]:
    """Side effects of a mission turning ``completed`` for *player*."""
    player.missions_completed = (player.missions_completed or 0) + 1
    scope_game = mission.game_id if mission.game_id is not None else game_id

    granted = reward_service.grant_rewards_for_mission(
        session, mission.id, player.id, scope_game, now
    )

    if mission.affects_leaderboard:
        boards = leaderboard_boards(mission, game_id)
        for board in boards:
            leaderboard_service.update_leaderboard(
                session,
                player.id,
                board,
                mission_completed=True,
                points=mission.leaderboard_points or 0,
            )
        if get_bool_setting(session, RECALCULATE_ON_MISSION_COMPLETE, False):
            for board in boards:
                leaderboard_service.recalculate_ranks(session, board)

    session.flush()
    logger.info(
        "Mission %d (%s) completed by player %d: %d reward(s) granted",
        mission.id, mission.name, player.id, len(granted),
    )
    return [
        RewardUpdate(
            reward_id=row.reward_id,
            reward_name=row.reward.name,
            mission_id=mission.id,
            status=row.status,
            expires_at=row.expires_at.isoformat() if row.expires_at else None,
        )
        for row in granted
    ]


def recheck_mission(
    session: Session,
    player: Player,
    mission: Mission,
    now: datetime,
    game_id: int | None = None,
) -> CascadeOutcome:
    """Refresh one mission and run the completion side effects if due."""
    outcome = CascadeOutcome()
    update, _ = refresh_mission_progress(session, player.id, mission, now)
    outcome.mission_updates.append(update)
    if update.just_completed:
        outcome.reward_updates.extend(
            on_mission_completed(session, player, mission, now, game_id)
        )
    return outcome


def complete_and_cascade(
    session: Session,
    player: Player,
    task: Task,
    now: datetime,
    game_id: int | None = None,
) -> CascadeOutcome:
    """Complete *task* and roll the change up through its mission.

    Returns an empty outcome when the task was already completed or
    skipped.
    """
    outcome = CascadeOutcome()
    task_update = apply_task_completion(session, player, task, now)
    if task_update is None:
        return outcome
    outcome.task_updates.append(task_update)
    if task.mission.affects_leaderboard:
        # Task counts move per completion; the mission bonus adds none
        for board in leaderboard_boards(task.mission, game_id):
            leaderboard_service.update_leaderboard(session, player.id, board, tasks_completed=1)
    outcome.merge(recheck_mission(session, player, task.mission, now, game_id))
    return outcome
