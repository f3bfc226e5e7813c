"""
questline.services.mission_service — Missions for Players & Admins
===================================================================

Read paths join missions with one player's progress and annotate each with
availability (active flag, window, audience) and prerequisite state.
Admin writes create missions and their tasks, and delete missions.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from questline.database.models import (
    EventType,
    Game,
    Mission,
    MissionProgress,
    MissionStatus,
    TargetType,
    Task,
    TaskStatus,
)
from questline.engine.targeting import (
    is_mission_available,
    parse_target_players,
    prerequisite_satisfied,
    utcnow,
)
from questline.repository import EventRepository, MissionRepository, TaskRepository
from questline.services.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Availability:
    available: bool
    prerequisite_met: bool
    reason: str | None = None


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def mission_dict(mission: Mission) -> dict:
    return {
        "id": mission.id,
        "game_id": mission.game_id,
        "name": mission.name,
        "description": mission.description,
        "points_required": mission.points_required,
        "is_active": mission.is_active,
        "start_date": _iso(mission.start_date),
        "end_date": _iso(mission.end_date),
        "is_recurring": mission.is_recurring,
        "recurrence_pattern": mission.recurrence_pattern,
        "prerequisite_mission_id": mission.prerequisite_mission_id,
        "target_type": mission.target_type,
        "target_players": parse_target_players(mission.target_players),
        "affects_leaderboard": mission.affects_leaderboard,
        "leaderboard_points": mission.leaderboard_points,
        "optional_tasks_count_as_complete": mission.optional_tasks_count_as_complete,
    }


def _progress_dict(row: MissionProgress | None) -> dict:
    if row is None:
        return {
            "status": MissionStatus.NOT_STARTED.value,
            "points_earned": 0,
            "progress": 0,
            "started_at": None,
            "completed_at": None,
        }
    return {
        "status": row.status,
        "points_earned": row.points_earned,
        "progress": row.progress,
        "started_at": _iso(row.started_at),
        "completed_at": _iso(row.completed_at),
    }


def task_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "mission_id": task.mission_id,
        "event_id": task.event_id,
        "event_name": task.event.name if task.event else None,
        "name": task.name,
        "description": task.description,
        "points": task.points,
        "is_optional": task.is_optional,
        "is_active": task.is_active,
        "sort_order": task.sort_order,
    }


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------
def check_availability(
    session: Session,
    mission: Mission,
    player_id: int,
    now: datetime | None = None,
    prerequisite_status: str | None = None,
) -> Availability:
    """Whether *mission* is open to *player_id* right now.

    *prerequisite_status* may be passed in when the caller already loaded
    it; otherwise it is looked up.
    """
    prerequisite_id = mission.prerequisite_mission_id
    if prerequisite_id is not None and prerequisite_status is None:
        row = MissionRepository(session).get_progress(player_id, prerequisite_id)
        prerequisite_status = row.status if row else None
    prerequisite_met = prerequisite_satisfied(prerequisite_id, prerequisite_status)

    if not is_mission_available(mission, player_id, now):
        return Availability(False, prerequisite_met, "Mission is not available to this player")
    if not prerequisite_met:
        return Availability(False, False, f"Mission {prerequisite_id} must be completed first")
    return Availability(True, True)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_player_missions(
    engine,
    player_id: int,
    *,
    game_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
    available_only: bool = False,
    now: datetime | None = None,
) -> tuple[list[dict], int]:
    """Active missions with the player's progress, paginated."""
    now = now or utcnow()
    with Session(engine) as session:
        missions = MissionRepository(session)
        rows = missions.list_with_progress(player_id, game_id, status)
        prereq_ids = {m.prerequisite_mission_id for m, _ in rows if m.prerequisite_mission_id}
        prereq_progress = missions.progress_map(player_id, prereq_ids)

        items: list[dict] = []
        for mission, progress in rows:
            prereq = prereq_progress.get(mission.prerequisite_mission_id)
            availability = check_availability(
                session, mission, player_id, now,
                prerequisite_status=prereq.status if prereq else None,
            )
            if available_only and not availability.available:
                continue
            items.append({
                **mission_dict(mission),
                "task_count": len([t for t in mission.tasks if t.is_active]),
                "player_progress": _progress_dict(progress),
                "is_available": availability.available,
                "prerequisite_met": availability.prerequisite_met,
            })

    start = (page - 1) * limit
    return items[start:start + limit], len(items)


def get_mission_for_player(
    engine, player_id: int, mission_id: int, now: datetime | None = None
) -> dict:
    """Mission detail with every active task and the player's status on it."""
    with Session(engine) as session:
        missions = MissionRepository(session)
        mission = missions.get(mission_id)
        if mission is None:
            raise NotFoundError(f"Mission with ID {mission_id} not found", mission_id=mission_id)

        tasks = TaskRepository(session)
        mission_tasks = tasks.find_by_mission(mission_id, active_only=True)
        progress = tasks.progress_map(player_id, [t.id for t in mission_tasks])
        availability = check_availability(session, mission, player_id, now)

        return {
            **mission_dict(mission),
            "player_progress": _progress_dict(missions.get_progress(player_id, mission_id)),
            "is_available": availability.available,
            "prerequisite_met": availability.prerequisite_met,
            "availability_reason": availability.reason,
            "tasks": [
                {
                    **task_dict(t),
                    "status": progress[t.id].status if t.id in progress
                    else TaskStatus.NOT_STARTED.value,
                    "completed_at": _iso(progress[t.id].completed_at) if t.id in progress else None,
                }
                for t in mission_tasks
            ],
        }


# ---------------------------------------------------------------------------
# Admin writes
# ---------------------------------------------------------------------------
def _encode_targets(target_type: str, target_players: list[int] | None) -> str | None:
    if target_type == TargetType.SPECIFIC and not target_players:
        raise ValueError("target_players is required when target_type is 'specific'")
    return json.dumps([int(p) for p in target_players]) if target_players else None


def create_mission(engine, **fields) -> dict:
    """Create a mission.

    ``target_players`` is taken as a list of ids and stored as JSON.

    Raises
    ------
    NotFoundError
        If ``game_id`` or ``prerequisite_mission_id`` do not exist.
    ValueError
        If the window is inverted or a ``specific`` audience is empty.
    """
    start, end = fields.get("start_date"), fields.get("end_date")
    if start and end and end < start:
        raise ValueError("end_date must not be before start_date")
    target_type = str(fields.get("target_type") or TargetType.ALL.value)
    fields["target_type"] = target_type
    fields["target_players"] = _encode_targets(target_type, fields.get("target_players"))

    with Session(engine) as session:
        if fields.get("game_id") is not None and session.get(Game, fields["game_id"]) is None:
            raise NotFoundError(f"Game with ID {fields['game_id']} not found")
        prereq = fields.get("prerequisite_mission_id")
        if prereq is not None and session.get(Mission, prereq) is None:
            raise NotFoundError(f"Prerequisite mission with ID {prereq} not found")

        mission = MissionRepository(session).create(**fields)
        data = mission_dict(mission)
        session.commit()
    logger.info("Mission %d (%s) created", data["id"], data["name"])
    return data


def create_task(
    engine,
    mission_id: int,
    *,
    name: str,
    event_id: int | None = None,
    event_name: str | None = None,
    description: str | None = None,
    points: int = 0,
    is_optional: bool = False,
    is_active: bool = True,
    sort_order: int | None = None,
) -> dict:
    """Add a task to a mission, bound to an event type by id or name."""
    with Session(engine) as session:
        mission = MissionRepository(session).get(mission_id)
        if mission is None:
            raise NotFoundError(f"Mission with ID {mission_id} not found", mission_id=mission_id)

        events = EventRepository(session)
        event: EventType | None = None
        if event_id is not None:
            event = events.get(event_id)
        elif event_name:
            event = events.get_by_name(event_name)
        if event is None:
            raise NotFoundError(f"Event {event_id or event_name!r} is not registered")

        if sort_order is None:
            sort_order = len(mission.tasks)
        task = TaskRepository(session).create(
            mission_id=mission_id,
            event_id=event.id,
            name=name,
            description=description,
            points=points,
            is_optional=is_optional,
            is_active=is_active,
            sort_order=sort_order,
        )
        data = task_dict(task)
        session.commit()
    logger.info("Task %d (%s) added to mission %d", data["id"], name, mission_id)
    return data


def delete_mission(engine, mission_id: int) -> None:
    """Delete a mission with its tasks, rewards and progress.

    Raises
    ------
    ConflictError
        If another mission names it as a prerequisite.
    """
    with Session(engine) as session:
        missions = MissionRepository(session)
        mission = missions.get(mission_id)
        if mission is None:
            raise NotFoundError(f"Mission with ID {mission_id} not found", mission_id=mission_id)
        dependants = [m.id for m in missions.list() if m.prerequisite_mission_id == mission_id]
        if dependants:
            raise ConflictError(
                f"Mission {mission_id} is a prerequisite of mission(s) {dependants}",
                mission_id=mission_id,
            )
        missions.delete(mission)
        session.commit()
    logger.info("Mission %d deleted", mission_id)
