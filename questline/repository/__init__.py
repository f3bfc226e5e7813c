"""
questline.repository — Data Access Layer
=========================================

One repository per aggregate, each bound to a caller-owned Session::

    with Session(engine) as session:
        players = PlayerRepository(session)
        player, created = players.get_or_create(42)
        session.commit()
"""

from questline.repository.event_repository import EventRepository
from questline.repository.game_repository import GameRepository
from questline.repository.leaderboard_repository import LeaderboardRepository
from questline.repository.mission_repository import MissionRepository
from questline.repository.player_repository import PlayerRepository
from questline.repository.reward_repository import RewardRepository
from questline.repository.task_repository import TaskRepository

__all__ = [
    "EventRepository",
    "GameRepository",
    "LeaderboardRepository",
    "MissionRepository",
    "PlayerRepository",
    "RewardRepository",
    "TaskRepository",
]
