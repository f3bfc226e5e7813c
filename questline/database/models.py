"""
questline.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- players           — Actors (merchants); PK is the external player/store id
- games             — Optional grouping + targeting for missions
- events            — Registered event types tasks subscribe to
- event_logs        — One row per received event payload
- missions          — Task containers with targeting, window and prerequisite
- tasks             — Units of progress, each bound to one event type
- task_progress     — Per-player task status (one row per player+task)
- mission_progress  — Per-player mission rollup (one row per player+mission)
- reward_types      — Reward taxonomy (badge, coupon, ...)
- rewards           — Rewards attached to missions
- player_rewards    — Rewards granted to players
- leaderboard       — Per-player (optionally per-game) aggregates + rank
- settings          — Runtime tuning knobs (kill switch, cascade toggles)
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Questline ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TaskStatus(enum.StrEnum):
    NOT_STARTED = "not_started"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class MissionStatus(enum.StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class RewardStatus(enum.StrEnum):
    EARNED = "earned"
    CLAIMED = "claimed"
    EXPIRED = "expired"


class TargetType(enum.StrEnum):
    """Who a game or mission is offered to."""
    ALL = "all"
    SPECIFIC = "specific"
    FILTERED = "filtered"


# ---------------------------------------------------------------------------
# Players — one row per merchant/store
# ---------------------------------------------------------------------------
class Player(Base):
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    points: Mapped[int] = mapped_column(Integer, default=0)
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    tasks_completed: Mapped[int] = mapped_column(Integer, default=0)
    missions_completed: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    task_progress: Mapped[list[TaskProgress]] = relationship(
        back_populates="player", cascade="all, delete-orphan"
    )
    mission_progress: Mapped[list[MissionProgress]] = relationship(
        back_populates="player", cascade="all, delete-orphan"
    )
    rewards: Mapped[list[PlayerReward]] = relationship(
        back_populates="player", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_players_total_points", "total_points"),
    )

    def __repr__(self) -> str:
        return f"<Player id={self.id} name={self.name!r} points={self.points}>"


# ---------------------------------------------------------------------------
# Games — optional grouping for missions
# ---------------------------------------------------------------------------
class Game(Base):
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    target_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TargetType.ALL.value
    )
    target_players: Mapped[str | None] = mapped_column(Text, default=None)  # JSON id list
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    missions: Mapped[list[Mission]] = relationship(back_populates="game")

    def __repr__(self) -> str:
        return f"<Game id={self.id} name={self.name!r} active={self.is_active}>"


# ---------------------------------------------------------------------------
# EventType — registered triggers
# ---------------------------------------------------------------------------
class EventType(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    tasks: Mapped[list[Task]] = relationship(back_populates="event")

    def __repr__(self) -> str:
        return f"<EventType id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# EventLog — one row per received payload
# ---------------------------------------------------------------------------
class EventLog(Base):
    __tablename__ = "event_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("players.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    game_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    processed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_event_logs_player_time", "player_id", "created_at"),
        Index("ix_event_logs_event", "event_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventLog id={self.id} player={self.player_id} "
            f"event={self.event_id} processed={self.processed}>"
        )


# ---------------------------------------------------------------------------
# Missions
# ---------------------------------------------------------------------------
class Mission(Base):
    __tablename__ = "missions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    points_required: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Recurrence is recorded, not scheduled
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    recurrence_pattern: Mapped[str | None] = mapped_column(String(255), default=None)

    prerequisite_mission_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("missions.id", ondelete="SET NULL"), nullable=True
    )
    target_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TargetType.ALL.value
    )
    target_players: Mapped[str | None] = mapped_column(Text, default=None)  # JSON id list

    # Leaderboard cascade
    affects_leaderboard: Mapped[bool] = mapped_column(Boolean, default=False)
    leaderboard_points: Mapped[int] = mapped_column(Integer, default=0)

    # Whether an unfinished optional task counts toward completion
    optional_tasks_count_as_complete: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    game: Mapped[Game | None] = relationship(back_populates="missions")
    prerequisite: Mapped[Mission | None] = relationship(remote_side="Mission.id")
    tasks: Mapped[list[Task]] = relationship(
        back_populates="mission",
        cascade="all, delete-orphan",
        order_by="(Task.sort_order, Task.id)",
    )
    rewards: Mapped[list[Reward]] = relationship(
        back_populates="mission", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_missions_game", "game_id"),
    )

    def __repr__(self) -> str:
        return f"<Mission id={self.id} name={self.name!r} active={self.is_active}>"


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------
class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("missions.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="RESTRICT"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    points: Mapped[int] = mapped_column(Integer, default=0)
    is_optional: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    mission: Mapped[Mission] = relationship(back_populates="tasks")
    event: Mapped[EventType] = relationship(back_populates="tasks")

    __table_args__ = (
        Index("ix_tasks_mission", "mission_id"),
        Index("ix_tasks_event", "event_id"),
    )

    def __repr__(self) -> str:
        return f"<Task id={self.id} name={self.name!r} points={self.points}>"


# ---------------------------------------------------------------------------
# TaskProgress — one row per (player, task)
# ---------------------------------------------------------------------------
class TaskProgress(Base):
    __tablename__ = "task_progress"

    player_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True
    )
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaskStatus.NOT_STARTED.value
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    skipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    player: Mapped[Player] = relationship(back_populates="task_progress")

    def __repr__(self) -> str:
        return f"<TaskProgress player={self.player_id} task={self.task_id} status={self.status}>"


# ---------------------------------------------------------------------------
# MissionProgress — one row per (player, mission)
# ---------------------------------------------------------------------------
class MissionProgress(Base):
    __tablename__ = "mission_progress"

    player_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True
    )
    mission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("missions.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MissionStatus.NOT_STARTED.value
    )
    points_earned: Mapped[int] = mapped_column(Integer, default=0)
    progress: Mapped[int] = mapped_column(Integer, default=0)  # 0..100
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    skipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    player: Mapped[Player] = relationship(back_populates="mission_progress")

    def __repr__(self) -> str:
        return (
            f"<MissionProgress player={self.player_id} mission={self.mission_id} "
            f"status={self.status} progress={self.progress}>"
        )


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------
class RewardType(Base):
    __tablename__ = "reward_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)

    def __repr__(self) -> str:
        return f"<RewardType id={self.id} name={self.name!r}>"


class Reward(Base):
    __tablename__ = "rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("missions.id", ondelete="CASCADE"), nullable=False
    )
    game_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="SET NULL"), nullable=True
    )
    reward_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("reward_types.id", ondelete="RESTRICT"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    # Opaque reward details (coupon code, badge id, expirationDays, ...)
    value: Mapped[dict | None] = mapped_column(JSONB, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    mission: Mapped[Mission] = relationship(back_populates="rewards")
    reward_type: Mapped[RewardType] = relationship()

    __table_args__ = (
        Index("ix_rewards_mission", "mission_id"),
    )

    def __repr__(self) -> str:
        return f"<Reward id={self.id} name={self.name!r} mission={self.mission_id}>"


class PlayerReward(Base):
    __tablename__ = "player_rewards"

    player_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True
    )
    reward_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rewards.id", ondelete="CASCADE"), primary_key=True
    )
    game_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RewardStatus.EARNED.value
    )
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    player: Mapped[Player] = relationship(back_populates="rewards")
    reward: Mapped[Reward] = relationship()

    __table_args__ = (
        Index("ix_player_rewards_status_expiry", "status", "expires_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PlayerReward player={self.player_id} reward={self.reward_id} "
            f"status={self.status}>"
        )


# ---------------------------------------------------------------------------
# LeaderboardEntry — per-player aggregates, rank refreshed on demand
# ---------------------------------------------------------------------------
class LeaderboardEntry(Base):
    __tablename__ = "leaderboard"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("players.id", ondelete="CASCADE"), nullable=False
    )
    game_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=True
    )
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    completed_missions: Mapped[int] = mapped_column(Integer, default=0)
    completed_tasks: Mapped[int] = mapped_column(Integer, default=0)
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)  # stale between recalcs
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("player_id", "game_id", name="uq_leaderboard_player_game"),
        # NULLs are distinct under the constraint above; one global row per player
        Index(
            "uq_leaderboard_player_global",
            "player_id",
            unique=True,
            postgresql_where=game_id.is_(None),
            sqlite_where=game_id.is_(None),
        ),
        Index("ix_leaderboard_points", "total_points"),
    )

    def __repr__(self) -> str:
        return (
            f"<LeaderboardEntry player={self.player_id} game={self.game_id} "
            f"points={self.total_points} rank={self.rank}>"
        )


# ---------------------------------------------------------------------------
# Setting — admin-configurable key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Runtime switches for the rollup (processing kill switch, availability
    enforcement, rank refresh on completion) live here so operators can
    flip them without a redeploy.  Values are stored as JSON strings.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_settings_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r} category={self.category!r}>"
