"""Initial schema

Players, games, event registry + log, missions/tasks with per-player
progress, rewards, leaderboard and settings.

Revision ID: 5c1e0a7b9d42
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "5c1e0a7b9d42"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True)


def upgrade() -> None:
    # --- Actors & grouping ---
    op.create_table(
        "players",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=True),
        sa.Column("total_points", sa.Integer(), nullable=True),
        sa.Column("tasks_completed", sa.Integer(), nullable=True),
        sa.Column("missions_completed", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_players_total_points", "players", ["total_points"])

    op.create_table(
        "games",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_players", sa.Text(), nullable=True),
        _timestamp("created_at"),
    )

    # --- Event registry + log ---
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "event_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("player_id", sa.BigInteger(),
                  sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(),
                  sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("game_id", sa.Integer(), nullable=True),
        sa.Column("payload", postgresql.JSONB(), nullable=True),
        sa.Column("processed", sa.Boolean(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_event_logs_player_time", "event_logs", ["player_id", "created_at"])
    op.create_index("ix_event_logs_event", "event_logs", ["event_id"])

    # --- Missions & tasks ---
    op.create_table(
        "missions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("game_id", sa.Integer(),
                  sa.ForeignKey("games.id", ondelete="CASCADE"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points_required", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=True),
        sa.Column("recurrence_pattern", sa.String(255), nullable=True),
        sa.Column("prerequisite_mission_id", sa.Integer(),
                  sa.ForeignKey("missions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_players", sa.Text(), nullable=True),
        sa.Column("affects_leaderboard", sa.Boolean(), nullable=True),
        sa.Column("leaderboard_points", sa.Integer(), nullable=True),
        sa.Column("optional_tasks_count_as_complete", sa.Boolean(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_missions_game", "missions", ["game_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("mission_id", sa.Integer(),
                  sa.ForeignKey("missions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(),
                  sa.ForeignKey("events.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=True),
        sa.Column("is_optional", sa.Boolean(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_tasks_mission", "tasks", ["mission_id"])
    op.create_index("ix_tasks_event", "tasks", ["event_id"])

    op.create_table(
        "task_progress",
        sa.Column("player_id", sa.BigInteger(),
                  sa.ForeignKey("players.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("task_id", sa.Integer(),
                  sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("skipped_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("updated_at"),
    )

    op.create_table(
        "mission_progress",
        sa.Column("player_id", sa.BigInteger(),
                  sa.ForeignKey("players.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("mission_id", sa.Integer(),
                  sa.ForeignKey("missions.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("points_earned", sa.Integer(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("skipped_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("updated_at"),
    )

    # --- Rewards ---
    op.create_table(
        "reward_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
    )

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("mission_id", sa.Integer(),
                  sa.ForeignKey("missions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("game_id", sa.Integer(),
                  sa.ForeignKey("games.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reward_type_id", sa.Integer(),
                  sa.ForeignKey("reward_types.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("value", postgresql.JSONB(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_rewards_mission", "rewards", ["mission_id"])

    op.create_table(
        "player_rewards",
        sa.Column("player_id", sa.BigInteger(),
                  sa.ForeignKey("players.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("reward_id", sa.Integer(),
                  sa.ForeignKey("rewards.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("game_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        _timestamp("earned_at"),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_player_rewards_status_expiry", "player_rewards", ["status", "expires_at"]
    )

    # --- Leaderboard & settings ---
    op.create_table(
        "leaderboard",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("player_id", sa.BigInteger(),
                  sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("game_id", sa.Integer(),
                  sa.ForeignKey("games.id", ondelete="CASCADE"), nullable=True),
        sa.Column("total_points", sa.Integer(), nullable=True),
        sa.Column("completed_missions", sa.Integer(), nullable=True),
        sa.Column("completed_tasks", sa.Integer(), nullable=True),
        sa.Column("rank", sa.Integer(), nullable=True),
        _timestamp("updated_at"),
        sa.UniqueConstraint("player_id", "game_id", name="uq_leaderboard_player_game"),
    )
    op.create_index("ix_leaderboard_points", "leaderboard", ["total_points"])
    op.create_index(
        "uq_leaderboard_player_global",
        "leaderboard",
        ["player_id"],
        unique=True,
        postgresql_where=sa.text("game_id IS NULL"),
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("updated_at"),
    )
    op.create_index("ix_settings_category", "settings", ["category"])


def downgrade() -> None:
    # Reverse FK order
    op.drop_table("settings")
    op.drop_table("leaderboard")
    op.drop_table("player_rewards")
    op.drop_table("rewards")
    op.drop_table("reward_types")
    op.drop_table("mission_progress")
    op.drop_table("task_progress")
    op.drop_table("tasks")
    op.drop_table("missions")
    op.drop_table("event_logs")
    op.drop_table("events")
    op.drop_table("games")
    op.drop_table("players")
