"""
tests/test_event_processor.py — Event → Progress Rollup Integration Tests
==========================================================================
Service-level tests for event_processor.process_event(): task completion,
mission rollup, reward grants, leaderboard cascade, idempotency, the kill
switch and unregistered events.

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import add_event, add_game, add_mission, add_reward, add_task
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from questline.database.models import (
    EventLog,
    LeaderboardEntry,
    MissionProgress,
    Player,
    PlayerReward,
    TaskProgress,
)
from questline.database.seed import ENFORCE_MISSION_AVAILABILITY, RECALCULATE_ON_MISSION_COMPLETE
from questline.engine.events import normalize_payload
from questline.services import event_processor, event_service, mission_service, task_service
from questline.services.exceptions import EventNotRegisteredError
from questline.services.settings_service import upsert_setting

NOW = datetime(2026, 5, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def engine(db_engine):
    """Re-use the shared conftest db_engine (SQLite, StaticPool)."""
    return db_engine


@pytest.fixture
def onboarding(engine):
    """One mission: a required 10-pt task and an optional 15-pt task, both
    fed by ``order_create``, plus a badge reward."""
    event_id = add_event(engine, "order_create")
    mission_id = add_mission(
        engine, "First Sale", affects_leaderboard=True, leaderboard_points=50
    )
    required = add_task(engine, mission_id, event_id, "Place an order", points=10, sort_order=0)
    optional = add_task(
        engine, mission_id, event_id, "Bonus order", points=15, is_optional=True, sort_order=1
    )
    reward_id = add_reward(engine, mission_id, value={"expirationDays": 30})
    return {
        "event_id": event_id,
        "mission_id": mission_id,
        "required": required,
        "optional": optional,
        "reward_id": reward_id,
    }


def _process(engine, raw: dict, now: datetime = NOW):
    return event_processor.process_event(engine, normalize_payload(raw), now=now)


def _count(engine, model) -> int:
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(model))


# ===========================================================================
# Happy path
# ===========================================================================
class TestRollup:
    def test_event_completes_tasks_and_mission(self, engine, onboarding):
        result = _process(engine, {"event": "order_create", "player_id": 7, "name": "Shop 7"})

        assert result.success
        assert not result.skipped
        assert {u.task_id for u in result.outcome.task_updates} == {
            onboarding["required"], onboarding["optional"]
        }

        with Session(engine) as session:
            player = session.get(Player, 7)
            assert player.name == "Shop 7"
            assert player.points == 25
            assert player.tasks_completed == 2
            assert player.missions_completed == 1

            progress = session.get(MissionProgress, (7, onboarding["mission_id"]))
            assert progress.status == "completed"
            assert progress.points_earned == 25
            assert progress.progress == 100
            assert progress.completed_at is not None

    def test_mission_completes_exactly_once(self, engine, onboarding):
        result = _process(engine, {"event": "order_create", "player_id": 7})

        completions = [u for u in result.outcome.mission_updates if u.just_completed]
        assert len(completions) == 1
        assert len(result.outcome.reward_updates) == 1
        assert result.outcome.reward_updates[0].reward_id == onboarding["reward_id"]

        with Session(engine) as session:
            grant = session.get(PlayerReward, (7, onboarding["reward_id"]))
            assert grant.status == "earned"
            assert grant.expires_at is not None

    def test_leaderboard_credited_on_completion(self, engine, onboarding):
        _process(engine, {"event": "order_create", "player_id": 7})

        with Session(engine) as session:
            entry = session.scalar(
                select(LeaderboardEntry).where(
                    LeaderboardEntry.player_id == 7, LeaderboardEntry.game_id.is_(None)
                )
            )
            assert entry.total_points == 50
            assert entry.completed_missions == 1
            assert entry.rank is None  # refreshed only on recalculation

    def test_leaderboard_counts_every_completed_task(self, engine, onboarding):
        # The required task alone completes the mission; the optional one
        # lands after and must still reach the board.
        _process(engine, {"event": "order_create", "player_id": 7})

        with Session(engine) as session:
            entry = session.scalar(
                select(LeaderboardEntry).where(
                    LeaderboardEntry.player_id == 7, LeaderboardEntry.game_id.is_(None)
                )
            )
            player = session.get(Player, 7)
            assert player.tasks_completed == 2
            assert entry.completed_tasks == player.tasks_completed
            assert entry.completed_missions == 1

    def test_event_is_logged_and_processed(self, engine, onboarding):
        result = _process(engine, {"event": "order_create", "player_id": 7, "x": 1})

        with Session(engine) as session:
            log = session.get(EventLog, result.event_log_id)
            assert log.processed
            assert log.event_id == onboarding["event_id"]
            assert log.payload["x"] == 1

    def test_no_matching_tasks(self, engine):
        add_event(engine, "app_install")
        result = _process(engine, {"event": "app_install", "player_id": 3})

        assert result.success
        assert result.message == "No tasks matched this event"
        assert result.outcome.task_updates == []
        assert _count(engine, EventLog) == 1


# ===========================================================================
# Idempotency
# ===========================================================================
class TestIdempotency:
    def test_resend_credits_nothing(self, engine, onboarding):
        _process(engine, {"event": "order_create", "player_id": 7})
        again = _process(engine, {"event": "order_create", "player_id": 7},
                         now=NOW + timedelta(minutes=5))

        assert again.success
        assert again.outcome.task_updates == []
        assert again.outcome.reward_updates == []

        with Session(engine) as session:
            player = session.get(Player, 7)
            assert player.points == 25
            assert player.missions_completed == 1
        assert _count(engine, PlayerReward) == 1
        assert _count(engine, TaskProgress) == 2
        # Both deliveries are still logged
        assert _count(engine, EventLog) == 2

    def test_skipped_task_stays_skipped(self, engine, onboarding):
        task_service.skip_task(engine, 7, onboarding["optional"], now=NOW)
        result = _process(engine, {"event": "order_create", "player_id": 7})

        assert [u.task_id for u in result.outcome.task_updates] == [onboarding["required"]]
        with Session(engine) as session:
            row = session.get(TaskProgress, (7, onboarding["optional"]))
            assert row.status == "skipped"
            assert row.completed_at is None
            player = session.get(Player, 7)
            assert player.points == 10
            assert player.tasks_completed == 1

    def test_players_progress_independently(self, engine, onboarding):
        _process(engine, {"event": "order_create", "player_id": 7})
        other = _process(engine, {"event": "order_create", "store_id": 8})

        assert len(other.outcome.task_updates) == 2
        assert _count(engine, PlayerReward) == 2


# ===========================================================================
# Mission status never regresses
# ===========================================================================
class TestNoRegression:
    def test_completed_mission_stays_completed(self, engine):
        first = add_event(engine, "product_create")
        second = add_event(engine, "theme_publish")
        mission_id = add_mission(engine, "Setup", optional_tasks_count_as_complete=True)
        add_task(engine, mission_id, first, "Add product", points=10)
        add_task(engine, mission_id, second, "Publish theme", points=30, is_optional=True)

        done = _process(engine, {"event": "product_create", "player_id": 1})
        assert done.outcome.mission_updates[0].just_completed
        assert done.outcome.mission_updates[0].progress == 25

        later = _process(engine, {"event": "theme_publish", "player_id": 1})
        update = later.outcome.mission_updates[0]
        assert update.status == "completed"
        assert update.progress == 100
        assert not update.just_completed


# ===========================================================================
# Game scoping
# ===========================================================================
class TestGameScope:
    def test_game_event_skips_other_games(self, engine):
        event_id = add_event(engine, "order_create")
        game_a = add_game(engine, "Game A")
        game_b = add_game(engine, "Game B")
        in_a = add_mission(engine, "A mission", game_id=game_a)
        in_b = add_mission(engine, "B mission", game_id=game_b)
        global_mission = add_mission(engine, "Global mission")
        task_a = add_task(engine, in_a, event_id)
        add_task(engine, in_b, event_id)
        task_global = add_task(engine, global_mission, event_id)

        result = _process(engine, {"event": "order_create", "player_id": 5, "game_id": game_a})

        assert {u.task_id for u in result.outcome.task_updates} == {task_a, task_global}

    def test_game_board_updated_alongside_global(self, engine):
        event_id = add_event(engine, "order_create")
        game_id = add_game(engine)
        mission_id = add_mission(
            engine, "Game mission", game_id=game_id,
            affects_leaderboard=True, leaderboard_points=20,
        )
        add_task(engine, mission_id, event_id)

        _process(engine, {"event": "order_create", "player_id": 5})

        with Session(engine) as session:
            boards = {
                e.game_id: e.total_points
                for e in session.scalars(select(LeaderboardEntry)).all()
            }
        assert boards == {None: 20, game_id: 20}


# ===========================================================================
# Settings-driven behaviour
# ===========================================================================
class TestSettings:
    def test_kill_switch_writes_nothing(self, engine, onboarding):
        event_processor.set_processing_enabled(engine, False)
        assert event_processor.get_processing_enabled(engine) is False

        result = _process(engine, {"event": "order_create", "player_id": 7})

        assert result.success
        assert result.skipped
        assert _count(engine, Player) == 0
        assert _count(engine, EventLog) == 0

        event_processor.set_processing_enabled(engine, True)
        assert _process(engine, {"event": "order_create", "player_id": 7}).outcome.task_updates

    def test_availability_enforced_when_enabled(self, engine):
        event_id = add_event(engine, "order_create")
        vip = add_mission(engine, "VIP only", target_type="specific", target_players="[99]")
        add_task(engine, vip, event_id)

        assert _process(engine, {"event": "order_create", "player_id": 1}).outcome.task_updates

        upsert_setting(engine, key=ENFORCE_MISSION_AVAILABILITY, value=True, category="events")
        result = _process(engine, {"event": "order_create", "player_id": 2})
        assert result.outcome.task_updates == []

    def test_ranks_refreshed_when_enabled(self, engine, onboarding):
        upsert_setting(
            engine, key=RECALCULATE_ON_MISSION_COMPLETE, value=True, category="leaderboard"
        )
        _process(engine, {"event": "order_create", "player_id": 7})

        with Session(engine) as session:
            entry = session.scalar(select(LeaderboardEntry).where(LeaderboardEntry.player_id == 7))
            assert entry.rank == 1


# ===========================================================================
# Unregistered events
# ===========================================================================
class TestUnregisteredEvent:
    def test_raises_and_rolls_back(self, engine):
        with pytest.raises(EventNotRegisteredError) as excinfo:
            _process(engine, {"event": "mystery", "player_id": 11})

        assert excinfo.value.message == 'Event "mystery" is not registered in the system'
        assert _count(engine, Player) == 0
        assert _count(engine, EventLog) == 0


# ===========================================================================
# Full scenario from an empty catalogue
# ===========================================================================
def test_first_order_for_new_player(engine):
    event_service.register_event(engine, "order_create")
    mission = mission_service.create_mission(engine, name="Get selling")
    mission_service.create_task(
        engine, mission["id"], name="First order", event_name="order_create", points=10
    )
    mission_service.create_task(
        engine, mission["id"], name="Bonus order", event_name="order_create", points=15,
        is_optional=True,
    )
    add_reward(engine, mission["id"])

    first = _process(engine, {"event": "order_create", "player_id": 42})
    assert [u.status for u in first.outcome.task_updates] == ["completed", "completed"]
    final = first.outcome.mission_updates[-1]
    assert (final.status, final.points_earned, final.progress) == ("completed", 25, 100)
    assert len(first.outcome.reward_updates) == 1

    second = _process(engine, {"event": "order_create", "player_id": 42})
    assert second.success
    assert second.outcome.task_updates == []
    assert second.outcome.mission_updates == []
    assert second.outcome.reward_updates == []
