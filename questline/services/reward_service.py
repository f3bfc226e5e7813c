"""
questline.services.reward_service — Grant, Claim & Expire Rewards
==================================================================

Rewards hang off missions.  Completing a mission grants every reward
attached to it that the player does not already hold; each grant is an
``earned`` :class:`~questline.database.models.PlayerReward` with an optional
expiry derived from the reward's ``value.expirationDays``.

Lifecycle::

    earned ──claim──▶ claimed
       └──(expires_at passes / sweep)──▶ expired

Stored ``expired`` status can trail the clock until :func:`expire_rewards`
runs, so claims check the live timestamp too.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from questline.database.models import Mission, PlayerReward, Reward, RewardStatus
from questline.engine.rewards import compute_expiry, is_expired
from questline.engine.targeting import utcnow
from questline.repository import MissionRepository, PlayerRepository, RewardRepository
from questline.services.exceptions import NotFoundError

logger = logging.getLogger(__name__)

ALREADY_HELD = "Player already has this reward"


@dataclass
class RewardOperationResult:
    success: bool
    message: str
    data: list[dict] | dict | None = field(default=None)
    found: bool = True


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def reward_dict(reward: Reward) -> dict:
    return {
        "id": reward.id,
        "mission_id": reward.mission_id,
        "game_id": reward.game_id,
        "reward_type_id": reward.reward_type_id,
        "reward_type": reward.reward_type.name if reward.reward_type else None,
        "name": reward.name,
        "description": reward.description,
        "value": reward.value or {},
    }


def player_reward_dict(row: PlayerReward, now: datetime | None = None) -> dict:
    return {
        "player_id": row.player_id,
        "reward_id": row.reward_id,
        "game_id": row.game_id,
        "status": row.status,
        "is_expired": is_expired(row.status, row.expires_at, now),
        "earned_at": row.earned_at.isoformat() if row.earned_at else None,
        "claimed_at": row.claimed_at.isoformat() if row.claimed_at else None,
        "expires_at": row.expires_at.isoformat() if row.expires_at else None,
        "reward": reward_dict(row.reward) if row.reward else None,
    }


# ---------------------------------------------------------------------------
# Granting (caller-owned session)
# ---------------------------------------------------------------------------
def grant_rewards_for_mission(
    session: Session,
    mission_id: int,
    player_id: int,
    game_id: int | None = None,
    now: datetime | None = None,
) -> list[PlayerReward]:
    """Grant every reward of *mission_id* the player doesn't hold yet.

    Returns the new grants; an empty list when the mission has no rewards
    or the player already holds them all.
    """
    now = now or utcnow()
    repo = RewardRepository(session)
    rewards = repo.find_by_mission(mission_id)
    held = repo.held_reward_ids(player_id, [r.id for r in rewards])

    granted: list[PlayerReward] = []
    for reward in rewards:
        if reward.id in held:
            continue
        row = repo.add_player_reward(
            player_id,
            reward,
            game_id=game_id if game_id is not None else reward.game_id,
            earned_at=now,
            expires_at=compute_expiry(reward.value, now),
        )
        if row is not None:
            granted.append(row)
            logger.info(
                "Reward %d (%s) granted to player %d for mission %d",
                reward.id, reward.name, player_id, mission_id,
            )
    return granted


# ---------------------------------------------------------------------------
# Public operations (own session)
# ---------------------------------------------------------------------------
def grant_reward_for_mission(
    engine, player_id: int, mission_id: int, now: datetime | None = None
) -> RewardOperationResult:
    """Manually grant a mission's rewards to a player."""
    now = now or utcnow()
    with Session(engine) as session:
        mission = session.get(Mission, mission_id)
        if mission is None:
            return RewardOperationResult(
                False, f"Mission with ID {mission_id} not found", found=False
            )

        if not RewardRepository(session).find_by_mission(mission_id):
            return RewardOperationResult(False, f"No reward found for mission {mission_id}")

        PlayerRepository(session).get_or_create(player_id)
        granted = grant_rewards_for_mission(session, mission_id, player_id, mission.game_id, now)
        if not granted:
            logger.warning(
                "Grant refused: player %d already holds rewards of mission %d",
                player_id, mission_id,
            )
            return RewardOperationResult(False, ALREADY_HELD)

        data = [player_reward_dict(row, now) for row in granted]
        session.commit()
    return RewardOperationResult(True, "Reward granted successfully", data)


def claim_reward(
    engine, player_id: int, reward_id: int, now: datetime | None = None
) -> RewardOperationResult:
    """Move an ``earned`` reward to ``claimed``.

    An expired grant whose stored status still says ``earned`` is flipped
    to ``expired`` on the way out.
    """
    now = now or utcnow()
    with Session(engine) as session:
        row = RewardRepository(session).get_player_reward(player_id, reward_id)
        if row is None:
            return RewardOperationResult(
                False, f"Reward with ID {reward_id} not found for player {player_id}", found=False
            )
        if row.status == RewardStatus.CLAIMED:
            return RewardOperationResult(False, "Reward has already been claimed")
        if is_expired(row.status, row.expires_at, now):
            if row.status != RewardStatus.EXPIRED:
                row.status = RewardStatus.EXPIRED.value
                session.commit()
            logger.warning("Claim refused: reward %d of player %d expired", reward_id, player_id)
            return RewardOperationResult(False, "Reward has expired and cannot be claimed")

        row.status = RewardStatus.CLAIMED.value
        row.claimed_at = now
        session.flush()
        data = player_reward_dict(row, now)
        session.commit()
    logger.info("Reward %d claimed by player %d", reward_id, player_id)
    return RewardOperationResult(True, "Reward claimed successfully", data)


def expire_rewards(engine, now: datetime | None = None) -> int:
    """Sweep ``earned`` grants whose expiry has passed; returns rows changed."""
    with Session(engine) as session:
        count = RewardRepository(session).mark_expired(now or utcnow())
        session.commit()
    if count:
        logger.info("Expired %d player rewards.", count)
    return count


def list_player_rewards(
    engine,
    player_id: int,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    now = utcnow()
    with Session(engine) as session:
        rows, total = RewardRepository(session).list_player_rewards(player_id, status, page, limit)
        return [player_reward_dict(r, now) for r in rows], total


def list_mission_rewards(engine, mission_id: int) -> list[dict]:
    with Session(engine) as session:
        if session.get(Mission, mission_id) is None:
            raise NotFoundError(f"Mission with ID {mission_id} not found", mission_id=mission_id)
        return [reward_dict(r) for r in RewardRepository(session).find_by_mission(mission_id)]


def list_reward_types(engine) -> list[dict]:
    with Session(engine) as session:
        return [
            {"id": t.id, "name": t.name, "description": t.description}
            for t in RewardRepository(session).list_types()
        ]


def create_reward(
    engine,
    *,
    mission_id: int,
    reward_type_id: int,
    name: str,
    description: str | None = None,
    value: dict | None = None,
    game_id: int | None = None,
) -> dict:
    """Attach a new reward to a mission."""
    with Session(engine) as session:
        mission = MissionRepository(session).get(mission_id)
        if mission is None:
            raise NotFoundError(f"Mission with ID {mission_id} not found", mission_id=mission_id)
        repo = RewardRepository(session)
        if repo.get_type(reward_type_id) is None:
            raise NotFoundError(
                f"Reward type with ID {reward_type_id} not found", reward_type_id=reward_type_id
            )
        reward = repo.create(
            mission_id=mission_id,
            reward_type_id=reward_type_id,
            name=name,
            description=description,
            value=value or {},
            game_id=game_id if game_id is not None else mission.game_id,
        )
        data = reward_dict(reward)
        session.commit()
    logger.info("Reward %d (%s) created for mission %d", data["id"], name, mission_id)
    return data
