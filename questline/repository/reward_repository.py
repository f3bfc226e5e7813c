"""questline.repository.reward_repository — Rewards, reward types and granted rewards."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from questline.database.models import PlayerReward, Reward, RewardStatus, RewardType
from questline.repository.base import BaseRepository


class RewardRepository(BaseRepository[Reward]):
    model = Reward

    def create(self, **fields) -> Reward:
        return self.add(Reward(**fields))

    def find_by_mission(self, mission_id: int) -> Sequence[Reward]:
        return self._session.scalars(
            select(Reward).where(Reward.mission_id == mission_id).order_by(Reward.id)
        ).all()

    # -----------------------------------------------------------------------
    # Reward types
    # -----------------------------------------------------------------------
    def get_type(self, type_id: int) -> RewardType | None:
        return self._session.get(RewardType, type_id)

    def list_types(self) -> Sequence[RewardType]:
        return self._session.scalars(select(RewardType).order_by(RewardType.id)).all()

    # -----------------------------------------------------------------------
    # Granted rewards
    # -----------------------------------------------------------------------
    def get_player_reward(self, player_id: int, reward_id: int) -> PlayerReward | None:
        return self._session.get(PlayerReward, (player_id, reward_id))

    def held_reward_ids(self, player_id: int, reward_ids: list[int]) -> set[int]:
        if not reward_ids:
            return set()
        return set(self._session.scalars(
            select(PlayerReward.reward_id).where(
                PlayerReward.player_id == player_id,
                PlayerReward.reward_id.in_(reward_ids),
            )
        ).all())

    def add_player_reward(
        self,
        player_id: int,
        reward: Reward,
        *,
        game_id: int | None,
        earned_at: datetime,
        expires_at: datetime | None,
    ) -> PlayerReward | None:
        """Insert an ``earned`` grant; ``None`` if the player already holds it."""
        row, created = self._insert_or_get(
            PlayerReward(
                player_id=player_id,
                reward_id=reward.id,
                game_id=game_id,
                status=RewardStatus.EARNED.value,
                earned_at=earned_at,
                expires_at=expires_at,
            ),
            (player_id, reward.id),
        )
        return row if created else None

    def list_player_rewards(
        self,
        player_id: int,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[Sequence[PlayerReward], int]:
        stmt = (
            select(PlayerReward)
            .options(selectinload(PlayerReward.reward).selectinload(Reward.reward_type))
            .where(PlayerReward.player_id == player_id)
            .order_by(PlayerReward.earned_at.desc(), PlayerReward.reward_id)
        )
        if status and status != "all":
            stmt = stmt.where(PlayerReward.status == status)
        return self._paginate(stmt, page, limit)

    def mark_expired(self, now: datetime) -> int:
        """Flip every ``earned`` grant past its expiry to ``expired``."""
        result = self._session.execute(
            update(PlayerReward)
            .where(
                PlayerReward.status == RewardStatus.EARNED.value,
                PlayerReward.expires_at.is_not(None),
                PlayerReward.expires_at < now,
            )
            .values(status=RewardStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
