"""questline.repository.game_repository — Games (optional mission grouping)."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select

from questline.database.models import Game
from questline.repository.base import BaseRepository


class GameRepository(BaseRepository[Game]):
    model = Game

    def create(self, **fields) -> Game:
        return self.add(Game(**fields))

    def list(self, active_only: bool = False, page: int = 1, limit: int = 10) -> tuple[Sequence[Game], int]:
        stmt = select(Game).order_by(Game.id)
        if active_only:
            stmt = stmt.where(Game.is_active.is_(True))
        return self._paginate(stmt, page, limit)
