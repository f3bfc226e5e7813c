"""questline.repository.player_repository — Player rows and counters."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import String, cast, or_, select

from questline.database.models import Player
from questline.repository.base import BaseRepository


class PlayerRepository(BaseRepository[Player]):
    model = Player

    def get_or_create(
        self, player_id: int, name: str | None = None, email: str | None = None
    ) -> tuple[Player, bool]:
        """Fetch a player, creating it with zero counters on first sight."""
        player = self.get(player_id)
        if player is not None:
            return player, False
        return self._insert_or_get(
            Player(
                id=player_id,
                name=name or f"Player {player_id}",
                email=email,
                points=0,
                total_points=0,
                tasks_completed=0,
                missions_completed=0,
            ),
            player_id,
        )

    def create(
        self,
        player_id: int,
        name: str,
        email: str | None = None,
        metadata: dict | None = None,
    ) -> Player:
        return self.add(Player(
            id=player_id,
            name=name,
            email=email,
            metadata_=metadata,
            points=0,
            total_points=0,
            tasks_completed=0,
            missions_completed=0,
        ))

    def update(self, player: Player, **fields) -> Player:
        for key, value in fields.items():
            if key == "metadata":
                key = "metadata_"
            setattr(player, key, value)
        self._session.flush()
        return player

    def list(
        self, page: int = 1, limit: int = 10, search: str | None = None
    ) -> tuple[Sequence[Player], int]:
        stmt = select(Player).order_by(Player.id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Player.name.ilike(pattern),
                Player.email.ilike(pattern),
                cast(Player.id, String).like(pattern),
            ))
        return self._paginate(stmt, page, limit)

    def add_points(self, player: Player, points: int) -> Player:
        """Credit both the spendable and the lifetime balance."""
        player.points = (player.points or 0) + points
        player.total_points = (player.total_points or 0) + points
        self._session.flush()
        return player
