"""questline.repository.event_repository — Event types and the event log."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select

from questline.database.models import EventLog, EventType
from questline.repository.base import BaseRepository


class EventRepository(BaseRepository[EventType]):
    model = EventType

    def get_by_name(self, name: str) -> EventType | None:
        return self._session.scalar(select(EventType).where(EventType.name == name))

    def list_all(self) -> Sequence[EventType]:
        return self._session.scalars(select(EventType).order_by(EventType.name)).all()

    def create(self, name: str, description: str | None = None) -> EventType:
        return self.add(EventType(name=name, description=description))

    # -----------------------------------------------------------------------
    # Event log
    # -----------------------------------------------------------------------
    def log_event(
        self,
        player_id: int,
        event_id: int,
        game_id: int | None,
        payload: dict | None,
    ) -> EventLog:
        log = EventLog(
            player_id=player_id,
            event_id=event_id,
            game_id=game_id,
            payload=payload,
            processed=False,
        )
        self._session.add(log)
        self._session.flush()
        return log

    def mark_processed(self, log: EventLog) -> None:
        log.processed = True
        self._session.flush()

    def list_logs(
        self, player_id: int | None = None, page: int = 1, limit: int = 10
    ) -> tuple[Sequence[EventLog], int]:
        stmt = select(EventLog).order_by(EventLog.id.desc())
        if player_id is not None:
            stmt = stmt.where(EventLog.player_id == player_id)
        return self._paginate(stmt, page, limit)
