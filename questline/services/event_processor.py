"""
questline.services.event_processor — Event → Progress Rollup
=============================================================

Entry point for every inbound event.  One call runs one transaction:

    0. kill switch (``events.processing_enabled``): off means a no-op success
    1. get-or-create the player
    2. resolve the event type by name (unknown ⇒ EventNotRegisteredError)
    3. active tasks subscribed to the event (game-scoped, optionally
       availability-filtered)
    4. per task: complete → mission rollup → rewards / leaderboard
    5. event log row, marked processed
    6. commit

Any exception rolls the whole rollup back; a retried event starts from a
clean slate and the per-task idempotency check keeps re-sends harmless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from questline.database.seed import ENFORCE_MISSION_AVAILABILITY, PROCESSING_ENABLED
from questline.engine.events import EventPayload
from questline.engine.targeting import is_mission_available, utcnow
from questline.repository import EventRepository, PlayerRepository, TaskRepository
from questline.services.exceptions import EventNotRegisteredError
from questline.services.progress_service import CascadeOutcome, complete_and_cascade
from questline.services.settings_service import get_bool_setting, upsert_setting

logger = logging.getLogger(__name__)


@dataclass
class EventProcessingResult:
    success: bool
    message: str
    event: str
    player_id: int
    game_id: int | None = None
    outcome: CascadeOutcome = field(default_factory=CascadeOutcome)
    skipped: bool = False
    event_log_id: int | None = None

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "event": self.event,
            "player_id": self.player_id,
            "game_id": self.game_id,
            "skipped": self.skipped,
            "event_log_id": self.event_log_id,
            **self.outcome.as_dict(),
        }


# ---------------------------------------------------------------------------
# Kill switch
# ---------------------------------------------------------------------------
def get_processing_enabled(engine) -> bool:
    with Session(engine) as session:
        return get_bool_setting(session, PROCESSING_ENABLED, True)


def set_processing_enabled(engine, enabled: bool) -> bool:
    upsert_setting(engine, key=PROCESSING_ENABLED, value=bool(enabled), category="events")
    logger.warning("Event processing %s", "enabled" if enabled else "DISABLED")
    return bool(enabled)


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------
def process_event(
    engine, payload: EventPayload, now: datetime | None = None
) -> EventProcessingResult:
    """Run the full rollup for one event and commit it.

    Raises
    ------
    EventNotRegisteredError
        If ``payload.event`` names no registered event type.  Nothing is
        written.
    """
    now = now or utcnow()
    result = EventProcessingResult(
        success=True,
        message="Event processed successfully",
        event=payload.event,
        player_id=payload.player_id,
        game_id=payload.game_id,
    )

    with Session(engine) as session:
        if not get_bool_setting(session, PROCESSING_ENABLED, True):
            logger.info("Event processing disabled; ignoring %r for player %d",
                        payload.event, payload.player_id)
            result.skipped = True
            result.message = "Event processing is disabled"
            return result

        try:
            player, created = PlayerRepository(session).get_or_create(
                payload.player_id, payload.name, payload.email
            )
            if created:
                logger.info("New player %d created from event %r", player.id, payload.event)

            events = EventRepository(session)
            event_type = events.get_by_name(payload.event)
            if event_type is None:
                raise EventNotRegisteredError(payload.event)

            log = events.log_event(player.id, event_type.id, payload.game_id, payload.raw)

            tasks = TaskRepository(session).find_active_by_event(event_type.id, payload.game_id)
            if tasks and get_bool_setting(session, ENFORCE_MISSION_AVAILABILITY, False):
                tasks = [t for t in tasks if is_mission_available(t.mission, player.id, now)]

            if not tasks:
                result.message = "No tasks matched this event"
            for task in tasks:
                result.outcome.merge(
                    complete_and_cascade(session, player, task, now, payload.game_id)
                )

            events.mark_processed(log)
            result.event_log_id = log.id
            session.commit()
        except Exception:
            session.rollback()
            raise

    logger.info(
        "Event %r player=%d: %d task(s), %d mission update(s), %d reward(s)",
        payload.event, payload.player_id,
        len(result.outcome.task_updates),
        len(result.outcome.mission_updates),
        len(result.outcome.reward_updates),
    )
    return result
