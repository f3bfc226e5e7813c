"""
questline.engine.targeting — Availability, Audience & Prerequisites
====================================================================

Pure checks deciding whether a mission is offered to a player:

  1. ``is_active`` flag
  2. time window (``start_date <= now <= end_date``, nulls unbounded)
  3. audience (``target_type``):
       * ``all``       → everyone
       * ``specific``  → JSON list of player ids in ``target_players``
       * ``filtered``  → not supported yet; always passes
  4. prerequisite mission completed by the same player

Datetimes read back from SQLite come out naive; :func:`as_utc` treats
those as UTC before comparing.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Protocol

from questline.database.models import MissionStatus, TargetType

logger = logging.getLogger(__name__)

__all__ = [
    "as_utc",
    "is_mission_available",
    "is_targeted",
    "is_within_window",
    "parse_target_players",
    "prerequisite_satisfied",
    "utcnow",
]


class Targetable(Protocol):
    is_active: bool
    start_date: datetime | None
    end_date: datetime | None
    target_type: str
    target_players: str | None


# ---------------------------------------------------------------------------
# Clock helpers
# ---------------------------------------------------------------------------
def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------
def is_within_window(
    start: datetime | None, end: datetime | None, now: datetime | None = None
) -> bool:
    now = as_utc(now) or utcnow()
    start, end = as_utc(start), as_utc(end)
    if start is not None and now < start:
        return False
    if end is not None and now > end:
        return False
    return True


def parse_target_players(target_players: str | None) -> list[int] | None:
    """Decode the stored id list; ``None`` when absent or malformed."""
    if not target_players:
        return None
    try:
        ids = json.loads(target_players)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Malformed target_players value: %r", target_players)
        return None
    if not isinstance(ids, list):
        return None
    parsed: list[int] = []
    for item in ids:
        try:
            parsed.append(int(item))
        except (TypeError, ValueError):
            continue
    return parsed


def is_targeted(target_type: str | None, target_players: str | None, player_id: int) -> bool:
    """Return whether *player_id* is in the audience described by the rule."""
    kind = target_type or TargetType.ALL.value
    if kind == TargetType.ALL:
        return True
    if kind == TargetType.SPECIFIC:
        ids = parse_target_players(target_players)
        return ids is not None and player_id in ids
    if kind == TargetType.FILTERED:
        # Filter rules are not evaluated yet; every player passes.
        return True
    logger.warning("Unknown target_type %r, treating as not targeted", kind)
    return False


def is_mission_available(
    mission: Targetable, player_id: int, now: datetime | None = None
) -> bool:
    """Active, inside its window and aimed at *player_id*."""
    if not mission.is_active:
        return False
    if not is_within_window(mission.start_date, mission.end_date, now):
        return False
    return is_targeted(mission.target_type, mission.target_players, player_id)


def prerequisite_satisfied(
    prerequisite_mission_id: int | None, prerequisite_status: str | None
) -> bool:
    """A mission without a prerequisite is always eligible."""
    if prerequisite_mission_id is None:
        return True
    return prerequisite_status == MissionStatus.COMPLETED
