"""
questline.database.seed — Default Settings & Reward Types
==========================================================

Baseline rows seeded on first startup so event processing works out of the
box: the rollup switches in ``settings`` and the standard reward taxonomy in
``reward_types``.

Idempotent — only inserts keys/names that don't already exist.  Values
changed later by an operator are never overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine, select

from questline.database.engine import get_session
from questline.database.models import RewardType, Setting

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Setting keys
# ---------------------------------------------------------------------------
PROCESSING_ENABLED = "events.processing_enabled"
ENFORCE_MISSION_AVAILABILITY = "events.enforce_mission_availability"
RECALCULATE_ON_MISSION_COMPLETE = "leaderboard.recalculate_on_mission_complete"


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    PROCESSING_ENABLED: (
        True, "events", "Master switch for event processing (off = accept and ignore)",
    ),
    ENFORCE_MISSION_AVAILABILITY: (
        False, "events",
        "Only progress tasks whose mission is active, in window and targeted at the player",
    ),
    RECALCULATE_ON_MISSION_COMPLETE: (
        False, "leaderboard", "Refresh every rank after a leaderboard-affecting mission completes",
    ),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


DEFAULT_REWARD_TYPES: dict[str, str] = {
    "badge": "Achievement badge shown on the merchant profile",
    "coupon": "Discount coupon redeemable by the merchant",
    "subscription_benefit": "Temporary subscription upgrade or perk",
    "leaderboard_position": "Recognition tied to a leaderboard placement",
}


# ---------------------------------------------------------------------------
# Seeders
# ---------------------------------------------------------------------------
def seed_default_settings(engine: Engine) -> None:
    """Insert default settings that don't yet exist."""
    inserted = 0
    with get_session(engine) as session:
        for key, (value, category, desc) in DEFAULT_SETTINGS.items():
            if session.get(Setting, key) is None:
                session.add(Setting(
                    key=key,
                    value_json=json.dumps(value),
                    category=category,
                    description=desc,
                ))
                inserted += 1

    if inserted:
        logger.info("Seeded %d default settings.", inserted)


def seed_default_reward_types(engine: Engine) -> None:
    """Insert the standard reward types that don't yet exist."""
    with get_session(engine) as session:
        existing = set(session.scalars(select(RewardType.name)).all())
        missing = [name for name in DEFAULT_REWARD_TYPES if name not in existing]
        for name in missing:
            session.add(RewardType(name=name, description=DEFAULT_REWARD_TYPES[name]))

    if missing:
        logger.info("Seeded %d reward types.", len(missing))
