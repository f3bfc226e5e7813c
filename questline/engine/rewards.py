"""
questline.engine.rewards — Reward Expiry Rules
===============================================

A reward's JSON ``value`` may carry ``expirationDays``; a granted reward
expires that many days after it was earned.  Stored ``expired`` status can
lag the clock until the sweep runs, so callers check both.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from questline.database.models import RewardStatus
from questline.engine.targeting import as_utc, utcnow

__all__ = ["compute_expiry", "is_expired"]

EXPIRATION_KEY = "expirationDays"


def compute_expiry(value: dict | None, now: datetime | None = None) -> datetime | None:
    """Return ``now + expirationDays`` or ``None`` when the reward never expires.

    Non-numeric or non-positive ``expirationDays`` means no expiry.
    """
    if not isinstance(value, dict):
        return None
    days = value.get(EXPIRATION_KEY)
    if isinstance(days, bool):
        return None
    try:
        days = float(days)
    except (TypeError, ValueError):
        return None
    if days <= 0:
        return None
    return (as_utc(now) or utcnow()) + timedelta(days=days)


def is_expired(status: str, expires_at: datetime | None, now: datetime | None = None) -> bool:
    if status == RewardStatus.EXPIRED:
        return True
    if expires_at is None:
        return False
    return as_utc(expires_at) < (as_utc(now) or utcnow())
