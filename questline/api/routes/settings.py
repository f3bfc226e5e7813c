"""
questline.api.routes.settings — Runtime settings (admin)
=========================================================
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import Engine

from questline.api.deps import get_current_admin, get_engine
from questline.api.envelope import ok
from questline.services import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])
logger = logging.getLogger(__name__)


class SettingUpdate(BaseModel):
    key: str
    value: Any
    category: str | None = None
    description: str | None = None


@router.get("")
def get_all_settings(
    engine: Engine = Depends(get_engine),
    _admin: dict = Depends(get_current_admin),
):
    rows = settings_service.get_all_settings(engine)
    return ok([
        {
            "key": r.key,
            "value": json.loads(r.value_json) if r.value_json else None,
            "category": r.category,
            "description": r.description,
            "updated_at": r.updated_at.isoformat() if r.updated_at else None,
        }
        for r in rows
    ])


@router.put("")
def update_settings(
    body: list[SettingUpdate],
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    items = [
        {
            "key": s.key,
            "value": s.value,
            **({"category": s.category} if s.category else {}),
            **({"description": s.description} if s.description else {}),
        }
        for s in body
    ]
    count = settings_service.bulk_upsert(engine, items)
    logger.info("Admin %s updated %d setting(s)", admin.get("sub"), count)
    return ok({"updated": count})
