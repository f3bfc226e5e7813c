"""
questline.api.routes.tasks — Task reads, skip & explicit complete
==================================================================

Rule violations (skip a required task, complete twice) answer 200 with
``success: false``; only a missing task is a 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from questline.api.deps import Page, get_engine, get_page
from questline.api.envelope import fail, ok, paginated
from questline.database.models import TaskStatus
from questline.services import task_service
from questline.services.task_service import TaskOperationResult

router = APIRouter(prefix="/tasks", tags=["tasks"])


class PlayerAction(BaseModel):
    player_id: int = Field(ge=1)


def _operation_response(result: TaskOperationResult):
    if not result.found:
        return fail(404, result.message)
    body = result.as_dict()
    message = body.pop("message")
    success = body.pop("success")
    return {"success": success, "message": message, "data": body}


@router.get("")
def list_tasks(
    player_id: int = Query(..., ge=1),
    mission_id: int | None = Query(None, ge=1),
    status: TaskStatus | None = Query(None),
    paging: Page = Depends(get_page),
    engine: Engine = Depends(get_engine),
):
    items, total = task_service.list_player_tasks(
        engine,
        player_id,
        mission_id=mission_id,
        status=status.value if status else None,
        page=paging.page,
        limit=paging.limit,
    )
    return paginated(items, paging.page, paging.limit, total)


@router.get("/{task_id}")
def get_task(
    task_id: int,
    player_id: int = Query(..., ge=1),
    engine: Engine = Depends(get_engine),
):
    data = task_service.get_task_for_player(engine, player_id, task_id)
    if data is None:
        raise HTTPException(404, f"Task with ID {task_id} not found")
    return ok(data)


@router.patch("/{task_id}/skip")
def skip_task(task_id: int, body: PlayerAction, engine: Engine = Depends(get_engine)):
    return _operation_response(task_service.skip_task(engine, body.player_id, task_id))


@router.post("/{task_id}/complete")
def complete_task(task_id: int, body: PlayerAction, engine: Engine = Depends(get_engine)):
    return _operation_response(task_service.complete_task(engine, body.player_id, task_id))
