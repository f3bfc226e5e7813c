"""
questline.api.envelope — Response Envelope & Error Handlers
============================================================

Every response has the shape::

    {"success": bool, "message"?: str, "data"?: ..., "pagination"?: {...}}

Unhandled exceptions become a 500 with a generic message; the exception
itself is only logged.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from questline.services.exceptions import (
    ConflictError,
    EventNotRegisteredError,
    InvalidPayloadError,
    NotFoundError,
    QuestlineError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def ok(data: Any = None, message: str | None = None) -> dict:
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def paginated(items: list, page: int, limit: int, total: int) -> dict:
    return {
        "success": True,
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }


def fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------
_DOMAIN_STATUS: list[tuple[type[QuestlineError], int]] = [
    (EventNotRegisteredError, status.HTTP_404_NOT_FOUND),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidPayloadError, status.HTTP_400_BAD_REQUEST),
]


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Validation error: " + "; ".join(parts) if parts else "Validation error"


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return fail(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return fail(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(QuestlineError)
    async def _domain_error(request: Request, exc: QuestlineError):
        for exc_type, code in _DOMAIN_STATUS:
            if isinstance(exc, exc_type):
                logger.info("%s %s → %d: %s", request.method, request.url.path, code, exc.message)
                return fail(code, exc.message)
        logger.error("Unmapped domain error on %s: %s", request.url.path, exc.message)
        return fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
