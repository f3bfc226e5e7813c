"""
questline.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn questline.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from questline import __version__  # noqa: E402
from questline.api.deps import get_engine  # noqa: E402
from questline.api.envelope import install_exception_handlers  # noqa: E402
from questline.api.routes.events import router as events_router  # noqa: E402
from questline.api.routes.games import router as games_router  # noqa: E402
from questline.api.routes.leaderboard import router as leaderboard_router  # noqa: E402
from questline.api.routes.missions import router as missions_router  # noqa: E402
from questline.api.routes.players import router as players_router  # noqa: E402
from questline.api.routes.rewards import router as rewards_router  # noqa: E402
from questline.api.routes.settings import router as settings_router  # noqa: E402
from questline.api.routes.tasks import router as tasks_router  # noqa: E402
from questline.database.engine import init_db, run_db  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — verify the schema and seed defaults."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    engine = get_engine()
    await run_db(init_db, engine)
    logger.info("Questline API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Questline API shutting down")


app = FastAPI(
    title="Questline API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)

# Mount routers
app.include_router(events_router, prefix="/api")
app.include_router(missions_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(rewards_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")
app.include_router(players_router, prefix="/api")
app.include_router(games_router, prefix="/api")
app.include_router(settings_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"success": True, "status": "ok"}
