"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of questline.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event, select  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from questline.config import QuestlineConfig  # noqa: E402
from questline.database.engine import init_db  # noqa: E402
from questline.database.models import (  # noqa: E402
    EventType,
    Game,
    Mission,
    Reward,
    RewardType,
    Task,
)

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent).

    Also maps BigInteger → INTEGER so autoincrement works on SQLite.
    """
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly.

    pysqlite defers BEGIN until the first DML statement, which turns the
    first ``begin_nested()`` into the outer transaction and makes its
    RELEASE a commit.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Questline tables.

    JSONB columns are transparently mapped to TEXT for SQLite compatibility.
    Uses StaticPool so all threads share the same in-memory database
    (the TestClient runs sync routes in a worker thread).  Default settings
    and reward types are seeded.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_sqlite_savepoints(engine)
    init_db(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def test_config() -> QuestlineConfig:
    return QuestlineConfig(
        service_name="Questline Test",
        default_page_size=10,
        max_page_size=50,
        leaderboard_context_size=2,
    )


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT for use in API integration tests."""
    return make_admin_token()


def make_admin_token(sub: str = "99999", username: str = "FixtureAdmin") -> str:
    """Create an admin JWT.  Usable as both a fixture and a factory function."""
    import jwt

    from questline.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": username, "is_admin": True},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def client(db_engine, test_config):
    """FastAPI TestClient bound to the in-memory engine.

    Not used as a context manager, so the lifespan (which would build the
    real engine from DATABASE_URL) never runs.
    """
    from fastapi.testclient import TestClient

    from questline.api.deps import get_config, get_engine
    from questline.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Builders — insert catalogue rows directly and return their ids
# ---------------------------------------------------------------------------
def add_event(engine: Engine, name: str) -> int:
    with Session(engine) as session:
        row = EventType(name=name)
        session.add(row)
        session.commit()
        return row.id


def add_game(engine: Engine, name: str = "Spring Launch", **fields) -> int:
    with Session(engine) as session:
        row = Game(name=name, **fields)
        session.add(row)
        session.commit()
        return row.id


def add_mission(engine: Engine, name: str = "Onboarding", **fields) -> int:
    with Session(engine) as session:
        row = Mission(name=name, **fields)
        session.add(row)
        session.commit()
        return row.id


def add_task(
    engine: Engine,
    mission_id: int,
    event_id: int,
    name: str = "Task",
    points: int = 10,
    is_optional: bool = False,
    **fields,
) -> int:
    with Session(engine) as session:
        row = Task(
            mission_id=mission_id,
            event_id=event_id,
            name=name,
            points=points,
            is_optional=is_optional,
            **fields,
        )
        session.add(row)
        session.commit()
        return row.id


def add_reward(
    engine: Engine,
    mission_id: int,
    name: str = "Starter Badge",
    type_name: str = "badge",
    value: dict | None = None,
) -> int:
    with Session(engine) as session:
        reward_type = session.scalars(
            select(RewardType).where(RewardType.name == type_name)
        ).one()
        row = Reward(
            mission_id=mission_id,
            reward_type_id=reward_type.id,
            name=name,
            value=value or {},
        )
        session.add(row)
        session.commit()
        return row.id
