"""
questline.repository.base — Session-scoped Repository Base
===========================================================

Repositories wrap ORM queries for one aggregate.  They run inside the
caller's :class:`~sqlalchemy.orm.Session` and never commit; the service
that opened the session owns the transaction.  Database errors propagate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from questline.database.models import Base

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=Base)


class BaseRepository(Generic[M]):
    """Base class for all repositories.

    Subclasses set :attr:`model` to the ORM class they manage.
    """

    model: type[M]

    def __init__(self, session: Session) -> None:
        self._session = session

    # -----------------------------------------------------------------------
    # Generic access
    # -----------------------------------------------------------------------
    def get(self, pk: Any) -> M | None:
        return self._session.get(self.model, pk)

    def add(self, obj: M) -> M:
        self._session.add(obj)
        self._session.flush()
        return obj

    def delete(self, obj: M) -> None:
        self._session.delete(obj)
        self._session.flush()

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------
    def _insert_or_get(
        self, obj: M, pk: Any, lookup: Callable[[], M | None] | None = None
    ) -> tuple[M, bool]:
        """Insert *obj* inside a SAVEPOINT; on a key collision return the
        row that won the race instead.

        The winner is fetched by primary key *pk*, or by *lookup* for rows
        whose uniqueness is on a natural key.  Returns ``(row, created)``.
        """
        try:
            with self._session.begin_nested():   # SAVEPOINT
                self._session.add(obj)
                self._session.flush()
        except IntegrityError:
            # Concurrent insert won; the SAVEPOINT was rolled back and the
            # outer transaction is still alive.
            logger.debug("Insert race on %s %r, reusing existing row", self.model.__name__, pk)
            existing = lookup() if lookup is not None else self._session.get(self.model, pk)
            if existing is None:
                raise
            return existing, False
        return obj, True

    def _paginate(
        self, stmt: Select, page: int, limit: int, *, scalars: bool = True
    ) -> tuple[Sequence[Any], int]:
        """Run *stmt* for one page and count the full result.

        *page* is 1-based.  With ``scalars=False`` rows are returned as
        tuples (for multi-entity selects).
        """
        total = self._session.scalar(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ) or 0
        paged = stmt.offset((page - 1) * limit).limit(limit)
        if scalars:
            items = self._session.scalars(paged).all()
        else:
            items = self._session.execute(paged).all()
        return items, total
