"""
questline.services.exceptions — Domain Exceptions
==================================================

Raised for conditions the caller must handle; routes map them to HTTP
status codes.  Rule violations a player can trigger in normal use (skip a
required task, claim an expired reward) are returned as structured results
instead.
"""

from __future__ import annotations

from typing import Any


class QuestlineError(Exception):
    """Base class for every Questline domain error.

    Keyword arguments are kept on ``context`` for logging.
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class InvalidPayloadError(QuestlineError):
    """An event payload is missing its name or actor, or has bad types."""


class EventNotRegisteredError(QuestlineError):
    """The event name in a payload has no registered event type."""

    def __init__(self, event_name: str) -> None:
        super().__init__(
            f'Event "{event_name}" is not registered in the system',
            event=event_name,
        )
        self.event_name = event_name


class NotFoundError(QuestlineError):
    """A referenced row does not exist."""


class ConflictError(QuestlineError):
    """A create would violate a uniqueness rule (duplicate event name, ...)."""
