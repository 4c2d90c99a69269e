# src/genchat/observer.py
"""
Diagnostics for chat sessions.

A chat session reports what a caller cannot see through its own return
values (blocked responses, failures inside background history bookkeeping)
as structured `SessionEvent` records handed to an injected
`SessionObserver`. The default `LoggingObserver` writes them to the
standard library logger; `CallbackObserver` forwards them to arbitrary
callables, which is also how tests capture them.
"""

from __future__ import annotations

import abc
import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Event severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def from_string(cls, value: str) -> Severity:
        """Parse severity from string (case-insensitive)."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.INFO

    def to_logging_level(self) -> int:
        return {
            Severity.DEBUG: logging.DEBUG,
            Severity.INFO: logging.INFO,
            Severity.WARNING: logging.WARNING,
            Severity.ERROR: logging.ERROR,
        }[self]


class SessionEventType(str, Enum):
    """Kinds of events a chat session emits."""

    RESPONSE_BLOCKED = "response_blocked"  # Valid call, withheld content
    HISTORY_UPDATE_FAILED = "history_update_failed"  # Background admission failed


class SessionEvent(BaseModel):
    """
    Structured diagnostic record emitted by a chat session.

    Attributes:
        event_type: What happened.
        severity: How serious it is.
        method: The session method the event belongs to ("send_message", ...).
        message: Human readable description.
        model: Model name of the session.
        data: Event-specific payload.
        error: The exception behind the event, if any.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    event_type: SessionEventType
    severity: Severity = Field(default=Severity.WARNING)
    method: str
    message: str
    model: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    error: BaseException | None = Field(default=None, exclude=True)


class SessionObserver(abc.ABC):
    """Receives the diagnostics of one or more chat sessions."""

    @abc.abstractmethod
    def notify(self, event: SessionEvent) -> None:
        """
        Handle one event. Called on the event loop thread; must not block.
        """


class LoggingObserver(SessionObserver):
    """
    Writes session events to a standard library logger.

    Events at WARNING or above are tagged ``display=True`` so they reach the
    console even when `genchat.logging_config` keeps it quiet.
    """

    def __init__(self, logger_name: str = "genchat.chat_session", display: bool = True):
        self._logger = logging.getLogger(logger_name)
        self._display = display

    def notify(self, event: SessionEvent) -> None:
        level = event.severity.to_logging_level()
        extra = {"display": True} if self._display and level >= logging.WARNING else None
        if event.error is not None:
            self._logger.log(
                level,
                event.message,
                exc_info=(type(event.error), event.error, event.error.__traceback__),
                extra=extra,
            )
        else:
            self._logger.log(level, event.message, extra=extra)


class CallbackObserver(SessionObserver):
    """
    Forwards session events to registered callbacks.

    A failing callback is logged and skipped; it never affects the session.
    """

    def __init__(self, *callbacks: Callable[[SessionEvent], None]):
        self._callbacks: list[Callable[[SessionEvent], None]] = list(callbacks)

    def add_callback(self, callback: Callable[[SessionEvent], None]) -> None:
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[SessionEvent], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def notify(self, event: SessionEvent) -> None:
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Session event callback failed: {e}", exc_info=True)
