"""
Structured step events emitted by the fetch pipeline.

Every step of an attempt (connect, login, mode negotiation, size query,
progress ticks, logout, disconnect, final outcome) is reported as a
``FetchEvent`` to an injected sink. The pipeline never depends on what the
sink does with the event: a failing sink is logged and otherwise ignored.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class FetchEventType(str, Enum):
    """Kinds of pipeline events."""

    CONNECT = "connect"
    LOGIN = "login"
    MODE_SET = "mode_set"
    SIZE_QUERY = "size_query"
    TRANSFER_START = "transfer_start"
    PROGRESS = "progress"
    TRANSFER_COMPLETE = "transfer_complete"
    LOGOUT = "logout"
    DISCONNECT = "disconnect"
    RETRY = "retry"
    OUTCOME = "outcome"


@dataclass(frozen=True)
class FetchEvent:
    """A single step-level observation."""

    type: FetchEventType
    url: str
    success: bool = True
    message: str = ""
    attempt: int = 1
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def as_log_extra(self) -> Dict[str, Any]:
        """Flatten the event into ``extra`` fields for structured logging."""
        extra = {
            "event": self.type.value,
            "url": self.url,
            "success": self.success,
            "attempt": self.attempt,
        }
        extra.update({f"detail_{k}": v for k, v in self.details.items()})
        return extra


@runtime_checkable
class EventSink(Protocol):
    """Anything that accepts pipeline events."""

    def emit(self, event: FetchEvent) -> None:
        ...


class LoggingEventSink:
    """Route events to a logger; failures are logged at WARNING."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._logger = log or logging.getLogger("ftp_fetch.events")

    def emit(self, event: FetchEvent) -> None:
        level = logging.INFO if event.success else logging.WARNING
        if event.type is FetchEventType.PROGRESS:
            level = logging.DEBUG if event.success else level
        message = f"[{event.type.value}] {event.message}" if event.message else f"[{event.type.value}]"
        self._logger.log(level, message, extra=event.as_log_extra())


class CollectingEventSink:
    """Keep events in memory. Safe to share between concurrent fetches."""

    def __init__(self) -> None:
        self._events: List[FetchEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: FetchEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[FetchEvent]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: FetchEventType) -> List[FetchEvent]:
        return [e for e in self.events if e.type is event_type]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class EventEmitter:
    """Binds a sink to one fetch call and shields the pipeline from sink errors."""

    def __init__(self, sink: Optional[EventSink], url: str) -> None:
        self._sink = sink
        self.url = url
        self.attempt = 1

    def emit(
        self,
        event_type: FetchEventType,
        message: str = "",
        success: bool = True,
        **details: Any,
    ) -> None:
        if self._sink is None:
            return
        event = FetchEvent(
            type=event_type,
            url=self.url,
            success=success,
            message=message,
            attempt=self.attempt,
            details=details,
        )
        try:
            self._sink.emit(event)
        except Exception:
            logger.exception(f"Event sink failed on {event_type.value} event")
