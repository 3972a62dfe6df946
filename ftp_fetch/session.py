"""
Single connect/authenticate/configure/disconnect lifecycle.

Each step reports a ``StepResult`` instead of raising, and the results of an
attempt are accumulated into a ``SessionReport``. Cleanup (logout and
disconnect) is always attempted, whatever happened before it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .events import EventEmitter, FetchEventType
from .exceptions import ErrorHandler, FTPFetchError
from .models import Credentials, Endpoint, TransferMode
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one session step."""

    step: str
    ok: bool
    message: str = ""
    error: Optional[FTPFetchError] = None


@dataclass
class SessionReport:
    """Accumulated step outcomes of one attempt."""

    steps: List[StepResult] = field(default_factory=list)

    def record(self, result: StepResult) -> StepResult:
        self.steps.append(result)
        return result

    def fail(self, step: str, error: FTPFetchError) -> StepResult:
        return self.record(StepResult(step=step, ok=False, message=str(error), error=error))

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.steps)

    @property
    def first_error(self) -> Optional[FTPFetchError]:
        """Root cause: the error of the earliest failed step."""
        for s in self.steps:
            if not s.ok and s.error is not None:
                return s.error
        return None

    def failed_steps(self) -> List[str]:
        return [s.step for s in self.steps if not s.ok]


class TransportSession:
    """
    Wraps one transport for the duration of a single attempt.

    Args:
        transport: Fresh transport owned by this session
        endpoint: Remote endpoint to connect to
        events: Emitter receiving one event per step
    """

    def __init__(
        self, transport: Transport, endpoint: Endpoint, events: EventEmitter
    ) -> None:
        self.transport = transport
        self.endpoint = endpoint
        self.events = events
        self.connected = False

    def _finish(
        self, step: str, event_type: FetchEventType, error: Optional[BaseException] = None
    ) -> StepResult:
        reply = self.transport.last_diagnostic_message()
        if error is None:
            logger.info(reply or f"{step} ok")
            self.events.emit(event_type, reply, success=True)
            return StepResult(step=step, ok=True, message=reply)

        mapped = ErrorHandler.handle_ftp_error(error, self.endpoint.url, step)
        logger.warning(f"{step} failed for {self.endpoint.url}: {mapped}")
        self.events.emit(
            event_type, str(mapped), success=False, error_kind=type(mapped).__name__
        )
        return StepResult(step=step, ok=False, message=str(mapped), error=mapped)

    async def open(self) -> StepResult:
        """Connect using the endpoint port, or the protocol default."""
        try:
            await self.transport.connect(self.endpoint.host, self.endpoint.port)
        except Exception as e:
            return self._finish("connect", FetchEventType.CONNECT, e)
        self.connected = True
        return self._finish("connect", FetchEventType.CONNECT)

    async def authenticate(self, credentials: Credentials) -> StepResult:
        try:
            await self.transport.login(credentials.username, credentials.password)
        except Exception as e:
            return self._finish("login", FetchEventType.LOGIN, e)
        return self._finish("login", FetchEventType.LOGIN)

    async def configure(self, mode: TransferMode, use_passive_mode: bool) -> StepResult:
        """Apply passive mode, then the transfer representation."""
        try:
            self.transport.set_passive_mode(use_passive_mode)
            await self.transport.set_transfer_mode(mode)
        except Exception as e:
            return self._finish("configure", FetchEventType.MODE_SET, e)
        result = self._finish("configure", FetchEventType.MODE_SET)
        logger.debug(f"Transfer mode {mode.value}, passive={use_passive_mode}")
        return result

    async def close(self) -> StepResult:
        """
        Log out, then disconnect.

        Logout is only sent on a connected session; disconnect is always
        attempted. The returned result fails if either step failed.
        """
        logout_error: Optional[BaseException] = None
        if self.connected:
            try:
                await self.transport.logout()
            except Exception as e:
                logout_error = e
            logout = self._finish("logout", FetchEventType.LOGOUT, logout_error)
        else:
            logout = StepResult(step="logout", ok=True, message="not connected")

        try:
            self.transport.disconnect()
        except Exception as e:
            disconnect = self._finish("disconnect", FetchEventType.DISCONNECT, e)
        else:
            self.events.emit(FetchEventType.DISCONNECT, "disconnected")
            disconnect = StepResult(step="disconnect", ok=True, message="disconnected")
        self.connected = False

        if not logout.ok:
            return logout
        if not disconnect.ok:
            return disconnect
        return StepResult(step="close", ok=True, message=logout.message)
