"""
Shared test fixtures and an in-memory FTP transport for the ftp_fetch test suite.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import pytest

from ftp_fetch import CollectingEventSink, load
from ftp_fetch.logging import cleanup_logging
from ftp_fetch.models import FetchConfiguration, RemoteEntry, TransferMode

PATTERN_2048 = bytes(i % 251 for i in range(2048))


class FakeSource:
    """Byte source serving fixed content, optionally failing mid-stream."""

    def __init__(
        self,
        data: bytes,
        fail_after: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        self.data = data
        self.position = 0
        self.fail_after = fail_after
        self.error = error
        self.read_sizes: List[int] = []

    async def read(self, count: int = -1) -> bytes:
        self.read_sizes.append(count)
        if self.fail_after is not None and self.position >= self.fail_after:
            raise self.error or ConnectionResetError("connection reset by peer")
        end = len(self.data) if count < 0 else self.position + count
        if self.fail_after is not None:
            end = min(end, self.fail_after)
        chunk = self.data[self.position:end]
        self.position += len(chunk)
        return chunk


class FakeTransport:
    """Transport double recording every call; failures are scripted by the server."""

    def __init__(self, server: "FakeFTPServer", attempt: int) -> None:
        self.server = server
        self.attempt = attempt
        self.calls: List[str] = []
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        self.credentials = None
        self.passive_mode: Optional[bool] = None
        self.mode: Optional[TransferMode] = None
        self.listed: List[str] = []
        self.source: Optional[FakeSource] = None
        self._last_message = ""

    def _step(self, name: str, reply: str) -> None:
        self.calls.append(name)
        error = self.server.error_for(self.attempt, name)
        if error is not None:
            self._last_message = str(error)
            raise error
        self._last_message = reply

    async def connect(self, host: str, port: Optional[int] = None) -> None:
        self.host, self.port = host, port
        self._step("connect", f"220 {host} ready")

    async def login(self, username: str, password: str) -> None:
        self.credentials = (username, password)
        self._step("login", f"230 User {username} logged in")

    def set_passive_mode(self, enabled: bool) -> None:
        self.passive_mode = enabled
        self._step("passive", "227 Entering passive mode")

    async def set_transfer_mode(self, mode: TransferMode) -> None:
        self.mode = mode
        self._step("mode", f"200 {mode.type_command} ok")

    async def list_path(self, path: str) -> List[RemoteEntry]:
        self.listed.append(path)
        self._step("list", f"Listed {path}")
        if self.server.entries is not None:
            return list(self.server.entries)
        return [RemoteEntry(name=path.rsplit("/", 1)[-1], is_file=True, size=self.server.size)]

    @asynccontextmanager
    async def open_read_stream(self, path: str):
        self._step("retrieve", f"150 Opening data connection for {path}")
        fail_after = self.server.read_failures.get(self.attempt)
        self.source = FakeSource(self.server.content, fail_after=fail_after)
        yield self.source
        self._last_message = "226 Transfer complete"

    async def logout(self) -> None:
        self._step("logout", "221 Goodbye")

    def disconnect(self) -> None:
        self._step("disconnect", "")

    def last_diagnostic_message(self) -> str:
        return self._last_message


class FakeFTPServer:
    """
    Scripted remote side. Builds one ``FakeTransport`` per attempt.

    ``fail(step, error, attempts)`` makes ``step`` raise ``error`` on the
    given attempt numbers (every attempt when ``attempts`` is None).
    """

    def __init__(
        self,
        content: bytes = b"",
        size: Optional[int] = None,
        entries: Optional[List[RemoteEntry]] = None,
    ) -> None:
        self.content = content
        self.size = len(content) if size is None else size
        self.entries = entries
        self.transports: List[FakeTransport] = []
        self.read_failures: Dict[int, int] = {}
        self._failures: List[tuple] = []

    def fail(self, step: str, error: BaseException, attempts=None) -> "FakeFTPServer":
        self._failures.append((step, error, None if attempts is None else set(attempts)))
        return self

    def fail_reading(self, after_bytes: int, attempts) -> "FakeFTPServer":
        for attempt in attempts:
            self.read_failures[attempt] = after_bytes
        return self

    def error_for(self, attempt: int, step: str) -> Optional[BaseException]:
        for failing_step, error, attempts in self._failures:
            if failing_step == step and (attempts is None or attempt in attempts):
                return error
        return None

    def factory(self, config: FetchConfiguration, endpoint) -> FakeTransport:
        transport = FakeTransport(self, len(self.transports) + 1)
        self.transports.append(transport)
        return transport

    @property
    def attempts(self) -> int:
        return len(self.transports)


@pytest.fixture
def events() -> CollectingEventSink:
    return CollectingEventSink()


@pytest.fixture
def server() -> FakeFTPServer:
    """Server holding a 2048-byte file with a known pattern."""
    return FakeFTPServer(PATTERN_2048)


@pytest.fixture
def make_request(events):
    """Build a request wired to a fake server, with no retry delay."""

    def _make(fake: FakeFTPServer, **config_changes):
        request = (
            load()
            .with_transport_factory(fake.factory)
            .with_event_sink(events)
            .with_progress_callback(None)
            .with_retry_delay(0)
        )
        if config_changes:
            data = request.config.model_dump()
            data.update(config_changes)
            request = request.with_configuration(FetchConfiguration(**data))
        return request

    return _make


@pytest.fixture(autouse=True)
def reset_logging():
    """Detach handlers installed by tests that configure logging."""
    yield
    cleanup_logging()
    logging.getLogger().setLevel(logging.WARNING)


@pytest.fixture
def pattern() -> bytes:
    """The 2048-byte content served by ``server``."""
    return PATTERN_2048


@pytest.fixture
def make_server():
    """Factory for scripted servers with custom content or listings."""
    return FakeFTPServer
