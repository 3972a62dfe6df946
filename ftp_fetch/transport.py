"""
FTP transport capability and its aioftp implementation.

The fetch pipeline talks to the remote server only through the ``Transport``
protocol defined here, so tests and alternative clients can stand in for
the real network client.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import PurePosixPath
from typing import (
    Any,
    AsyncContextManager,
    AsyncIterator,
    Iterable,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

import aioftp

from .exceptions import ErrorHandler
from .models import DEFAULT_FTP_PORT, RemoteEntry, TransferMode

logger = logging.getLogger(__name__)


@runtime_checkable
class ByteSource(Protocol):
    """Readable side of a data connection."""

    async def read(self, count: int = -1) -> bytes:
        """Read up to ``count`` bytes; an empty result means end of stream."""
        ...


@runtime_checkable
class Transport(Protocol):
    """Protocol defining the FTP client capability used by a fetch attempt.

    Every method raises an ``FTPFetchError`` subclass on failure.
    """

    async def connect(self, host: str, port: Optional[int] = None) -> None:
        """Open the control connection, on the protocol default port when None."""
        ...

    async def login(self, username: str, password: str) -> None:
        ...

    def set_passive_mode(self, enabled: bool) -> None:
        ...

    async def set_transfer_mode(self, mode: TransferMode) -> None:
        """Select the transfer representation and stream transfer mode."""
        ...

    async def list_path(self, path: str) -> List[RemoteEntry]:
        """Return the metadata listing of exactly ``path``."""
        ...

    def open_read_stream(self, path: str) -> AsyncContextManager[ByteSource]:
        """Open a data connection reading the remote file."""
        ...

    async def logout(self) -> None:
        ...

    def disconnect(self) -> None:
        ...

    def last_diagnostic_message(self) -> str:
        """Reply text of the most recent server interaction."""
        ...


def _safe_int(value: Any) -> Optional[int]:
    try:
        if value is None:
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip() != "":
            return int(value)
    except ValueError:
        return None
    return None


def _format_reply(code: Any, info: Iterable[str]) -> str:
    text = " ".join(line.strip() for line in info if line and line.strip())
    return f"{code} {text}".strip()


class AioftpTransport:
    """
    ``Transport`` backed by ``aioftp.Client``.

    One instance serves exactly one attempt: connect, transfer, disconnect.
    aioftp only opens passive data connections, so asking for active mode
    logs a warning and the transfer continues passively.
    """

    def __init__(
        self,
        connection_timeout: Optional[float] = 30.0,
        socket_timeout: Optional[float] = 60.0,
        url: Optional[str] = None,
    ) -> None:
        self.connection_timeout = connection_timeout
        self.socket_timeout = socket_timeout
        self.url = url
        self.passive_mode = True
        self.transfer_mode = TransferMode.BINARY
        self._client: Optional[aioftp.Client] = None
        self._last_message = ""

    @property
    def client(self) -> aioftp.Client:
        if self._client is None:
            self._client = aioftp.Client(
                connection_timeout=self.connection_timeout,
                socket_timeout=self.socket_timeout,
            )
        return self._client

    async def _command(self, command: str, expected: str, operation: str) -> None:
        try:
            code, info = await self.client.command(command, expected)
        except Exception as e:
            self._last_message = str(e)
            raise ErrorHandler.handle_ftp_error(e, self.url, operation) from e
        self._last_message = _format_reply(code, info)

    async def connect(self, host: str, port: Optional[int] = None) -> None:
        try:
            info = await self.client.connect(host, port if port is not None else DEFAULT_FTP_PORT)
        except Exception as e:
            self._last_message = str(e)
            raise ErrorHandler.handle_ftp_error(e, self.url, "connect") from e
        self._last_message = _format_reply("220", info or [])

    async def login(self, username: str, password: str) -> None:
        try:
            await self.client.login(username, password)
        except Exception as e:
            self._last_message = str(e)
            raise ErrorHandler.handle_ftp_error(e, self.url, "login") from e
        self._last_message = f"230 User {username} logged in"

    def set_passive_mode(self, enabled: bool) -> None:
        if not enabled:
            logger.warning(
                "Active FTP mode requested but aioftp only supports passive "
                "data connections; continuing in passive mode"
            )
        self.passive_mode = enabled

    async def set_transfer_mode(self, mode: TransferMode) -> None:
        await self._command(mode.type_command, "200", "configure")
        await self._command("MODE S", "200", "configure")
        # aioftp re-sends TYPE before every data connection
        self.transfer_mode = mode

    async def list_path(self, path: str) -> List[RemoteEntry]:
        # MLST on the path itself; aioftp falls back to listing the parent
        try:
            info = await self.client.stat(path)
        except Exception as e:
            self._last_message = str(e)
            raise ErrorHandler.handle_ftp_error(e, self.url, "list") from e

        entry = RemoteEntry(
            name=PurePosixPath(path).name,
            is_file=info.get("type") == "file",
            size=_safe_int(info.get("size")),
        )
        self._last_message = f"Listed 1 entry for {path}"
        return [entry]

    @asynccontextmanager
    async def open_read_stream(self, path: str) -> AsyncIterator[ByteSource]:
        conn_type = "A" if self.transfer_mode is TransferMode.TEXT else "I"
        try:
            stream = await self.client.get_stream("RETR " + path, "1xx", conn_type=conn_type)
        except Exception as e:
            self._last_message = str(e)
            raise ErrorHandler.handle_ftp_error(e, self.url, "retrieve") from e

        self._last_message = f"150 Opening data connection for {path}"
        try:
            yield stream
        except BaseException:
            stream.close()
            raise
        try:
            await stream.finish()
        except Exception as e:
            self._last_message = str(e)
            raise ErrorHandler.handle_ftp_error(e, self.url, "retrieve") from e
        self._last_message = f"226 Transfer complete for {path}"

    async def logout(self) -> None:
        await self._command("QUIT", "2xx", "logout")

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def last_diagnostic_message(self) -> str:
        return self._last_message
