"""
Fluent FTP request builder and the single-attempt fetch pipeline.

This module provides ``load()``, the entry point for fetching a remote file
into memory, and ``FTPRequest``, an immutable builder whose ``with_*``
methods each return a new request. The terminal ``from_*`` and ``fetch*``
methods are the only places that touch the network.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Union

from .events import EventEmitter, EventSink, FetchEventType, LoggingEventSink
from .exceptions import (
    AddressError,
    ErrorHandler,
    FTPFetchError,
    RemoteFileNotFoundError,
)
from .models import (
    Credentials,
    Endpoint,
    FetchConfiguration,
    FetchOutcome,
    FetchStatus,
    ProgressState,
    TransferModePolicy,
)
from .progress import (
    ProgressCallback,
    ProgressCopier,
    default_interval,
    invoke_progress_callback,
    log_progress,
)
from .resource import FTPResource
from .retry import RetryAttempt, RetryManager, RetryPolicy
from .session import SessionReport, StepResult, TransportSession
from .sizing import derive_buffer_size, estimate_size, resolve_mode
from .transport import AioftpTransport, Transport
from .url import build_endpoint, parse_ftp_url

logger = logging.getLogger(__name__)

TransportFactory = Callable[[FetchConfiguration, Endpoint], Transport]


def default_transport_factory(config: FetchConfiguration, endpoint: Endpoint) -> Transport:
    """Create a fresh aioftp-backed transport for one attempt."""
    return AioftpTransport(
        connection_timeout=config.connection_timeout,
        socket_timeout=config.socket_timeout,
        url=endpoint.url,
    )


@dataclass(frozen=True)
class FTPRequest:
    """
    Immutable description of how to fetch a remote file.

    Example:
        ```python
        resource = await (
            load()
            .with_credentials("user", "secret")
            .with_file_type(TransferModePolicy.BINARY)
            .with_number_of_retries(3)
            .from_url("ftp://ftp.example.org/pub/archive.bin")
        )
        if resource is not None:
            data = resource.as_bytes()
        ```
    """

    config: FetchConfiguration = field(default_factory=FetchConfiguration)
    transport_factory: TransportFactory = default_transport_factory
    event_sink: Optional[EventSink] = field(default_factory=LoggingEventSink)
    progress_callback: Optional[ProgressCallback] = log_progress

    # Configuration

    def _with_config(self, **changes: Any) -> FTPRequest:
        data = self.config.model_dump()
        data.update(changes)
        return replace(self, config=FetchConfiguration(**data))

    def with_configuration(self, config: FetchConfiguration) -> FTPRequest:
        return replace(self, config=config)

    def with_username(self, username: str) -> FTPRequest:
        return self._with_config(
            credentials=Credentials(
                username=username, password=self.config.credentials.password
            )
        )

    def with_password(self, password: str) -> FTPRequest:
        return self._with_config(
            credentials=Credentials(
                username=self.config.credentials.username, password=password
            )
        )

    def with_credentials(self, username: str, password: str) -> FTPRequest:
        return self._with_config(credentials=Credentials(username=username, password=password))

    def with_anonymous_credentials(self) -> FTPRequest:
        return self._with_config(credentials=Credentials.anonymous())

    def with_file_type(self, policy: Union[TransferModePolicy, str]) -> FTPRequest:
        """Choose text, binary, or suffix-based (AUTO) transfer representation."""
        return self._with_config(transfer_mode=TransferModePolicy(policy))

    with_transfer_mode = with_file_type

    def with_passive_mode(self, enabled: bool = True) -> FTPRequest:
        return self._with_config(use_passive_mode=enabled)

    with_receive_using_passive_mode = with_passive_mode

    def with_number_of_retries(self, retries: int) -> FTPRequest:
        """Set the total number of attempts (at least 1)."""
        return self._with_config(max_retries=retries)

    def with_retry_delay(self, seconds: float) -> FTPRequest:
        return self._with_config(retry_delay=seconds)

    def with_timeouts(
        self,
        connection_timeout: Optional[float] = None,
        socket_timeout: Optional[float] = None,
    ) -> FTPRequest:
        changes = {}
        if connection_timeout is not None:
            changes["connection_timeout"] = connection_timeout
        if socket_timeout is not None:
            changes["socket_timeout"] = socket_timeout
        return self._with_config(**changes)

    def with_progress_callback(self, callback: Optional[ProgressCallback]) -> FTPRequest:
        return replace(self, progress_callback=callback)

    def with_event_sink(self, sink: Optional[EventSink]) -> FTPRequest:
        return replace(self, event_sink=sink)

    def with_transport_factory(self, factory: TransportFactory) -> FTPRequest:
        return replace(self, transport_factory=factory)

    # Addressing

    async def from_url(self, url: str) -> Optional[FTPResource]:
        """
        Fetch the file named by an ``ftp://`` URL.

        Credentials embedded in the URL take precedence over configured ones.

        Returns:
            The resource, or None when the fetch failed for any network or
            server reason (details go to the event sink and the log)

        Raises:
            AddressError: If the URL is malformed; raised before any connection
        """
        endpoint, credentials = parse_ftp_url(url)
        outcome = await self.fetch(endpoint, credentials)
        return outcome.resource

    async def from_host(self, host: str, path: str) -> Optional[FTPResource]:
        """Fetch ``path`` from ``host`` on the default FTP port."""
        outcome = await self.fetch(build_endpoint(host, None, path))
        return outcome.resource

    async def from_address(
        self, host: str, port: Optional[int], path: str = ""
    ) -> Optional[FTPResource]:
        """Fetch ``path`` from ``host:port``; a None or negative port means default."""
        outcome = await self.fetch(build_endpoint(host, port, path))
        return outcome.resource

    async def fetch_url(self, url: str) -> FetchOutcome:
        """Like ``from_url`` but returns the full outcome, including input errors."""
        try:
            endpoint, credentials = parse_ftp_url(url)
        except AddressError as e:
            logger.warning(f"Rejected FTP URL {url!r}: {e}")
            return FetchOutcome(
                status=FetchStatus.INPUT_ERROR,
                endpoint=None,
                attempts=0,
                elapsed=0.0,
                error=e,
            )
        return await self.fetch(endpoint, credentials)

    # Pipeline

    async def fetch(
        self, endpoint: Endpoint, credentials: Optional[Credentials] = None
    ) -> FetchOutcome:
        """
        Run the retrying fetch for one endpoint.

        Returns:
            ``FetchOutcome`` whose status distinguishes success, missing file
            and transport failure
        """
        config = self.config
        credentials = credentials or config.credentials
        events = EventEmitter(self.event_sink, endpoint.url)
        attempts = 0

        async def attempt() -> FTPResource:
            nonlocal attempts
            attempts += 1
            events.attempt = attempts
            return await self._attempt(endpoint, credentials, events)

        def on_retry(failed: RetryAttempt, delay: float) -> None:
            events.emit(
                FetchEventType.RETRY,
                f"Attempt {failed.attempt_number} failed: {failed.error}; retrying in {delay:.1f}s",
                success=False,
                delay=delay,
                error_kind=type(failed.error).__name__,
            )

        manager = RetryManager(
            RetryPolicy(max_attempts=config.max_retries, delay=config.retry_delay),
            on_retry=on_retry,
        )
        started = time.monotonic()
        try:
            resource = await manager.run(attempt, operation_key=f"fetch {endpoint.url}")
        except FTPFetchError as e:
            status = (
                FetchStatus.NOT_FOUND
                if isinstance(e, RemoteFileNotFoundError)
                else FetchStatus.TRANSPORT_FAILURE
            )
            outcome = FetchOutcome(
                status=status,
                endpoint=endpoint,
                attempts=attempts,
                elapsed=time.monotonic() - started,
                error=e,
            )
        else:
            outcome = FetchOutcome(
                status=FetchStatus.SUCCESS,
                endpoint=endpoint,
                attempts=attempts,
                elapsed=time.monotonic() - started,
                resource=resource,
            )

        logger.info(f"Success:{outcome.is_success} ({endpoint.url}, {attempts} attempt(s))")
        events.emit(
            FetchEventType.OUTCOME,
            outcome.status.value if outcome.error is None else f"{outcome.status.value}: {outcome.error}",
            success=outcome.is_success,
            status=outcome.status.value,
            attempts=attempts,
            error_kind=outcome.error_kind,
        )
        return outcome

    async def _attempt(
        self, endpoint: Endpoint, credentials: Credentials, events: EventEmitter
    ) -> FTPResource:
        """
        One connect-through-disconnect sequence.

        Steps after a failed prerequisite are skipped, but the session is
        always closed. The attempt yields a resource only if every step,
        including logout, succeeded.
        """
        config = self.config
        transport = self.transport_factory(config, endpoint)
        session = TransportSession(transport, endpoint, events)
        report = SessionReport()
        buffer = bytearray()

        if report.record(await session.open()).ok:
            if report.record(await session.authenticate(credentials)).ok:
                mode = resolve_mode(config.transfer_mode, endpoint.path, config.text_suffixes)
                if report.record(await session.configure(mode, config.use_passive_mode)).ok:
                    await self._transfer(transport, endpoint, events, buffer, report)
        report.record(await session.close())

        if not report.ok:
            error = report.first_error or FTPFetchError(
                f"Fetch failed at {', '.join(report.failed_steps())}", url=endpoint.url
            )
            logger.info(f"Attempt {events.attempt} for {endpoint.url} failed: {error}")
            raise error
        return FTPResource(buffer)

    async def _transfer(
        self,
        transport: Transport,
        endpoint: Endpoint,
        events: EventEmitter,
        buffer: bytearray,
        report: SessionReport,
    ) -> None:
        path = endpoint.path
        size = await estimate_size(transport, path)
        buffer_size = derive_buffer_size(size)
        interval = default_interval(size, self.config.progress_interval_ratio)
        logger.info(f"File size: {size}")
        events.emit(
            FetchEventType.SIZE_QUERY,
            f"File size: {size}",
            size=size,
            buffer_size=buffer_size,
        )

        callback = self.progress_callback

        async def on_progress(state: ProgressState) -> None:
            events.emit(
                FetchEventType.PROGRESS,
                f"{state.bytes_transferred} bytes",
                bytes_transferred=state.bytes_transferred,
                total_bytes=state.total_bytes,
                fraction=state.fraction,
                eta=state.eta,
            )
            if callback is None:
                return
            try:
                await invoke_progress_callback(callback, state)
            except Exception as e:
                # Base error kind: never retried
                raise FTPFetchError(
                    f"Progress callback failed: {e}", url=endpoint.url
                ) from e

        copier = ProgressCopier(buffer_size=buffer_size, url=endpoint.url)
        events.emit(FetchEventType.TRANSFER_START, transport.last_diagnostic_message(), path=path)
        try:
            async with transport.open_read_stream(path) as source:
                copied = await copier.copy(source, buffer, size, interval, on_progress)
        except Exception as e:
            error = ErrorHandler.handle_ftp_error(e, endpoint.url, "retrieve")
            logger.warning(f"Exception fetching file content: {path}: {error}")
            buffer.clear()
            report.fail("retrieve", error)
            events.emit(
                FetchEventType.TRANSFER_COMPLETE,
                str(error),
                success=False,
                error_kind=type(error).__name__,
            )
            return

        report.record(StepResult(step="retrieve", ok=True, message=transport.last_diagnostic_message()))
        events.emit(
            FetchEventType.TRANSFER_COMPLETE,
            transport.last_diagnostic_message(),
            bytes_transferred=copied,
        )


def load(config: Optional[FetchConfiguration] = None) -> FTPRequest:
    """
    Start building an FTP request.

    Args:
        config: Initial configuration; defaults to anonymous, AUTO mode,
            passive, 2 attempts, 10s delay
    """
    return FTPRequest(config=config or FetchConfiguration())
