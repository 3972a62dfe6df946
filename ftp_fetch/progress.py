"""
Progress-instrumented streaming copy with ETA estimation.

This module provides the duration/ETA measurement used for progress
reporting and the copier that moves bytes from a data connection into an
in-memory sink while reporting progress at a fixed byte cadence.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, BinaryIO, Callable, Optional, Union

from .exceptions import ErrorHandler, FTPFetchError, TransferError
from .models import UNKNOWN_SIZE, ProgressState
from .transport import ByteSource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressState], Union[None, Awaitable[None]]]
Sink = Union[bytearray, BinaryIO]

DEFAULT_UNKNOWN_SIZE_INTERVAL = 1024 * 1024
DEFAULT_CHUNK_SIZE = 64 * 1024


def format_duration(seconds: Optional[float]) -> str:
    """Render seconds as ``"1h 02m 03s"``; unknown durations render as ``"--"``."""
    if seconds is None or seconds < 0:
        return "--"
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h {minutes:02d}m {secs:02d}s"


class DurationMeasurement:
    """Elapsed-time capture with ETA derivation."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._start: Optional[float] = None

    def start(self) -> DurationMeasurement:
        self._start = self._clock()
        return self

    @property
    def elapsed(self) -> float:
        if self._start is None:
            return 0.0
        return max(0.0, self._clock() - self._start)

    def eta(self, fraction: Optional[float]) -> Optional[float]:
        """Seconds remaining given the completed fraction, None if undefined."""
        if not fraction or fraction <= 0:
            return None
        fraction = min(1.0, fraction)
        return self.elapsed * (1.0 - fraction) / fraction


def default_interval(total_size: int, ratio: float = 0.01) -> int:
    """Byte cadence for progress reports: ``ratio`` of the size, or 1 MiB if unknown."""
    if total_size is None or total_size <= 0:
        return DEFAULT_UNKNOWN_SIZE_INTERVAL
    return max(1, int(round(total_size * ratio)))


def log_progress(state: ProgressState) -> None:
    """Default progress reporter writing one INFO line per report."""
    if state.fraction is None:
        logger.info(f"Progress: {state.bytes_transferred} bytes transferred")
        return
    logger.info(
        f"Progress: {round(state.fraction * 100)}% ETA: {format_duration(state.eta)} "
        f"( {state.bytes_transferred} / {state.total_bytes} bytes )"
    )


class ProgressCopier:
    """
    Copies a byte source into a sink, reporting progress as it goes.

    Args:
        buffer_size: Size of each read from the source
        clock: Time source for elapsed/ETA computation
        url: URL reported in transfer errors
    """

    def __init__(
        self,
        buffer_size: int = DEFAULT_CHUNK_SIZE,
        clock: Callable[[], float] = time.monotonic,
        url: Optional[str] = None,
    ) -> None:
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        self.buffer_size = buffer_size
        self.clock = clock
        self.url = url

    @staticmethod
    def _append(sink: Sink, chunk: bytes) -> None:
        if isinstance(sink, bytearray):
            sink.extend(chunk)
        else:
            sink.write(chunk)

    async def copy(
        self,
        source: ByteSource,
        sink: Sink,
        total_size: int = UNKNOWN_SIZE,
        interval_bytes: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> int:
        """
        Stream ``source`` into ``sink``.

        Args:
            source: Readable data connection
            sink: In-memory accumulator
            total_size: Expected size in bytes, ``UNKNOWN_SIZE`` if unknown
            interval_bytes: Report after roughly this many new bytes
            on_progress: Sync or async callback receiving a ``ProgressState``

        Returns:
            Number of bytes copied

        Raises:
            TransferError: If reading the source or writing the sink fails
        """
        total = total_size if total_size is not None and total_size > 0 else None
        interval = interval_bytes if interval_bytes and interval_bytes > 0 else default_interval(
            total_size
        )
        measurement = DurationMeasurement(self.clock).start()
        copied = 0
        next_report = interval
        last_reported = 0

        while True:
            try:
                chunk = await source.read(self.buffer_size)
            except Exception as e:
                mapped = ErrorHandler.handle_ftp_error(e, self.url, "read")
                raise self._as_transfer_error(mapped, copied, total) from e
            if not chunk:
                break

            try:
                self._append(sink, chunk)
            except Exception as e:
                raise TransferError(
                    f"Failed to store transferred data: {e}",
                    url=self.url,
                    bytes_transferred=copied,
                    total_bytes=total,
                ) from e
            copied += len(chunk)

            if on_progress is not None and copied >= next_report:
                await self._report(on_progress, copied, total, measurement)
                last_reported = copied
                while next_report <= copied:
                    next_report += interval

        if on_progress is not None and copied > last_reported:
            await self._report(on_progress, copied, total, measurement)

        return copied

    def _as_transfer_error(
        self, error: FTPFetchError, copied: int, total: Optional[int]
    ) -> FTPFetchError:
        if isinstance(error, TransferError):
            error.bytes_transferred = copied
            error.total_bytes = total
            return error
        return TransferError(
            f"FTP transfer interrupted: {error}",
            url=self.url,
            bytes_transferred=copied,
            total_bytes=total,
        )

    @staticmethod
    async def _report(
        on_progress: ProgressCallback,
        copied: int,
        total: Optional[int],
        measurement: DurationMeasurement,
    ) -> None:
        state = ProgressState(
            bytes_transferred=copied, total_bytes=total, elapsed=measurement.elapsed
        )
        await invoke_progress_callback(on_progress, state)


async def invoke_progress_callback(callback: ProgressCallback, state: ProgressState) -> None:
    """Call a sync or async progress callback."""
    if asyncio.iscoroutinefunction(callback):
        await callback(state)
    else:
        result = callback(state)
        if asyncio.iscoroutine(result):
            await result
