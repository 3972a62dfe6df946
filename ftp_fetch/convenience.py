"""
Convenience functions for one-call FTP fetching.

These wrap ``load()`` for the common cases and provide a blocking facade
for callers that are not running an event loop.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import io
from typing import Any, Awaitable, Optional, TypeVar

from .models import Credentials, FetchConfiguration
from .progress import ProgressCallback, log_progress
from .request import load
from .resource import FTPResource

T = TypeVar("T")


def _run_sync(coro: Awaitable[T]) -> T:
    """Run a coroutine to completion from synchronous code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # Already inside an event loop: run on a fresh loop in a worker thread
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()
    return asyncio.run(coro)


async def ftp_load(
    url: str,
    config: Optional[FetchConfiguration] = None,
    progress_callback: Optional[ProgressCallback] = log_progress,
) -> Optional[FTPResource]:
    """
    Convenience function to fetch a single FTP file into memory.

    Args:
        url: FTP URL of the file, optionally with ``user:password@``
        config: Optional fetch configuration
        progress_callback: Optional callback for progress updates

    Returns:
        The resource, or None if the file could not be fetched

    Raises:
        AddressError: If the URL is malformed
    """
    return await load(config).with_progress_callback(progress_callback).from_url(url)


def ftp_load_sync(
    url: str,
    config: Optional[FetchConfiguration] = None,
    progress_callback: Optional[ProgressCallback] = log_progress,
) -> Optional[FTPResource]:
    """Blocking variant of ``ftp_load``."""
    return _run_sync(ftp_load(url, config, progress_callback))


def load_file_content(url: str, **overrides: Any) -> Optional[io.BytesIO]:
    """
    Fetch a file once, anonymously, and return its content as a stream.

    No retry is performed. ``overrides`` are applied to the configuration,
    e.g. ``connection_timeout=5``.

    Returns:
        A ``BytesIO`` positioned at the start, or None on any failure

    Raises:
        AddressError: If the URL is malformed
    """
    settings = {"max_retries": 1, "retry_delay": 0.0, "credentials": Credentials.anonymous()}
    settings.update(overrides)
    config = FetchConfiguration(**settings)

    resource = _run_sync(load(config).from_url(url))
    return resource.as_stream() if resource is not None else None
