"""
Remote size estimation, buffer sizing and transfer-mode resolution.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .exceptions import FTPFetchError
from .models import (
    DEFAULT_TEXT_SUFFIXES,
    UNKNOWN_SIZE,
    TransferMode,
    TransferModePolicy,
)
from .transport import Transport

logger = logging.getLogger(__name__)

MIN_BUFFER_SIZE = 1024
MAX_BUFFER_SIZE = 256 * 1024 * 1024


async def estimate_size(transport: Transport, path: str) -> int:
    """
    Estimate the size of a remote file from its metadata listing.

    Returns:
        The size in bytes when the listing of ``path`` holds exactly one
        regular file of known size, otherwise ``UNKNOWN_SIZE`` (-1).
    """
    try:
        entries = await transport.list_path(path)
    except FTPFetchError as e:
        logger.info(f"Size query for {path} failed, size unknown: {e}")
        return UNKNOWN_SIZE

    if len(entries) != 1:
        return UNKNOWN_SIZE
    entry = entries[0]
    if not entry.is_file or entry.size is None or entry.size < 0:
        return UNKNOWN_SIZE
    return entry.size


def derive_buffer_size(size_estimate: int) -> int:
    """Clamp a size estimate into [1 KiB, 256 MiB]; unknown sizes get the floor."""
    return max(MIN_BUFFER_SIZE, min(MAX_BUFFER_SIZE, size_estimate))


def resolve_mode(
    policy: TransferModePolicy,
    path: str,
    text_suffixes: Optional[Iterable[str]] = None,
) -> TransferMode:
    """
    Resolve a transfer-mode policy for a remote path.

    AUTO picks text for known text suffixes (case-insensitive) and binary
    for everything else.
    """
    policy = TransferModePolicy(policy)
    if policy is TransferModePolicy.TEXT:
        return TransferMode.TEXT
    if policy is TransferModePolicy.BINARY:
        return TransferMode.BINARY

    suffixes = tuple(
        s.lower() for s in (text_suffixes if text_suffixes is not None else DEFAULT_TEXT_SUFFIXES)
    )
    if path.lower().endswith(suffixes):
        return TransferMode.TEXT
    return TransferMode.BINARY
