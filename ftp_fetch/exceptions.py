"""
Exception hierarchy and error classification for FTP fetching.

This module provides the error kinds raised by the fetch pipeline and the
``ErrorHandler`` utility that converts aioftp and socket failures into those
kinds, depending on the operation that was being performed.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import aioftp


class FTPFetchError(Exception):
    """
    Base exception for all FTP fetch operations.

    Attributes:
        message: Human-readable error message
        url: URL of the resource involved (if applicable)
        ftp_code: FTP reply code returned by the server (if any)
        details: Additional error details as keyword arguments
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        ftp_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.ftp_code = ftp_code
        self.details = kwargs


class AddressError(FTPFetchError, ValueError):
    """
    Raised when a URL or address cannot be turned into an endpoint.

    Raised synchronously, before any network activity, and never retried.
    """

    pass


class ConnectivityError(FTPFetchError):
    """Raised when the control connection cannot be established or is lost."""

    pass


class FTPTimeoutError(ConnectivityError):
    """Raised when an FTP operation exceeds its timeout."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout_value: Optional[float] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.timeout_value = timeout_value
        self.operation = operation


class AuthenticationError(FTPFetchError):
    """Raised when the server rejects the login credentials."""

    pass


class ProtocolNegotiationError(FTPFetchError):
    """Raised when the server rejects a mode or type command, or any other
    command with a permanent reply."""

    pass


class TransferError(FTPFetchError):
    """Raised when the data stream is interrupted mid-copy."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        bytes_transferred: int = 0,
        total_bytes: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, url, **kwargs)
        self.bytes_transferred = bytes_transferred
        self.total_bytes = total_bytes


class RemoteFileNotFoundError(FTPFetchError):
    """Raised when the remote path does not exist or cannot be retrieved."""

    pass


class DecodingError(FTPFetchError, ValueError):
    """Raised when fetched bytes cannot be decoded with the requested encoding."""

    def __init__(self, message: str, encoding: Optional[str] = None) -> None:
        super().__init__(message)
        self.encoding = encoding


def _reply_code(error: aioftp.StatusCodeError) -> Optional[int]:
    """Extract the first received reply code from an aioftp status error."""
    for code in getattr(error, "received_codes", ()) or ():
        try:
            return int(str(code))
        except ValueError:
            continue
    return None


class ErrorHandler:
    """
    Utility class for classifying FTP failures.

    Provides methods to convert aioftp and socket exceptions to error kinds
    and to decide whether a kind should be retried.
    """

    RETRIEVE_OPERATIONS = frozenset({"retrieve", "read"})

    @staticmethod
    def handle_ftp_error(
        error: BaseException, url: Optional[str] = None, operation: Optional[str] = None
    ) -> FTPFetchError:
        """
        Convert an FTP library exception to an FTPFetchError subclass.

        Args:
            error: The original exception
            url: The FTP URL being processed
            operation: The step being performed (connect, login, configure,
                list, retrieve, read, logout, disconnect)

        Returns:
            Appropriate FTPFetchError subclass
        """
        if isinstance(error, FTPFetchError):
            return error

        error_msg = str(error) or type(error).__name__
        retrieving = operation in ErrorHandler.RETRIEVE_OPERATIONS

        if isinstance(error, aioftp.StatusCodeError):
            code = _reply_code(error)
            transient = code is not None and 400 <= code < 500

            if operation == "connect":
                return ConnectivityError(
                    f"FTP server refused connection: {error_msg}", url=url, ftp_code=code
                )
            if operation == "login":
                if transient:
                    return ConnectivityError(
                        f"FTP login temporarily unavailable: {error_msg}",
                        url=url,
                        ftp_code=code,
                    )
                return AuthenticationError(
                    f"FTP authentication failed: {error_msg}", url=url, ftp_code=code
                )
            if retrieving:
                if code == 550:
                    return RemoteFileNotFoundError(
                        f"FTP file not found: {error_msg}", url=url, ftp_code=code
                    )
                if transient:
                    return TransferError(
                        f"FTP transfer aborted: {error_msg}", url=url, ftp_code=code
                    )
            if transient:
                return ConnectivityError(
                    f"FTP temporary error: {error_msg}", url=url, ftp_code=code
                )
            return ProtocolNegotiationError(
                f"FTP command rejected: {error_msg}", url=url, ftp_code=code
            )

        if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
            if retrieving:
                return TransferError(f"FTP transfer timed out: {error_msg}", url=url)
            return FTPTimeoutError(
                f"FTP operation timed out: {error_msg}", url=url, operation=operation
            )

        if isinstance(error, (OSError, EOFError, ConnectionError)):
            if retrieving:
                return TransferError(f"FTP transfer interrupted: {error_msg}", url=url)
            return ConnectivityError(f"FTP connection error: {error_msg}", url=url)

        if isinstance(error, aioftp.AIOFTPException):
            return ProtocolNegotiationError(f"FTP protocol error: {error_msg}", url=url)

        return FTPFetchError(f"Unexpected FTP error: {error_msg}", url=url)

    @staticmethod
    def is_retryable_ftp_error(error: BaseException) -> bool:
        """
        Determine if an FTP error is retryable.

        Only connectivity and transfer failures are retried: repeating a
        rejected login or command with the same input cannot succeed.
        """
        return isinstance(error, (ConnectivityError, TransferError))
