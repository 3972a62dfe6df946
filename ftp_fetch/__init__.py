"""
Resilient FTP file fetching into memory.

This package retrieves a single remote file over FTP and exposes it as an
immutable in-memory resource.

Features:
- Fluent, immutable request builder (``load().with_...().from_url(...)``)
- Retry with a fixed delay around the whole connect-transfer-disconnect attempt
- Buffer sizing from the remote file size
- Progress reporting with ETA
- Structured step events for every protocol step
- Async core on aioftp with a blocking facade
"""

from .convenience import ftp_load, ftp_load_sync, load_file_content
from .events import (
    CollectingEventSink,
    EventSink,
    FetchEvent,
    FetchEventType,
    LoggingEventSink,
)
from .exceptions import (
    AddressError,
    AuthenticationError,
    ConnectivityError,
    DecodingError,
    ErrorHandler,
    FTPFetchError,
    FTPTimeoutError,
    ProtocolNegotiationError,
    RemoteFileNotFoundError,
    TransferError,
)
from .models import (
    Credentials,
    Endpoint,
    FetchConfiguration,
    FetchOutcome,
    FetchStatus,
    ProgressState,
    TransferMode,
    TransferModePolicy,
)
from .request import FTPRequest, load
from .resource import FTPResource
from .retry import RetryManager, RetryPolicy
from .transport import AioftpTransport, Transport

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "load",
    "FTPRequest",
    "FTPResource",
    "ftp_load",
    "ftp_load_sync",
    "load_file_content",
    # Models
    "Credentials",
    "Endpoint",
    "FetchConfiguration",
    "FetchOutcome",
    "FetchStatus",
    "ProgressState",
    "TransferMode",
    "TransferModePolicy",
    # Events
    "EventSink",
    "FetchEvent",
    "FetchEventType",
    "LoggingEventSink",
    "CollectingEventSink",
    # Retry and transport
    "RetryManager",
    "RetryPolicy",
    "Transport",
    "AioftpTransport",
    # Exceptions
    "FTPFetchError",
    "AddressError",
    "ConnectivityError",
    "FTPTimeoutError",
    "AuthenticationError",
    "ProtocolNegotiationError",
    "TransferError",
    "RemoteFileNotFoundError",
    "DecodingError",
    "ErrorHandler",
]
