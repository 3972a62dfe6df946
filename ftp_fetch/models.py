"""
Data models for FTP fetching.

This module defines the configuration value types, the endpoint and
credential models, progress information and the internal fetch outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from .exceptions import FTPFetchError
    from .resource import FTPResource


DEFAULT_FTP_PORT = 21
UNKNOWN_SIZE = -1
DEFAULT_TEXT_SUFFIXES: Tuple[str, ...] = (".txt", ".json", ".xml")


class TransferModePolicy(str, Enum):
    """How the transfer representation is chosen."""

    AUTO = "auto"
    TEXT = "text"
    BINARY = "binary"


class TransferMode(str, Enum):
    """Transfer representation negotiated with the server."""

    TEXT = "text"
    BINARY = "binary"

    @property
    def type_command(self) -> str:
        """FTP ``TYPE`` command selecting this representation."""
        return "TYPE A" if self is TransferMode.TEXT else "TYPE I"


class Endpoint(BaseModel):
    """Remote location of a single resource."""

    host: str = Field(min_length=1, description="FTP server hostname")
    port: Optional[int] = Field(
        default=None, ge=1, le=65535, description="Port, protocol default when None"
    )
    path: str = Field(default="", description="Remote path of the resource")

    model_config = ConfigDict(frozen=True)

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Reject blank hostnames."""
        if not v.strip():
            raise ValueError("host cannot be blank")
        return v.strip()

    @property
    def effective_port(self) -> int:
        return self.port if self.port is not None else DEFAULT_FTP_PORT

    @property
    def url(self) -> str:
        """Canonical ``ftp://`` URL, without credentials."""
        netloc = self.host if self.port is None else f"{self.host}:{self.port}"
        path = self.path if self.path.startswith("/") or not self.path else f"/{self.path}"
        return f"ftp://{netloc}{path}"


class Credentials(BaseModel):
    """Login identity. Defaults to the anonymous user with an empty password."""

    username: str = Field(default="anonymous")
    password: str = Field(default="", repr=False)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def anonymous(cls) -> Credentials:
        return cls()

    @property
    def is_anonymous(self) -> bool:
        return self.username == "anonymous"


class FetchConfiguration(BaseModel):
    """
    Immutable configuration consumed by one fetch call.

    Built through the ``with_*`` methods of ``FTPRequest``; every change
    produces a new value, so a running fetch never observes a mutation.
    """

    credentials: Credentials = Field(default_factory=Credentials)
    transfer_mode: TransferModePolicy = Field(
        default=TransferModePolicy.AUTO, description="Transfer representation policy"
    )
    use_passive_mode: bool = Field(default=True, description="Use passive data connections")

    # Retry settings
    max_retries: int = Field(
        default=2, ge=1, description="Total number of attempts per fetch"
    )
    retry_delay: float = Field(
        default=10.0, ge=0, description="Fixed delay between attempts in seconds"
    )

    # Connection settings
    connection_timeout: float = Field(
        default=30.0, gt=0, description="Connection timeout in seconds"
    )
    socket_timeout: float = Field(
        default=60.0, gt=0, description="Socket read timeout in seconds"
    )

    # Progress reporting
    progress_interval_ratio: float = Field(
        default=0.01, gt=0, le=1, description="Report progress every N of total size"
    )
    text_suffixes: Tuple[str, ...] = Field(
        default=DEFAULT_TEXT_SUFFIXES, description="Suffixes transferred as text in AUTO mode"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("text_suffixes")
    @classmethod
    def normalize_suffixes(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Store suffixes lower-cased for case-insensitive matching."""
        return tuple(s.lower() for s in v)


@dataclass(frozen=True)
class RemoteEntry:
    """One entry of a remote metadata listing."""

    name: str
    is_file: bool
    size: Optional[int] = None


@dataclass(frozen=True)
class ProgressState:
    """Progress information for a running transfer."""

    bytes_transferred: int
    total_bytes: Optional[int]
    elapsed: float

    @property
    def fraction(self) -> Optional[float]:
        """Transferred fraction clamped to [0, 1], None when the size is unknown."""
        if self.total_bytes is None or self.total_bytes <= 0:
            return None
        return min(1.0, max(0.0, self.bytes_transferred / self.total_bytes))

    @property
    def eta(self) -> Optional[float]:
        """Estimated seconds remaining, None when it cannot be derived."""
        fraction = self.fraction
        if not fraction:
            return None
        return self.elapsed * (1.0 - fraction) / fraction

    @property
    def percentage(self) -> Optional[float]:
        fraction = self.fraction
        return None if fraction is None else fraction * 100

    @property
    def transfer_rate(self) -> float:
        """Transfer rate in bytes per second."""
        if self.elapsed <= 0:
            return 0.0
        return self.bytes_transferred / self.elapsed


class FetchStatus(str, Enum):
    """Outcome categories of a fetch call."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    TRANSPORT_FAILURE = "transport_failure"
    INPUT_ERROR = "input_error"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of a fetch call, before it is collapsed to present/absent."""

    status: FetchStatus
    endpoint: Optional[Endpoint]
    attempts: int
    elapsed: float
    resource: Optional["FTPResource"] = None
    error: Optional["FTPFetchError"] = None

    @property
    def is_success(self) -> bool:
        return self.status is FetchStatus.SUCCESS and self.resource is not None

    @property
    def error_kind(self) -> Optional[str]:
        return type(self.error).__name__ if self.error is not None else None
