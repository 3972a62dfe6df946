"""
Configuration models for ftp_fetch.

This module defines the configuration data models with validation and defaults.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import (
    DEFAULT_TEXT_SUFFIXES,
    Credentials,
    FetchConfiguration,
    TransferModePolicy,
)


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Default logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    file_path: Optional[Path] = Field(default=None, description="Log file path")
    max_file_size: int = Field(
        default=10 * 1024 * 1024, gt=0, description="Max log file size in bytes"
    )
    backup_count: int = Field(default=5, ge=0, description="Number of backup log files")
    enable_console: bool = Field(default=True, description="Enable console logging")
    enable_file: bool = Field(default=False, description="Enable file logging")
    enable_structured: bool = Field(
        default=False, description="Enable structured JSON logging"
    )
    mask_credentials: bool = Field(default=True, description="Mask passwords in logs")

    # Component-specific log levels, e.g. {"ftp_fetch.progress": "WARNING"}
    component_levels: Dict[str, LogLevel] = Field(
        default_factory=dict, description="Per-component log levels"
    )


class FetchDefaults(BaseModel):
    """Default settings applied to requests built from a loaded configuration."""

    username: str = Field(default="anonymous", description="Login user")
    password: str = Field(default="", repr=False, description="Login password")
    transfer_mode: TransferModePolicy = Field(
        default=TransferModePolicy.AUTO, description="Transfer representation policy"
    )
    passive_mode: bool = Field(default=True, description="Use passive data connections")
    max_retries: int = Field(default=2, ge=1, description="Total attempts per fetch")
    retry_delay: float = Field(default=10.0, ge=0, description="Delay between attempts")
    connection_timeout: float = Field(default=30.0, gt=0, description="Connect timeout")
    socket_timeout: float = Field(default=60.0, gt=0, description="Read timeout")
    progress_interval_ratio: float = Field(default=0.01, gt=0, le=1)
    text_suffixes: List[str] = Field(default_factory=lambda: list(DEFAULT_TEXT_SUFFIXES))

    @field_validator("transfer_mode", mode="before")
    @classmethod
    def normalize_mode(cls, v: Any) -> Any:
        """Accept mode names in any case."""
        return v.lower() if isinstance(v, str) else v

    @field_validator("text_suffixes", mode="before")
    @classmethod
    def split_suffixes(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    def to_configuration(self) -> FetchConfiguration:
        """Build the immutable per-fetch configuration from these defaults."""
        return FetchConfiguration(
            credentials=Credentials(username=self.username, password=self.password),
            transfer_mode=self.transfer_mode,
            use_passive_mode=self.passive_mode,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            connection_timeout=self.connection_timeout,
            socket_timeout=self.socket_timeout,
            progress_interval_ratio=self.progress_interval_ratio,
            text_suffixes=tuple(self.text_suffixes),
        )


class GlobalConfig(BaseModel):
    """Global configuration container."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    fetch: FetchDefaults = Field(default_factory=FetchDefaults)

    model_config = ConfigDict(validate_assignment=True, extra="forbid")
