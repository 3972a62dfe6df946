"""
Configuration management for ftp_fetch.

Settings come from a YAML/JSON file and ``FTP_FETCH_*`` environment variables.
"""

from .loader import ConfigLoader
from .models import FetchDefaults, GlobalConfig, LoggingConfig, LogLevel

__all__ = [
    "ConfigLoader",
    "FetchDefaults",
    "GlobalConfig",
    "LoggingConfig",
    "LogLevel",
]
