"""
Core module for lets-listen.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs

Usage:
    from lets_listen.core import (
        Config, load_config,
        setup_logging, get_logger,
        LetsListenError, UpstreamError
    )
"""

from lets_listen.core.config import (
    AudiusConfig,
    Config,
    GatewayConfig,
    LoggingConfig,
    NetworkConfig,
    PlayerConfig,
    load_config,
)
from lets_listen.core.exceptions import (
    BadRequestError,
    ConfigError,
    InvalidIndexError,
    LetsListenError,
    NoSourceError,
    NoWorkingSourceError,
    PlaybackError,
    UnavailableError,
    UpstreamError,
    UpstreamFormatError,
)
from lets_listen.core.logger import (
    get_logger,
    log_playback_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "AudiusConfig",
    "GatewayConfig",
    "PlayerConfig",
    "NetworkConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "LetsListenError",
    "ConfigError",
    "BadRequestError",
    "UpstreamError",
    "UpstreamFormatError",
    "UnavailableError",
    "NoSourceError",
    "NoWorkingSourceError",
    "PlaybackError",
    "InvalidIndexError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_playback_failure",
    "shutdown_logging",
]
