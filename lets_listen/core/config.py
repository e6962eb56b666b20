"""
Configuration management for lets-listen.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml, with a small set of
environment variable overrides.

The configuration file contains:
    - Audius discovery API location and User-Agent
    - Gateway bind address, port and optional static directory
    - Player defaults (gateway URL, search limit, initial volume)
    - Network timeout (null means wait indefinitely)
    - Log directory and console level

Configuration File Location:
    config.yaml is looked up in the current working directory. Unlike
    credentials-based tools, every setting has a default, so a missing
    file is not an error.

Environment Overrides (a .env file is honored via python-dotenv):
    PORT                     -> gateway.port
    LETS_LISTEN_ENV/NODE_ENV -> gateway.environment
    AUDIUS_API_URL           -> audius.api_url
    LETS_LISTEN_GATEWAY_URL  -> player.gateway_url

Example config.yaml:
    audius:
      api_url: "https://discoveryprovider.audius.co/v1"

    gateway:
      host: "127.0.0.1"
      port: 8000
      static_dir: "./public"
      open_browser: true

    player:
      gateway_url: "http://127.0.0.1:8000"
      search_limit: 20
      volume: 0.5

    network:
      timeout: null

    logging:
      directory: "~/.lets-listen/logs"
      level: "INFO"
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from lets_listen.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_API_URL = "https://discoveryprovider.audius.co/v1"
DEFAULT_USER_AGENT = "Audius-Music-Search/1.0.0"
DEFAULT_PORT = 8000

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AudiusConfig:
    """
    Upstream Audius discovery API settings.

    Attributes:
        api_url: Base URL of the discovery provider, without trailing slash.
        user_agent: User-Agent header sent with every upstream request.
    """
    api_url: str = DEFAULT_API_URL
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class GatewayConfig:
    """
    Proxy gateway settings.

    Attributes:
        host: Interface the gateway binds to.
        port: TCP port. Default 8000.
        static_dir: Optional directory of front-end files served at '/'.
        open_browser: Open the default browser once the gateway is listening.
        environment: 'production' or 'development'. Development exposes
                     internal error details in 500 responses.
    """
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    static_dir: Path | None = None
    open_browser: bool = False
    environment: str = "production"


@dataclass(frozen=True)
class PlayerConfig:
    """
    Playback client settings.

    Attributes:
        gateway_url: Base URL of the gateway the lookup client talks to.
        search_limit: Number of tracks requested per search.
        volume: Initial output volume in [0.0, 1.0].
    """
    gateway_url: str = f"http://127.0.0.1:{DEFAULT_PORT}"
    search_limit: int = 20
    volume: float = 0.5


@dataclass(frozen=True)
class NetworkConfig:
    """
    Network behavior.

    Attributes:
        timeout: Seconds to wait for upstream calls and play attempts.
                 None waits indefinitely.
    """
    timeout: float | None = None


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging settings.

    Attributes:
        directory: Directory for log files. None disables file logging.
        level: Console log level name.
    """
    directory: Path | None = None
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Gateway on port {config.gateway.port}")
    """
    audius: AudiusConfig = field(default_factory=AudiusConfig)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml and the environment.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory
                     and falls back to defaults when it does not exist.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is missing, the YAML is invalid,
                     or any field has an invalid value.

    Behavior:
        1. Load .env into the process environment (existing variables win)
        2. Locate config file (explicit path or CWD/config.yaml)
        3. Parse YAML into a dictionary (empty file means defaults)
        4. Apply environment overrides
        5. Validate and parse each section
        6. Return frozen Config object
    """
    load_dotenv()

    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        raw_config = _read_yaml(config_path)
    elif explicit:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    _apply_environment(raw_config, os.environ)

    return Config(
        audius=_parse_audius_config(_section(raw_config, "audius")),
        gateway=_parse_gateway_config(_section(raw_config, "gateway")),
        player=_parse_player_config(_section(raw_config, "player")),
        network=_parse_network_config(_section(raw_config, "network")),
        logging=_parse_logging_config(_section(raw_config, "logging")),
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """
    Return a section of the raw configuration, validating its type.

    A missing or null section yields an empty dictionary.
    """
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _apply_environment(raw_config: dict[str, Any], environ: Any) -> None:
    """
    Overlay environment variables onto the raw configuration in place.

    Args:
        raw_config: Dictionary parsed from config.yaml (mutated).
        environ: Mapping of environment variables, usually os.environ.
    """
    overrides = [
        ("PORT", "gateway", "port"),
        ("NODE_ENV", "gateway", "environment"),
        ("LETS_LISTEN_ENV", "gateway", "environment"),
        ("AUDIUS_API_URL", "audius", "api_url"),
        ("LETS_LISTEN_GATEWAY_URL", "player", "gateway_url"),
    ]

    for variable, section, key in overrides:
        value = environ.get(variable)
        if not value:
            continue
        if key == "port":
            try:
                value = int(value)
            except ValueError as e:
                raise ConfigError(
                    f"Environment variable {variable} must be an integer",
                    details={"variable": variable, "value": value}
                ) from e
        target = raw_config.get(section)
        if not isinstance(target, dict):
            target = {}
            raw_config[section] = target
        target[key] = value


def _require_string(section: dict[str, Any], key: str, name: str, default: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{name}' must be a non-empty string",
            details={"field": name}
        )
    return value.strip()


def _parse_audius_config(section: dict[str, Any]) -> AudiusConfig:
    """
    Parse the 'audius' section.

    Raises:
        ConfigError: If api_url is not an http(s) URL or user_agent is empty.
    """
    api_url = _require_string(section, "api_url", "audius.api_url", DEFAULT_API_URL)
    if not api_url.startswith(("http://", "https://")):
        raise ConfigError(
            "'audius.api_url' must be an http(s) URL",
            details={"field": "audius.api_url", "value": api_url}
        )

    user_agent = _require_string(section, "user_agent", "audius.user_agent", DEFAULT_USER_AGENT)

    return AudiusConfig(api_url=api_url.rstrip("/"), user_agent=user_agent)


def _parse_gateway_config(section: dict[str, Any]) -> GatewayConfig:
    """
    Parse the 'gateway' section.

    Expands ~ in static_dir and checks the directory exists.

    Raises:
        ConfigError: If port is out of range, static_dir does not exist,
                     or open_browser is not a boolean.
    """
    host = _require_string(section, "host", "gateway.host", "127.0.0.1")

    port = section.get("port", DEFAULT_PORT)
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        raise ConfigError(
            "'gateway.port' must be an integer between 1 and 65535",
            details={"field": "gateway.port", "value": port}
        )

    static_dir = None
    raw_static = section.get("static_dir")
    if raw_static is not None:
        if not isinstance(raw_static, str) or not raw_static.strip():
            raise ConfigError(
                "'gateway.static_dir' must be a non-empty string or null",
                details={"field": "gateway.static_dir"}
            )
        static_dir = Path(raw_static.strip()).expanduser().resolve()
        if not static_dir.is_dir():
            raise ConfigError(
                f"Static directory not found: {static_dir}",
                details={"field": "gateway.static_dir", "path": str(static_dir)}
            )

    open_browser = section.get("open_browser", False)
    if not isinstance(open_browser, bool):
        raise ConfigError(
            "'gateway.open_browser' must be true or false",
            details={"field": "gateway.open_browser", "value": open_browser}
        )

    environment = _require_string(section, "environment", "gateway.environment", "production")

    return GatewayConfig(
        host=host,
        port=port,
        static_dir=static_dir,
        open_browser=open_browser,
        environment=environment.lower()
    )


def _parse_player_config(section: dict[str, Any]) -> PlayerConfig:
    """
    Parse the 'player' section.

    Raises:
        ConfigError: If search_limit is not a positive integer or volume
                     is outside [0.0, 1.0].
    """
    gateway_url = _require_string(
        section, "gateway_url", "player.gateway_url", PlayerConfig.gateway_url
    )

    search_limit = section.get("search_limit", PlayerConfig.search_limit)
    if isinstance(search_limit, bool) or not isinstance(search_limit, int) or search_limit < 1:
        raise ConfigError(
            "'player.search_limit' must be a positive integer",
            details={"field": "player.search_limit", "value": search_limit}
        )

    volume = section.get("volume", PlayerConfig.volume)
    if isinstance(volume, bool) or not isinstance(volume, (int, float)) or not 0.0 <= volume <= 1.0:
        raise ConfigError(
            "'player.volume' must be a number between 0.0 and 1.0",
            details={"field": "player.volume", "value": volume}
        )

    return PlayerConfig(
        gateway_url=gateway_url.rstrip("/"),
        search_limit=search_limit,
        volume=float(volume)
    )


def _parse_network_config(section: dict[str, Any]) -> NetworkConfig:
    """
    Parse the 'network' section.

    Raises:
        ConfigError: If timeout is neither null nor a positive number.
    """
    timeout = section.get("timeout")
    if timeout is None:
        return NetworkConfig()

    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(
            "'network.timeout' must be a positive number of seconds or null",
            details={"field": "network.timeout", "value": timeout}
        )

    return NetworkConfig(timeout=float(timeout))


def _parse_logging_config(section: dict[str, Any]) -> LoggingConfig:
    """
    Parse the 'logging' section.

    Raises:
        ConfigError: If level is not a standard logging level name.
    """
    directory = None
    raw_directory = section.get("directory")
    if raw_directory is not None:
        if not isinstance(raw_directory, str) or not raw_directory.strip():
            raise ConfigError(
                "'logging.directory' must be a non-empty string or null",
                details={"field": "logging.directory"}
            )
        directory = Path(raw_directory.strip()).expanduser().resolve()

    level = section.get("level", "INFO")
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    return LoggingConfig(directory=directory, level=level.upper())
