"""
lets-listen: Search and play Audius music through a small proxy.

This package provides a proxy gateway for the Audius discovery API and a
playback client that keeps a player in step with what is actually audible.

Architecture:
    gateway/ (server side): Flask proxy
        - Forwards track searches and artist lookups to Audius
        - Reshapes failures into {"error", "details"} envelopes
        - Adds CORS headers, answers OPTIONS preflights
        - Optionally serves a static front-end

    player/ (client side): Playback Session Controller
        - Searches and looks up artists through the gateway
        - Selects a track and resolves a working audio source,
          falling back across four Audius content hosts in fixed order
        - Keeps exactly one UI state visible (idle, loading, error,
          no-results, results) and notifies observers of every change

Modules:
    core/       - Configuration, logging, exceptions
    audius/     - Track/Artist models and the upstream API client
    gateway/    - Proxy gateway
    player/     - Lookup client, session, sources, audio output, controller
    utils/      - Formatting helpers, browser launch
    cli.py      - Command-line interface

Usage:
    Command Line:
        lets-listen serve --open
        lets-listen search "lofi" --limit 5
        lets-listen play "lofi" --index 2

    Python API:
        from lets_listen.player import LookupClient, PlaybackController, StreamProbeOutput

        async with LookupClient("http://127.0.0.1:8000") as lookup:
            controller = PlaybackController(lookup, StreamProbeOutput())
            await controller.search("lofi", limit=5)
            await controller.select_track(0)

Dependencies:
    - flask: Proxy gateway
    - requests: Upstream Audius API client
    - aiohttp: Player lookup client and stream probing
    - pyyaml: Configuration file parsing
    - python-dotenv: .env support for environment overrides
    - colorama, tqdm: Console logging
    - click, rich-click: CLI
"""

__version__ = "1.0.0"
__author__ = "lets-listen"
__license__ = "MIT"

# Convenience imports for common usage
from lets_listen.audius import Artist, AudiusClient, Track
from lets_listen.core import (
    Config,
    ConfigError,
    LetsListenError,
    UpstreamError,
    get_logger,
    load_config,
    setup_logging,
)
from lets_listen.player import LookupClient, PlaybackController

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
    # Exceptions
    "LetsListenError",
    "ConfigError",
    "UpstreamError",
    # Models
    "Artist",
    "Track",
    # Clients
    "AudiusClient",
    "LookupClient",
    "PlaybackController",
]
