"""
Playback client for lets-listen.

This package provides the client side of the application:
    - lookup: Async search/artist lookup client for the gateway
    - session: PlaybackSession, SessionState and UI states
    - sources: Ordered fallback content hosts and candidate URLs
    - audio: AudioOutput interface and the headless StreamProbeOutput
    - controller: PlaybackController (selection, fallback chain, transport)
    - commands: Command dispatch table for views
    - view: SessionObserver interface, the console view and playback progress

Usage:
    from lets_listen.player import (
        LookupClient, StreamProbeOutput, PlaybackController, ConsoleView
    )

    async with LookupClient(config.player.gateway_url) as lookup:
        controller = PlaybackController(lookup, StreamProbeOutput(), observers=[ConsoleView()])
        await controller.search("lofi", limit=5)
        await controller.select_track(0)
"""

from lets_listen.player.audio import AudioOutput, StreamProbeOutput
from lets_listen.player.commands import CommandDispatcher
from lets_listen.player.controller import PlaybackController
from lets_listen.player.lookup import LookupClient
from lets_listen.player.session import (
    PLACEHOLDER_ARTWORK,
    NowPlaying,
    PlaybackSession,
    SessionState,
    UIState,
)
from lets_listen.player.sources import (
    FALLBACK_HOSTS,
    ResolvedSource,
    audius_stream_source,
    content_url,
    fallback_candidates,
)
from lets_listen.player.view import ConsoleView, SessionObserver, follow_playback

__all__ = [
    # Client
    "LookupClient",
    # Session
    "PlaybackSession",
    "SessionState",
    "NowPlaying",
    "UIState",
    "PLACEHOLDER_ARTWORK",
    # Sources
    "FALLBACK_HOSTS",
    "ResolvedSource",
    "audius_stream_source",
    "content_url",
    "fallback_candidates",
    # Audio
    "AudioOutput",
    "StreamProbeOutput",
    # Controller
    "PlaybackController",
    "CommandDispatcher",
    # View
    "SessionObserver",
    "ConsoleView",
    "follow_playback",
]
