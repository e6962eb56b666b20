"""
Command dispatch table for lets-listen.

UI events are mapped to named controller operations, so a view only needs
to know command names:

    Command       Controller operation
    search        search(query, limit=None)
    select        select_track(index)
    toggle        toggle_play_pause()
    previous      play_previous()
    next          play_next()
    ended         on_ended()
    audio_error   on_audio_error(message)
    seek          seek_to(percentage)
    volume        set_volume(fraction)
    close         close_session()
    artist        show_artist(artist_id)
    details       track_details(index)

Usage:
    dispatcher = CommandDispatcher(controller)
    await dispatcher.dispatch("search", "lofi")
    await dispatcher.dispatch("select", 0)
"""

import inspect
from typing import Any, Callable

from lets_listen.core.exceptions import BadRequestError
from lets_listen.core.logger import get_logger
from lets_listen.player.controller import PlaybackController

logger = get_logger(__name__)


class CommandDispatcher:
    """
    Maps command names to PlaybackController operations.

    Attributes:
        controller: Controller the commands are dispatched to.
    """

    def __init__(self, controller: PlaybackController) -> None:
        self.controller = controller
        self._commands: dict[str, Callable[..., Any]] = {
            "search": controller.search,
            "select": controller.select_track,
            "toggle": controller.toggle_play_pause,
            "previous": controller.play_previous,
            "next": controller.play_next,
            "ended": controller.on_ended,
            "audio_error": controller.on_audio_error,
            "seek": controller.seek_to,
            "volume": controller.set_volume,
            "close": controller.close_session,
            "artist": controller.show_artist,
            "details": controller.track_details,
        }

    @property
    def commands(self) -> tuple[str, ...]:
        return tuple(self._commands)

    def register(self, name: str, handler: Callable[..., Any]) -> None:
        """Add or replace a command."""
        self._commands[name] = handler

    async def dispatch(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Run a command and return the operation's result.

        Raises:
            BadRequestError: If name is not a known command.
        """
        handler = self._commands.get(name)
        if handler is None:
            raise BadRequestError(
                f"Unknown command: {name}",
                details={"command": name, "known": sorted(self._commands)}
            )

        logger.debug(f"Dispatching '{name}' {args}")
        result = handler(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
