"""
Audio output abstraction for lets-listen.

The PlaybackController is the single writer of one AudioOutput. Outputs
report a rejected play request by raising PlaybackError; the controller's
fallback chain relies on that to move on to the next candidate.

Implementations:
    AudioOutput        Abstract interface (browser element, desktop player, test fake)
    StreamProbeOutput  Headless output that opens the stream over HTTP and
                       accepts it when the server answers with audio
"""

import asyncio
import time
from abc import ABC, abstractmethod

import aiohttp

from lets_listen.core.exceptions import PlaybackError
from lets_listen.core.logger import get_logger
from lets_listen.utils import clamp

logger = get_logger(__name__)


PLAYABLE_CONTENT_TYPES = ("audio/", "application/octet-stream", "application/ogg")


class AudioOutput(ABC):
    """
    Interface of the shared audio output.

    Positions and durations are in seconds. duration is None until the
    media metadata is known.
    """

    @abstractmethod
    async def play(self, url: str, duration_hint: float | None = None) -> None:
        """
        Load url and start playing it.

        Args:
            url: Media URL.
            duration_hint: Expected length in seconds, for outputs that cannot
                           read it from the media.

        Raises:
            PlaybackError: If the output rejects the source, or if stop() or
                           another play() was called while this attempt was
                           in flight. A superseded attempt never loads url.
        """

    @abstractmethod
    async def resume(self) -> None:
        """
        Continue the loaded source.

        Raises:
            PlaybackError: If nothing is loaded or playback is refused.
        """

    @abstractmethod
    def pause(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    @abstractmethod
    def seek(self, seconds: float) -> None: ...

    @abstractmethod
    def set_volume(self, fraction: float) -> None: ...

    @property
    @abstractmethod
    def duration(self) -> float | None: ...

    @property
    @abstractmethod
    def position(self) -> float: ...


class StreamProbeOutput(AudioOutput):
    """
    Headless output for the command line.

    A play attempt issues a GET for the URL (following redirects) and reads
    the first chunk. The source is accepted when the status is 2xx and the
    content type is audio; anything else raises PlaybackError. No sound is
    produced: position follows the wall clock while "playing", which is
    enough to drive the controller outside a browser.

    Attributes:
        timeout: Seconds allowed per play attempt; None waits indefinitely.
        url: Currently loaded source, if any.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout: float | None = None
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self.timeout = timeout

        self.url: str | None = None
        self.volume = 1.0
        self._duration: float | None = None
        self._offset = 0.0
        self._started_at: float | None = None
        self._generation = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def play(self, url: str, duration_hint: float | None = None) -> None:
        self.stop()
        generation = self._generation
        session = await self._get_session()

        logger.debug(f"Probing audio source: {url}")
        try:
            async with session.get(url, allow_redirects=True) as response:
                content_type = response.headers.get("Content-Type", "")
                if response.status >= 400:
                    raise PlaybackError(
                        f"Source rejected with HTTP {response.status} {response.reason}",
                        details={"url": url, "status": response.status}
                    )
                if not content_type.lower().startswith(PLAYABLE_CONTENT_TYPES):
                    raise PlaybackError(
                        f"Source is not audio (Content-Type: {content_type or 'unknown'})",
                        details={"url": url, "content_type": content_type}
                    )
                first_chunk = await response.content.read(1024)
                if not first_chunk:
                    raise PlaybackError("Source returned no audio data", details={"url": url})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PlaybackError(
                f"Could not open source: {str(e) or type(e).__name__}",
                details={"url": url, "original_error": repr(e)}
            ) from e

        if generation != self._generation:
            raise PlaybackError(
                "Play attempt superseded",
                details={"url": url, "superseded": True}
            )

        self.url = url
        self._duration = float(duration_hint) if duration_hint else None
        self._offset = 0.0
        self._started_at = time.monotonic()

    async def resume(self) -> None:
        if self.url is None:
            raise PlaybackError("No source loaded")
        if self._started_at is None:
            self._started_at = time.monotonic()

    def pause(self) -> None:
        self._offset = self.position
        self._started_at = None

    def stop(self) -> None:
        self._generation += 1
        self.url = None
        self._duration = None
        self._offset = 0.0
        self._started_at = None

    def seek(self, seconds: float) -> None:
        upper = self._duration if self._duration is not None else max(0.0, seconds)
        self._offset = clamp(seconds, 0.0, upper)
        if self._started_at is not None:
            self._started_at = time.monotonic()

    def set_volume(self, fraction: float) -> None:
        self.volume = clamp(fraction, 0.0, 1.0)

    @property
    def duration(self) -> float | None:
        return self._duration

    @property
    def position(self) -> float:
        elapsed = 0.0
        if self._started_at is not None:
            elapsed = time.monotonic() - self._started_at
        position = self._offset + elapsed
        if self._duration is not None:
            position = min(position, self._duration)
        return position

    @property
    def is_playing(self) -> bool:
        return self.url is not None and self._started_at is not None

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
