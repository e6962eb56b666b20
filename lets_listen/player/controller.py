"""
Playback Session Controller for lets-listen.

The controller owns one PlaybackSession and is the only writer of one
AudioOutput. Views never touch either directly: they dispatch commands
(see player.commands) and receive SessionState snapshots through the
SessionObserver interface.

Playback Workflow:
    1. select_track(index) sets the current track, shows the player and
       bumps the selection token
    2. resolve_source(track):
       a. Non-streamable track: error state, no source attempted
       b. Primary source (optional): one play attempt
       c. Fallback chain: each content host in order, one at a time
    3. First candidate that plays: playing=True, source recorded
    4. All candidates failed: error state, failure logged to the
       playback failures report

Cancellation:
    Every resolution carries the selection token it was started with.
    Selecting another track or closing the player bumps the token; the
    stale chain stops before its next attempt and a late success is
    discarded. Outputs refuse to load an attempt that was superseded by
    stop() or a newer play(), so the output only ever holds the current
    selection's source.

Usage:
    controller = PlaybackController(lookup, output, observers=[view])
    await controller.search("lofi", limit=5)
    await controller.select_track(0)
"""

from typing import Iterable, Sequence

from lets_listen.audius.client import DEFAULT_SEARCH_LIMIT
from lets_listen.audius.models import Artist, Track
from lets_listen.core.exceptions import (
    BadRequestError,
    InvalidIndexError,
    LetsListenError,
    NoSourceError,
    NoWorkingSourceError,
    PlaybackError,
    UnavailableError,
)
from lets_listen.core.logger import get_logger, log_playback_failure
from lets_listen.player.audio import AudioOutput
from lets_listen.player.lookup import LookupClient
from lets_listen.player.session import NowPlaying, PlaybackSession, SessionState, UIState
from lets_listen.player.sources import (
    FALLBACK_HOSTS,
    PrimarySource,
    ResolvedSource,
    fallback_candidates,
)
from lets_listen.utils import clamp

logger = get_logger(__name__)


EMPTY_QUERY_MESSAGE = "Please enter a search term"
UNAVAILABLE_MESSAGE = "This track is not available for streaming"
NO_WORKING_SOURCE_MESSAGE = "Could not find a working audio source for this track"
PLAY_FAILED_MESSAGE = "Could not play this track. It may not be available for streaming."
ARTIST_FAILED_MESSAGE = "Failed to load artist details"


class PlaybackController:
    """
    Drives search, track selection and audio playback for one session.

    Attributes:
        lookup: Search/artist lookup client.
        output: Audio output; the controller is its only writer.
        hosts: Fallback content hosts in trial order.
        search_limit: Default number of tracks per search.
        primary_source: Optional function giving a track's primary stream URL.
        session: The PlaybackSession this controller owns.
    """

    def __init__(
        self,
        lookup: LookupClient,
        output: AudioOutput,
        observers: Iterable = (),
        hosts: Sequence[str] = FALLBACK_HOSTS,
        volume: float = 0.5,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        primary_source: PrimarySource | None = None
    ) -> None:
        self.lookup = lookup
        self.output = output
        self.hosts = tuple(hosts)
        self.search_limit = search_limit
        self.primary_source = primary_source
        self._observers = list(observers)

        self.session = PlaybackSession(volume=clamp(float(volume), 0.0, 1.0))
        self.output.set_volume(self.session.volume)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self.session.snapshot()

    def add_observer(self, observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self) -> None:
        state = self.session.snapshot()
        for observer in list(self._observers):
            observer.on_state_changed(state)

    def _deliver_artist(self, artist: Artist) -> None:
        for observer in list(self._observers):
            on_artist = getattr(observer, "on_artist", None)
            if on_artist is not None:
                on_artist(artist)

    def _fail(self, error: Exception, message: str | None = None) -> None:
        self.session.show(UIState.ERROR, error, message)
        self._notify()

    def _settled_state(self) -> UIState:
        """State to fall back to once an error or loading indicator is cleared."""
        if self.session.tracks:
            return UIState.RESULTS
        if self.session.search_seq:
            return UIState.NO_RESULTS
        return UIState.IDLE

    # ------------------------------------------------------------------
    # Search and artist lookup
    # ------------------------------------------------------------------

    async def search(self, query: str, limit: int | None = None) -> bool:
        """
        Search tracks and replace the result list.

        Args:
            query: Search text.
            limit: Maximum number of tracks (defaults to search_limit).

        Returns:
            True if this search's results were applied.

        Behavior:
            1. Empty query: error state "Please enter a search term"
            2. Bump search_seq, show LOADING
            3. Await the lookup client
            4. If a newer search or lookup was dispatched meanwhile, discard
            5. Otherwise stop playback, replace tracks, clear current_index
               and show RESULTS ("<n> tracks found") or NO_RESULTS
            6. Failures show ERROR with the failure's message
        """
        query = (query or "").strip()
        if not query:
            self._fail(BadRequestError(EMPTY_QUERY_MESSAGE))
            return False

        self.session.search_seq += 1
        seq = self.session.search_seq
        self.session.show(UIState.LOADING)
        self._notify()

        logger.info(f"Searching for '{query}'")
        try:
            tracks = await self.lookup.search(query, limit or self.search_limit)
        except LetsListenError as e:
            if seq != self.session.search_seq:
                logger.debug(f"Discarding failure of superseded search '{query}'")
                return False
            logger.error(f"Search failed: {e.message}")
            self._fail(e)
            return False
        except Exception as e:
            if seq != self.session.search_seq:
                return False
            logger.exception(f"Unexpected error while searching for '{query}'")
            self._fail(e, f"Search failed: {str(e) or type(e).__name__}")
            return False

        if seq != self.session.search_seq:
            logger.debug(f"Discarding results of superseded search '{query}'")
            return False

        self._reset_playback()
        self.session.tracks = tuple(tracks)
        if tracks:
            self.session.results_text = f"{len(tracks)} tracks found"
            self.session.show(UIState.RESULTS)
        else:
            self.session.results_text = ""
            self.session.show(UIState.NO_RESULTS)

        logger.info(f"Found {len(tracks)} tracks for '{query}'")
        self._notify()
        return True

    async def show_artist(self, artist_id: str) -> Artist | None:
        """
        Load an artist profile and hand it to the observers.

        Returns:
            The artist, or None if the lookup failed or was superseded.

        Behavior:
            Shows LOADING while the request is in flight, then restores the
            result view. Failures show "Failed to load artist details: <reason>".
        """
        self.session.search_seq += 1
        seq = self.session.search_seq
        previous = self.session.ui_state
        self.session.show(UIState.LOADING)
        self._notify()

        try:
            artist = await self.lookup.get_artist(artist_id)
        except LetsListenError as e:
            if seq != self.session.search_seq:
                return None
            logger.error(f"Artist lookup failed for '{artist_id}': {e.message}")
            self._fail(e, f"{ARTIST_FAILED_MESSAGE}: {e.message}")
            return None
        except Exception as e:
            if seq != self.session.search_seq:
                return None
            logger.exception(f"Unexpected error while loading artist '{artist_id}'")
            self._fail(e, f"{ARTIST_FAILED_MESSAGE}: {str(e) or type(e).__name__}")
            return None

        if seq != self.session.search_seq:
            logger.debug(f"Discarding superseded artist lookup '{artist_id}'")
            return None

        if previous in (UIState.RESULTS, UIState.NO_RESULTS, UIState.IDLE):
            self.session.show(previous)
        else:
            self.session.show(self._settled_state())
        self._notify()
        self._deliver_artist(artist)
        return artist

    def track_details(self, index: int) -> Track:
        """Return the track at index for a detail view."""
        self._check_index(index, self.session.tracks)
        return self.session.tracks[index]

    # ------------------------------------------------------------------
    # Selection and source resolution
    # ------------------------------------------------------------------

    async def select_track(self, index: int, tracks: Sequence[Track] | None = None) -> bool:
        """
        Select a track and start playing it.

        Args:
            index: Position in the track list.
            tracks: Optional new track list; defaults to the session's list.

        Returns:
            True if a source started playing for this selection.

        Raises:
            InvalidIndexError: If index is outside [0, len(tracks) - 1].
                               Session state is left unchanged.

        Behavior:
            Resolution failures do not raise: they are logged, reported to
            the playback failures file and shown in the ERROR state.
        """
        candidates = self.session.tracks if tracks is None else tuple(tracks)
        self._check_index(index, candidates)

        track = candidates[index]
        session = self.session
        session.tracks = candidates
        session.selection_token += 1
        token = session.selection_token

        self.output.stop()
        session.current_index = index
        session.playing = False
        session.clear_source()
        session.now_playing = NowPlaying.from_track(track)
        session.player_visible = True
        self._notify()

        logger.info(f"Playing: {track.title} - {track.user.name}")
        try:
            resolved = await self.resolve_source(track, token)
        except (UnavailableError, NoSourceError, NoWorkingSourceError) as e:
            if token != self.session.selection_token:
                return False
            self.session.playing = False
            log_playback_failure(
                logger,
                title=track.title,
                artist=track.user.name,
                page_url=track.audius_url,
                reason=e.message
            )
            self._fail(e)
            return False

        return resolved is not None

    async def resolve_source(self, track: Track, token: int | None = None) -> ResolvedSource | None:
        """
        Find a source that plays for track.

        Args:
            track: Track to play.
            token: Selection token of the caller; defaults to the current one.

        Returns:
            The source that started playing, or None if the selection was
            superseded before any source succeeded.

        Raises:
            UnavailableError: If the track is flagged as not streamable.
                              No source is attempted.
            NoSourceError: If no primary source worked and the track has no
                           track_cid.
            NoWorkingSourceError: If every fallback host failed.
        """
        if token is None:
            token = self.session.selection_token

        if not track.is_streamable:
            raise UnavailableError(UNAVAILABLE_MESSAGE, details={"track_id": track.id})

        if self.primary_source is not None:
            url = self.primary_source(track)
            if url:
                logger.debug(f"Trying primary source: {url}")
                try:
                    await self.output.play(url, duration_hint=track.duration or None)
                except PlaybackError as e:
                    logger.warning(f"Primary source failed: {e.message}")
                else:
                    return self._accept(ResolvedSource(url), token)

        if not self._is_current(token):
            return None
        return await self.try_fallback_chain(track, token)

    async def try_fallback_chain(self, track: Track, token: int | None = None) -> ResolvedSource | None:
        """
        Try the fallback content hosts one after another.

        Args:
            track: Track to play; must have a track_cid.
            token: Selection token of the caller; defaults to the current one.

        Returns:
            The source that started playing, or None if the chain was
            abandoned because the selection changed.

        Raises:
            NoSourceError: If track has no track_cid.
            NoWorkingSourceError: If every host failed. details['attempted']
                                  lists the URLs in trial order.

        Behavior:
            A candidate is attempted only after the previous one raised
            PlaybackError. The first candidate that plays ends the chain.
        """
        if token is None:
            token = self.session.selection_token

        candidates = fallback_candidates(track, self.hosts)
        attempted: list[str] = []

        for host_index, url in enumerate(candidates):
            if not self._is_current(token):
                logger.debug(f"Abandoning fallback chain for {track.id}")
                return None

            attempted.append(url)
            logger.info(f"Trying endpoint {host_index + 1}/{len(candidates)}: {url}")
            try:
                await self.output.play(url, duration_hint=track.duration or None)
            except PlaybackError as e:
                if not self._is_current(token):
                    logger.debug(f"Abandoning fallback chain for {track.id}")
                    return None
                logger.warning(f"Endpoint {host_index + 1} failed: {e.message}")
                continue

            return self._accept(ResolvedSource(url, host_index), token)

        if not self._is_current(token):
            return None

        raise NoWorkingSourceError(
            NO_WORKING_SOURCE_MESSAGE,
            details={"track_id": track.id, "attempted": attempted}
        )

    def _accept(self, source: ResolvedSource, token: int) -> ResolvedSource | None:
        """Record a source that started playing, unless its selection is stale."""
        if not self._is_current(token):
            logger.debug(f"Discarding stale source {source.url}")
            self.output.stop()
            return None

        session = self.session
        session.playing = True
        session.source_index = source.host_index
        session.source_url = source.url
        if session.ui_state is UIState.ERROR:
            session.show(self._settled_state())

        logger.info(f"Audio started playing: {source.url}")
        self._notify()
        return source

    def _is_current(self, token: int) -> bool:
        return token == self.session.selection_token

    @staticmethod
    def _check_index(index: int, tracks: Sequence[Track]) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(tracks):
            raise InvalidIndexError(
                f"Track index {index} is out of range",
                details={"index": index, "track_count": len(tracks)}
            )

    def _reset_playback(self) -> None:
        session = self.session
        session.selection_token += 1
        self.output.stop()
        session.current_index = None
        session.playing = False
        session.player_visible = False
        session.now_playing = None
        session.clear_source()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def toggle_play_pause(self) -> bool:
        """
        Pause if playing, otherwise resume the loaded source.

        Returns:
            The playing flag after the call.

        Behavior:
            A rejected resume is shown as "Could not play this track. It may
            not be available for streaming." in the ERROR state. No-op when
            no track is selected.
        """
        session = self.session
        if session.current_index is None:
            return False

        if session.playing:
            self.output.pause()
            session.playing = False
            self._notify()
            return False

        token = session.selection_token
        try:
            await self.output.resume()
        except PlaybackError as e:
            logger.error(f"Play error: {e.message}")
            if self._is_current(token):
                self._fail(e, PLAY_FAILED_MESSAGE)
            return False

        if not self._is_current(token):
            return False
        session.playing = True
        self._notify()
        return True

    async def play_previous(self) -> bool:
        """Select the previous track. No-op at the first track."""
        index = self.session.current_index
        if index is None or index <= 0:
            return False
        return await self.select_track(index - 1)

    async def play_next(self) -> bool:
        """Select the next track. No-op at the last track."""
        index = self.session.current_index
        if index is None or index >= len(self.session.tracks) - 1:
            return False
        return await self.select_track(index + 1)

    async def on_ended(self) -> bool:
        """
        Handle the end of the current track.

        Continues with the next track; at the last track playback stops.
        """
        index = self.session.current_index
        if index is None or index >= len(self.session.tracks) - 1:
            if self.session.playing:
                self.session.playing = False
                self._notify()
            return False
        return await self.play_next()

    def on_audio_error(self, message: str | None = None) -> None:
        """
        Handle an error event raised by the audio output while playing.

        Ignored when no track is selected, e.g. a late event after the
        player was closed.
        """
        if self.session.current_index is None:
            logger.debug(f"Ignoring audio error with no track selected: {message or 'unknown'}")
            return
        logger.error(f"Audio error: {message or 'unknown'}")
        self.session.playing = False
        self._fail(PlaybackError(PLAY_FAILED_MESSAGE, details={"reason": message}))

    def seek_to(self, percentage: float) -> float | None:
        """
        Move the playback position.

        Args:
            percentage: Position as a percentage of the duration, clamped to [0, 100].

        Returns:
            The new position in seconds, or None if the duration is unknown.
        """
        duration = self.output.duration
        if not duration:
            return None

        position = clamp(float(percentage), 0.0, 100.0) / 100 * duration
        self.output.seek(position)
        return position

    def set_volume(self, fraction: float) -> float:
        """Set the output volume, clamped to [0.0, 1.0]."""
        volume = clamp(float(fraction), 0.0, 1.0)
        self.session.volume = volume
        self.output.set_volume(volume)
        self._notify()
        return volume

    def close_session(self) -> None:
        """
        Stop playback and hide the player.

        Any fallback chain in flight is abandoned. The track list is kept, so
        selecting a track again reopens the player on the same results.
        """
        self._reset_playback()
        logger.debug("Player closed")
        self._notify()
