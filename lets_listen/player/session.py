"""
Playback session state for lets-listen.

The PlaybackSession holds everything the player shows: the current result
list, the selected track, the playing flag, volume, the audio source in use
and which UI state is visible. It is owned by a PlaybackController and only
mutated through the controller's operations; observers receive frozen
SessionState snapshots.

UI States:
    IDLE        Nothing searched yet
    LOADING     A search or artist lookup is in flight
    ERROR       The last operation failed; error_message says why
    NO_RESULTS  The last search returned zero tracks
    RESULTS     The last search returned tracks; results_text holds the count

Exactly one UI state is visible at a time. The player bar is separate
(player_visible) and can be shown on top of any of them.
"""

from dataclasses import dataclass
from enum import Enum

from lets_listen.audius.models import Track


# Shown in place of artwork when a track has none
PLACEHOLDER_ARTWORK = "♪"


class UIState(Enum):
    """Mutually exclusive content states of the player view."""
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"
    NO_RESULTS = "no-results"
    RESULTS = "results"


@dataclass(frozen=True)
class NowPlaying:
    """
    Metadata shown in the player bar.

    Attributes:
        title: Track title.
        artist: Artist display name.
        artwork: Artwork URL, or PLACEHOLDER_ARTWORK when the track has none.
    """
    title: str
    artist: str
    artwork: str

    @classmethod
    def from_track(cls, track: Track) -> "NowPlaying":
        return cls(
            title=track.title,
            artist=track.user.name,
            artwork=track.artwork_url() or PLACEHOLDER_ARTWORK,
        )

    @property
    def has_artwork(self) -> bool:
        return self.artwork != PLACEHOLDER_ARTWORK


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of a PlaybackSession, handed to observers."""
    tracks: tuple[Track, ...]
    current_index: int | None
    playing: bool
    volume: float
    source_index: int | None
    source_url: str | None
    ui_state: UIState
    player_visible: bool
    error_message: str | None
    error: Exception | None
    results_text: str
    now_playing: NowPlaying | None

    @property
    def current_track(self) -> Track | None:
        if self.current_index is None:
            return None
        return self.tracks[self.current_index]


@dataclass
class PlaybackSession:
    """
    Mutable playback state owned by a PlaybackController.

    Attributes:
        tracks: Current result list in search order.
        current_index: Selected track, or None when nothing is loaded.
        playing: True while audio is playing.
        volume: Output volume in [0.0, 1.0].
        source_index: Position of the working host in the fallback list,
                      or None when a primary source (or nothing) is playing.
        source_url: URL currently loaded into the audio output.
        ui_state: Visible content state.
        player_visible: Whether the player bar is shown.
        error_message: Message shown in the ERROR state.
        error: Exception behind error_message.
        results_text: Count text shown in the RESULTS state.
        now_playing: Player bar metadata for the selected track.
        search_seq: Incremented for every dispatched search; results from an
                    older sequence number are discarded.
        selection_token: Incremented on every selection and close; a fallback
                         chain stops as soon as its token is out of date.
    """
    tracks: tuple[Track, ...] = ()
    current_index: int | None = None
    playing: bool = False
    volume: float = 0.5
    source_index: int | None = None
    source_url: str | None = None
    ui_state: UIState = UIState.IDLE
    player_visible: bool = False
    error_message: str | None = None
    error: Exception | None = None
    results_text: str = ""
    now_playing: NowPlaying | None = None
    search_seq: int = 0
    selection_token: int = 0

    def show(
        self,
        state: UIState,
        error: Exception | None = None,
        message: str | None = None
    ) -> None:
        """
        Make state the only visible UI state.

        Every UI transition goes through here, so hiding the previous state
        and showing the next one cannot get out of step. The error fields are
        only kept while the ERROR state is visible.

        Args:
            state: State to show.
            error: Failure behind an ERROR state.
            message: Text to show instead of str(error).
        """
        self.ui_state = state
        if state is UIState.ERROR:
            self.error = error
            if message is None and error is not None:
                message = str(error)
            self.error_message = message
        else:
            self.error = None
            self.error_message = None

    def clear_source(self) -> None:
        self.source_index = None
        self.source_url = None

    def snapshot(self) -> SessionState:
        return SessionState(
            tracks=self.tracks,
            current_index=self.current_index,
            playing=self.playing,
            volume=self.volume,
            source_index=self.source_index,
            source_url=self.source_url,
            ui_state=self.ui_state,
            player_visible=self.player_visible,
            error_message=self.error_message,
            error=self.error,
            results_text=self.results_text,
            now_playing=self.now_playing,
        )
