"""
Observer interface and console rendering for the player.

SessionObserver is what the PlaybackController talks to; ConsoleView is
the command line's implementation. It prints a line per UI transition,
the result list and artist details. follow_playback draws a tqdm progress
bar per track while a session plays through its results.
"""

import asyncio
from typing import TextIO

import click
from tqdm import tqdm

from lets_listen.audius.models import Artist, Track
from lets_listen.player.session import SessionState, UIState
from lets_listen.utils import format_count, format_duration


class SessionObserver:
    """Receives controller notifications. Both hooks default to no-ops."""

    def on_state_changed(self, state: SessionState) -> None:
        pass

    def on_artist(self, artist: Artist) -> None:
        pass


def format_track_row(index: int, track: Track) -> str:
    """
    Render one result row.

    Example:
        format_track_row(0, track)  # " 1. Lofi Dreams - Chill Artist (3:05)"
    """
    row = f"{index + 1:>2}. {track.title} - {track.user.name} ({format_duration(track.duration)})"
    if not track.is_streamable:
        row += " [not streamable]"
    return row


def format_artist(artist: Artist) -> list[str]:
    lines = [
        artist.name,
        f"  Followers: {format_count(artist.follower_count)}"
        f"  Following: {format_count(artist.following_count)}"
        f"  Tracks: {format_count(artist.track_count)}",
    ]
    if artist.location:
        lines.append(f"  Location: {artist.location}")
    if artist.website:
        lines.append(f"  Website: {artist.website}")
    lines.append(f"  {artist.bio or 'No bio available.'}")
    return lines


def format_track_details(track: Track) -> list[str]:
    lines = [
        f"{track.title} by {track.user.name}",
        f"  Duration: {format_duration(track.duration)}",
        f"  Genre: {track.genre or 'Unknown'}",
        f"  Released: {track.release_date or 'Unknown'}",
        f"  Streamable: {'yes' if track.is_streamable else 'no'}",
    ]
    if track.permalink:
        lines.append(f"  {track.audius_url}")
    if track.description:
        lines.append(f"  {track.description}")
    return lines


class ConsoleView(SessionObserver):
    """
    Prints session changes with click.echo.

    Only transitions are printed: a state is echoed when the visible UI
    state, the now-playing track or the playing flag changes.
    """

    def __init__(self, show_tracks: bool = True, show_errors: bool = True) -> None:
        self.show_tracks = show_tracks
        self.show_errors = show_errors
        self._last: SessionState | None = None

    def on_state_changed(self, state: SessionState) -> None:
        last = self._last
        self._last = state

        if last is None or state.ui_state is not last.ui_state or state.error_message != last.error_message:
            self._render_ui_state(state)

        playing_changed = last is None or state.playing != last.playing
        track_changed = last is None or state.now_playing != last.now_playing
        if state.now_playing is not None and (playing_changed or track_changed):
            status = "Playing" if state.playing else "Loading"
            click.echo(f"{status}: {state.now_playing.title} - {state.now_playing.artist}")
        elif last is not None and last.player_visible and not state.player_visible:
            click.echo("Player closed")

    def _render_ui_state(self, state: SessionState) -> None:
        if state.ui_state is UIState.LOADING:
            click.echo("Loading...")
        elif state.ui_state is UIState.ERROR:
            if not self.show_errors:
                return
            click.secho(f"Error: {state.error_message}", fg="red", err=True)
        elif state.ui_state is UIState.NO_RESULTS:
            click.echo("No tracks found")
        elif state.ui_state is UIState.RESULTS:
            click.echo(state.results_text)
            if self.show_tracks:
                for index, track in enumerate(state.tracks):
                    click.echo(format_track_row(index, track))

    def on_artist(self, artist: Artist) -> None:
        for line in format_artist(artist):
            click.echo(line)


async def follow_playback(controller, poll_interval: float = 0.5, file: TextIO | None = None) -> int:
    """
    Show playback progress until the session stops playing.

    Args:
        controller: PlaybackController with a track playing.
        poll_interval: Seconds between position updates.
        file: Stream for the progress bars (tqdm's default when None).

    Returns:
        Number of tracks followed.

    Behavior:
        1. Draw a progress bar over the track's duration, updated from the
           output position
        2. When the position reaches the duration, signal the end of the
           track so the controller continues with the next result
        3. Stop when nothing is playing any more (last track ended, a
           source failed, the player was paused or closed)

    A track with unknown duration cannot be followed; nothing is drawn.
    """
    followed = 0
    while controller.state.playing:
        duration = controller.output.duration
        if not duration:
            break

        token = controller.session.selection_token
        now_playing = controller.state.now_playing
        title = now_playing.title if now_playing else "Playing"
        total = int(duration)
        with tqdm(
            total=total,
            desc=title,
            unit="s",
            bar_format="{desc} {bar} {n}/{total}s",
            file=file
        ) as bar:
            while controller.state.playing and controller.session.selection_token == token:
                position = min(int(controller.output.position), total)
                bar.n = position
                bar.refresh()
                if position >= total:
                    break
                await asyncio.sleep(poll_interval)

        followed += 1
        if controller.session.selection_token != token or not controller.state.playing:
            break
        if not await controller.on_ended():
            break

    return followed
