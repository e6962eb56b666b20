"""Test the playback session controller"""

import asyncio

import pytest

from lets_listen.core.exceptions import (
    InvalidIndexError,
    NoSourceError,
    NoWorkingSourceError,
    PlaybackError,
    UnavailableError,
    UpstreamError,
)
from lets_listen.player.controller import (
    EMPTY_QUERY_MESSAGE,
    NO_WORKING_SOURCE_MESSAGE,
    PLAY_FAILED_MESSAGE,
    UNAVAILABLE_MESSAGE,
    PlaybackController,
)
from lets_listen.player.session import PLACEHOLDER_ARTWORK, UIState
from lets_listen.player.sources import FALLBACK_HOSTS, NO_SOURCE_MESSAGE, fallback_candidates

from conftest import FakeLookup


@pytest.fixture
def controller(fake_lookup, audio_output, observer):
    return PlaybackController(fake_lookup, audio_output, observers=[observer])


async def _yield_to_tasks():
    for _ in range(5):
        await asyncio.sleep(0)


class TestSearch:
    """Test search and UI state reconciliation"""

    @pytest.mark.asyncio
    async def test_search_shows_result_count(self, make_tracks, audio_output, observer):
        """Test that a five-track search shows '5 tracks found'"""
        lookup = FakeLookup(results=make_tracks(8))
        controller = PlaybackController(lookup, audio_output, observers=[observer])

        assert await controller.search("lofi", limit=5) is True

        state = controller.state
        assert state.ui_state is UIState.RESULTS
        assert state.results_text == "5 tracks found"
        assert len(state.tracks) == 5
        assert lookup.calls == [('search', 'lofi', 5)]

    @pytest.mark.asyncio
    async def test_search_without_results(self, audio_output):
        """Test that an empty result list shows the no-results state"""
        controller = PlaybackController(FakeLookup(results=()), audio_output)

        await controller.search("nothing matches this")

        assert controller.state.ui_state is UIState.NO_RESULTS
        assert controller.state.tracks == ()

    @pytest.mark.asyncio
    async def test_search_upstream_error(self, audio_output):
        """Test that an HTTP 503 ends in the error state with the status in the message"""
        lookup = FakeLookup(results=UpstreamError(
            "HTTP 503 Service Unavailable", status=503
        ))
        controller = PlaybackController(lookup, audio_output)

        assert await controller.search("lofi") is False

        state = controller.state
        assert state.ui_state is UIState.ERROR
        assert "503" in state.error_message
        assert isinstance(state.error, UpstreamError)

    @pytest.mark.asyncio
    async def test_search_unexpected_error(self, audio_output):
        """Test that a non-project exception still leaves the loading state"""
        decode_error = UnicodeDecodeError('utf-8', b'\xff', 0, 1, 'invalid start byte')
        controller = PlaybackController(FakeLookup(results=decode_error), audio_output)

        assert await controller.search("lofi") is False

        state = controller.state
        assert state.ui_state is UIState.ERROR
        assert state.error is decode_error
        assert state.error_message.startswith("Search failed: ")

    @pytest.mark.asyncio
    async def test_loading_shown_then_cleared(self, controller, observer):
        """Test that loading is shown on dispatch and never left visible"""
        await controller.search("lofi")

        assert observer.states[0].ui_state is UIState.LOADING
        assert observer.states[-1].ui_state is UIState.RESULTS
        assert all(state.ui_state is not UIState.LOADING for state in observer.states[1:])

    @pytest.mark.asyncio
    async def test_empty_query(self, controller, fake_lookup):
        """Test that an empty query is rejected without a lookup"""
        assert await controller.search("   ") is False

        assert controller.state.ui_state is UIState.ERROR
        assert controller.state.error_message == EMPTY_QUERY_MESSAGE
        assert fake_lookup.calls == []

    @pytest.mark.asyncio
    async def test_default_limit(self, make_tracks, audio_output):
        """Test that the controller's search limit is used when none is given"""
        lookup = FakeLookup(results=make_tracks(3))
        controller = PlaybackController(lookup, audio_output, search_limit=20)

        await controller.search("lofi")

        assert lookup.calls == [('search', 'lofi', 20)]

    @pytest.mark.asyncio
    async def test_new_search_clears_selection(self, controller, audio_output):
        """Test that replacing the track list stops playback and clears the index"""
        await controller.search("lofi")
        await controller.select_track(2)
        assert controller.state.playing is True

        await controller.search("chill")

        state = controller.state
        assert state.current_index is None
        assert state.playing is False
        assert state.player_visible is False
        assert audio_output.loaded is None

    @pytest.mark.asyncio
    async def test_stale_search_is_discarded(self, make_tracks, audio_output):
        """Test that an older search finishing last does not overwrite newer results"""
        lookup = FakeLookup()
        lookup.per_query = {'old': make_tracks(2), 'new': make_tracks(3)}
        lookup.gates['old'] = asyncio.Event()
        controller = PlaybackController(lookup, audio_output)

        old = asyncio.create_task(controller.search("old"))
        await _yield_to_tasks()
        assert await controller.search("new") is True

        lookup.gates['old'].set()
        assert await old is False

        assert len(controller.state.tracks) == 3
        assert controller.state.results_text == "3 tracks found"

    @pytest.mark.asyncio
    async def test_stale_search_error_is_discarded(self, make_tracks, audio_output):
        """Test that an older search failing last does not show an error"""
        lookup = FakeLookup()
        lookup.per_query = {'old': UpstreamError("HTTP 500", status=500), 'new': make_tracks(1)}
        lookup.gates['old'] = asyncio.Event()
        controller = PlaybackController(lookup, audio_output)

        old = asyncio.create_task(controller.search("old"))
        await _yield_to_tasks()
        await controller.search("new")
        lookup.gates['old'].set()
        await old

        assert controller.state.ui_state is UIState.RESULTS


class TestSelectTrack:
    """Test track selection and source resolution"""

    @pytest.mark.asyncio
    async def test_select_updates_now_playing(self, controller, audio_output):
        """Test that every valid index selects exactly that track"""
        await controller.search("lofi")

        for index, track in enumerate(controller.state.tracks):
            assert await controller.select_track(index) is True

            state = controller.state
            assert state.current_index == index
            assert state.current_track == track
            assert state.now_playing.title == track.title
            assert state.now_playing.artist == track.user.name
            assert state.now_playing.artwork == track.artwork_url()
            assert state.player_visible is True
            assert state.playing is True
            assert audio_output.attempts[-1] == fallback_candidates(track)[0]

    @pytest.mark.asyncio
    async def test_placeholder_artwork(self, make_tracks, audio_output):
        """Test that a track without artwork shows the placeholder glyph"""
        controller = PlaybackController(FakeLookup(results=make_tracks(1, artwork=None)), audio_output)
        await controller.search("lofi")

        await controller.select_track(0)

        assert controller.state.now_playing.artwork == PLACEHOLDER_ARTWORK
        assert controller.state.now_playing.has_artwork is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index", [-1, 5, 99])
    async def test_invalid_index_leaves_state_unchanged(self, controller, audio_output, index):
        """Test that an out-of-range index raises and changes nothing"""
        await controller.search("lofi")
        await controller.select_track(1)
        before = controller.state
        attempts = list(audio_output.attempts)

        with pytest.raises(InvalidIndexError):
            await controller.select_track(index)

        assert controller.state == before
        assert audio_output.attempts == attempts

    @pytest.mark.asyncio
    async def test_select_with_new_list(self, controller, make_tracks):
        """Test that select_track accepts an explicit track list"""
        tracks = make_tracks(2)

        await controller.select_track(1, tracks)

        assert controller.state.tracks == tracks
        assert controller.state.current_index == 1

    @pytest.mark.asyncio
    async def test_non_streamable_never_attempts(self, make_tracks, audio_output):
        """Test that a non-streamable track triggers no play attempt"""
        controller = PlaybackController(
            FakeLookup(results=make_tracks(3, is_streamable=False)), audio_output
        )
        await controller.search("lofi")

        assert await controller.select_track(0) is False

        state = controller.state
        assert audio_output.attempts == []
        assert state.playing is False
        assert state.ui_state is UIState.ERROR
        assert state.error_message == UNAVAILABLE_MESSAGE
        assert isinstance(state.error, UnavailableError)

    @pytest.mark.asyncio
    async def test_all_hosts_fail(self, controller, audio_output):
        """Test that exactly the four hosts are tried in order before giving up"""
        audio_output.fail_all = True
        await controller.search("lofi")
        track = controller.state.tracks[0]

        assert await controller.select_track(0) is False

        expected = [f"{host}/content/{track.track_cid}" for host in FALLBACK_HOSTS]
        assert audio_output.attempts == expected

        state = controller.state
        assert state.playing is False
        assert state.ui_state is UIState.ERROR
        assert state.error_message == NO_WORKING_SOURCE_MESSAGE
        assert isinstance(state.error, NoWorkingSourceError)
        assert state.error.details['attempted'] == expected

    @pytest.mark.asyncio
    async def test_third_host_succeeds(self, controller, audio_output):
        """Test that the chain stops at the first host that plays"""
        await controller.search("lofi")
        candidates = fallback_candidates(controller.state.tracks[0])
        audio_output.failing = set(candidates[:2])

        assert await controller.select_track(0) is True

        assert audio_output.attempts == candidates[:3]
        state = controller.state
        assert state.playing is True
        assert state.source_index == 2
        assert state.source_url == candidates[2]

    @pytest.mark.asyncio
    async def test_missing_track_cid(self, make_tracks, audio_output):
        """Test that a track without track_cid reports no source"""
        controller = PlaybackController(FakeLookup(results=make_tracks(1, track_cid=None)), audio_output)
        await controller.search("lofi")

        assert await controller.select_track(0) is False

        assert audio_output.attempts == []
        assert controller.state.error_message == NO_SOURCE_MESSAGE
        assert isinstance(controller.state.error, NoSourceError)

    @pytest.mark.asyncio
    async def test_success_hides_previous_error(self, controller, audio_output):
        """Test that a working source clears an earlier error"""
        await controller.search("lofi")
        first = fallback_candidates(controller.state.tracks[0])
        audio_output.failing = set(first)
        await controller.select_track(0)
        assert controller.state.ui_state is UIState.ERROR

        await controller.select_track(1)

        assert controller.state.ui_state is UIState.RESULTS
        assert controller.state.error_message is None

    @pytest.mark.asyncio
    async def test_primary_source_first(self, controller, audio_output):
        """Test that a primary source is tried before the fallback hosts"""
        controller.primary_source = lambda track: f"https://api.example/{track.id}/stream"
        await controller.search("lofi")

        await controller.select_track(0)

        assert audio_output.attempts == ["https://api.example/track1/stream"]
        assert controller.state.source_index is None

    @pytest.mark.asyncio
    async def test_primary_source_failure_falls_back(self, controller, audio_output):
        """Test that a failing primary source continues with the hosts"""
        controller.primary_source = lambda track: f"https://api.example/{track.id}/stream"
        audio_output.failing = {"https://api.example/track1/stream"}
        await controller.search("lofi")

        await controller.select_track(0)

        track = controller.state.tracks[0]
        assert audio_output.attempts == [
            "https://api.example/track1/stream",
            fallback_candidates(track)[0],
        ]
        assert controller.state.source_index == 0

    @pytest.mark.asyncio
    async def test_try_fallback_chain_raises(self, controller, audio_output):
        """Test the fallback chain on its own"""
        audio_output.fail_all = True
        await controller.search("lofi")

        with pytest.raises(NoWorkingSourceError):
            await controller.try_fallback_chain(controller.state.tracks[0])

    @pytest.mark.asyncio
    async def test_resolve_source_unavailable(self, make_tracks, controller, audio_output):
        """Test resolve_source on a non-streamable track"""
        track = make_tracks(1, is_streamable=False)[0]

        with pytest.raises(UnavailableError):
            await controller.resolve_source(track)
        assert audio_output.attempts == []


class TestCancellation:
    """Test that newer selections abandon stale fallback chains"""

    @pytest.mark.asyncio
    async def test_new_selection_abandons_chain(self, controller, audio_output):
        """Test that a stale chain stops before its next candidate"""
        await controller.search("lofi")
        tracks = controller.state.tracks
        stale = fallback_candidates(tracks[0])
        audio_output.failing = {stale[0]}
        audio_output.gates[stale[0]] = asyncio.Event()

        first = asyncio.create_task(controller.select_track(0))
        await _yield_to_tasks()
        assert await controller.select_track(1) is True

        audio_output.gates[stale[0]].set()
        assert await first is False

        assert stale[1] not in audio_output.attempts
        state = controller.state
        assert state.current_index == 1
        assert state.source_url == fallback_candidates(tracks[1])[0]
        assert state.ui_state is UIState.RESULTS

    @pytest.mark.asyncio
    async def test_stale_success_is_discarded(self, controller, audio_output):
        """Test that a late success of an old selection does not overwrite the new one"""
        await controller.search("lofi")
        tracks = controller.state.tracks
        stale = fallback_candidates(tracks[0])[0]
        audio_output.gates[stale] = asyncio.Event()

        first = asyncio.create_task(controller.select_track(0))
        await _yield_to_tasks()
        await controller.select_track(1)

        audio_output.gates[stale].set()
        assert await first is False

        state = controller.state
        assert state.current_index == 1
        assert state.source_url == fallback_candidates(tracks[1])[0]
        assert audio_output.loaded == state.source_url
        assert audio_output.playing is True
        assert audio_output.superseded == [stale]
        assert fallback_candidates(tracks[0])[1] not in audio_output.attempts

    @pytest.mark.asyncio
    async def test_stale_primary_source_is_discarded(self, controller, audio_output):
        """Test that a late primary source of an old selection never reaches the output"""
        controller.primary_source = lambda track: f"https://api.example/{track.id}/stream"
        await controller.search("lofi")
        stale = "https://api.example/track1/stream"
        audio_output.gates[stale] = asyncio.Event()

        first = asyncio.create_task(controller.select_track(0))
        await _yield_to_tasks()
        assert await controller.select_track(1) is True

        audio_output.gates[stale].set()
        assert await first is False

        assert audio_output.loaded == "https://api.example/track2/stream"
        assert controller.state.source_url == audio_output.loaded
        assert fallback_candidates(controller.state.tracks[0])[0] not in audio_output.attempts

    @pytest.mark.asyncio
    async def test_close_abandons_chain(self, controller, audio_output):
        """Test that closing the player discards a pending source"""
        await controller.search("lofi")
        pending = fallback_candidates(controller.state.tracks[0])[0]
        audio_output.gates[pending] = asyncio.Event()

        task = asyncio.create_task(controller.select_track(0))
        await _yield_to_tasks()
        controller.close_session()

        audio_output.gates[pending].set()
        assert await task is False

        state = controller.state
        assert state.playing is False
        assert state.player_visible is False
        assert audio_output.loaded is None
        assert audio_output.playing is False
        assert audio_output.superseded == [pending]
        assert len(state.tracks) == 5


class TestTransport:
    """Test play/pause, previous/next, seek, volume and close"""

    @pytest.mark.asyncio
    async def test_toggle_play_pause(self, controller, audio_output):
        await controller.search("lofi")
        await controller.select_track(0)

        assert await controller.toggle_play_pause() is False
        assert controller.state.playing is False
        assert audio_output.playing is False

        assert await controller.toggle_play_pause() is True
        assert controller.state.playing is True

    @pytest.mark.asyncio
    async def test_toggle_rejected(self, controller, audio_output):
        """Test that a rejected resume is surfaced as an error state"""
        await controller.search("lofi")
        await controller.select_track(0)
        await controller.toggle_play_pause()
        audio_output.resume_error = PlaybackError("NotAllowedError")

        assert await controller.toggle_play_pause() is False

        state = controller.state
        assert state.playing is False
        assert state.ui_state is UIState.ERROR
        assert state.error_message == PLAY_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_toggle_without_selection(self, controller, audio_output):
        assert await controller.toggle_play_pause() is False
        assert controller.state.ui_state is UIState.IDLE

    @pytest.mark.asyncio
    async def test_play_next_at_last_is_noop(self, controller, audio_output):
        """Test that play_next on the last track changes nothing"""
        await controller.search("lofi")
        await controller.select_track(4)
        before = controller.state
        attempts = list(audio_output.attempts)

        assert await controller.play_next() is False

        assert controller.state == before
        assert audio_output.attempts == attempts

    @pytest.mark.asyncio
    async def test_play_previous_at_first_is_noop(self, controller):
        await controller.search("lofi")
        await controller.select_track(0)
        before = controller.state

        assert await controller.play_previous() is False
        assert controller.state == before

    @pytest.mark.asyncio
    async def test_previous_and_next(self, controller):
        await controller.search("lofi")
        await controller.select_track(2)

        await controller.play_next()
        assert controller.state.current_index == 3

        await controller.play_previous()
        await controller.play_previous()
        assert controller.state.current_index == 1

    @pytest.mark.asyncio
    async def test_ended_plays_next(self, controller):
        """Test that the end of a track continues with the next one"""
        await controller.search("lofi")
        await controller.select_track(0)

        assert await controller.on_ended() is True
        assert controller.state.current_index == 1
        assert controller.state.playing is True

    @pytest.mark.asyncio
    async def test_ended_at_last_stops(self, controller):
        await controller.search("lofi")
        await controller.select_track(4)

        assert await controller.on_ended() is False
        assert controller.state.current_index == 4
        assert controller.state.playing is False

    @pytest.mark.asyncio
    async def test_audio_error(self, controller):
        await controller.search("lofi")
        await controller.select_track(0)

        controller.on_audio_error("MEDIA_ERR_SRC_NOT_SUPPORTED")

        assert controller.state.playing is False
        assert controller.state.error_message == PLAY_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_audio_error_after_close_is_ignored(self, controller, observer):
        await controller.search("lofi")
        await controller.select_track(0)
        controller.close_session()
        notified = len(observer.states)

        controller.on_audio_error("MEDIA_ERR_ABORTED")

        assert controller.state.ui_state is UIState.RESULTS
        assert controller.state.error_message is None
        assert len(observer.states) == notified

    @pytest.mark.parametrize("percentage,expected", [
        (50, 100.0),
        (150, 200.0),
        (-20, 0.0),
        (100, 200.0),
    ])
    def test_seek_is_clamped(self, controller, audio_output, percentage, expected):
        """Test that seek never goes beyond the duration"""
        assert controller.seek_to(percentage) == expected
        assert audio_output.seeked_to == expected

    @pytest.mark.parametrize("duration", [None, 0])
    def test_seek_without_duration(self, controller, audio_output, duration):
        """Test that seek is a no-op while the duration is unknown"""
        audio_output.duration = duration

        assert controller.seek_to(50) is None
        assert audio_output.seeked_to is None

    @pytest.mark.parametrize("fraction,expected", [
        (0.3, 0.3),
        (1.5, 1.0),
        (-0.2, 0.0),
    ])
    def test_set_volume_clamps(self, controller, audio_output, fraction, expected):
        assert controller.set_volume(fraction) == expected
        assert controller.state.volume == expected
        assert audio_output.volume == expected

    def test_initial_volume_applied(self, fake_lookup, audio_output):
        controller = PlaybackController(fake_lookup, audio_output, volume=0.25)

        assert controller.state.volume == 0.25
        assert audio_output.volume == 0.25

    @pytest.mark.asyncio
    async def test_close_keeps_tracks(self, controller, audio_output):
        """Test that closing stops playback but keeps the result list"""
        await controller.search("lofi")
        await controller.select_track(1)

        controller.close_session()

        state = controller.state
        assert state.playing is False
        assert state.player_visible is False
        assert state.current_index is None
        assert len(state.tracks) == 5
        assert audio_output.loaded is None

        assert await controller.select_track(1) is True
        assert controller.state.player_visible is True


class TestArtistAndDetails:
    """Test artist lookup and track details"""

    @pytest.mark.asyncio
    async def test_show_artist(self, make_tracks, sample_artist, audio_output, observer):
        lookup = FakeLookup(results=make_tracks(2), artist=sample_artist)
        controller = PlaybackController(lookup, audio_output, observers=[observer])
        await controller.search("lofi")

        assert await controller.show_artist("user1") == sample_artist

        assert observer.artists == [sample_artist]
        assert controller.state.ui_state is UIState.RESULTS

    @pytest.mark.asyncio
    async def test_show_artist_failure(self, audio_output):
        lookup = FakeLookup(artist=UpstreamError("HTTP 404 Not Found", status=404))
        controller = PlaybackController(lookup, audio_output)

        assert await controller.show_artist("missing") is None

        assert controller.state.ui_state is UIState.ERROR
        assert controller.state.error_message == "Failed to load artist details: HTTP 404 Not Found"

    @pytest.mark.asyncio
    async def test_show_artist_unexpected_error(self, audio_output):
        lookup = FakeLookup(artist=RuntimeError("boom"))
        controller = PlaybackController(lookup, audio_output)

        assert await controller.show_artist("user1") is None

        assert controller.state.ui_state is UIState.ERROR
        assert controller.state.error_message == "Failed to load artist details: boom"

    @pytest.mark.asyncio
    async def test_track_details(self, controller):
        await controller.search("lofi")

        assert controller.track_details(3) == controller.state.tracks[3]
        with pytest.raises(InvalidIndexError):
            controller.track_details(5)

    def test_observers(self, controller, observer):
        controller.remove_observer(observer)
        controller.set_volume(0.9)
        assert observer.states == []

        controller.add_observer(observer)
        controller.set_volume(0.8)
        assert observer.states[-1].volume == 0.8
