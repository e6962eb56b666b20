"""Test configuration and fixtures"""

import asyncio

import pytest

from lets_listen.audius.models import Artist, Track
from lets_listen.core.exceptions import PlaybackError
from lets_listen.player.audio import AudioOutput


def track_data(index: int = 1, **overrides) -> dict:
    """Raw Audius search entry"""
    data = {
        'id': f'track{index}',
        'title': f'Lofi Song {index}',
        'duration': 180 + index,
        'user': {'id': f'user{index}', 'name': f'Lofi Artist {index}'},
        'artwork': {
            '150x150': f'https://img.audius.co/{index}/150x150.jpg',
            '480x480': f'https://img.audius.co/{index}/480x480.jpg',
        },
        'track_cid': f'Qm{index:04d}cid',
        'is_streamable': True,
        'permalink': f'/lofi-artist-{index}/lofi-song-{index}',
        'genre': 'Lo-Fi',
    }
    data.update(overrides)
    return data


class FakeAudioOutput(AudioOutput):
    """
    Audio output double.

    Play attempts are recorded in `attempts`. URLs in `failing` (or all
    URLs when fail_all is set) raise PlaybackError. `gates` maps a URL to
    an asyncio.Event the attempt waits on before finishing. An attempt
    overtaken by stop() or a newer play() raises PlaybackError and loads
    nothing, like StreamProbeOutput.
    """

    def __init__(self, failing=(), fail_all=False, duration=200.0):
        self.failing = set(failing)
        self.fail_all = fail_all
        self.gates: dict[str, asyncio.Event] = {}
        self.attempts: list[str] = []
        self.loaded: str | None = None
        self.playing = False
        self.resume_error: PlaybackError | None = None
        self.stop_calls = 0
        self.volume = 1.0
        self.seeked_to: float | None = None
        self._duration = duration
        self._generation = 0
        self.superseded: list[str] = []

    async def play(self, url, duration_hint=None):
        self._generation += 1
        generation = self._generation
        self.loaded = None
        self.playing = False
        self.attempts.append(url)
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        if self.fail_all or url in self.failing:
            raise PlaybackError(f"NotSupportedError: {url}")
        if generation != self._generation:
            self.superseded.append(url)
            raise PlaybackError("Play attempt superseded")
        self.loaded = url
        self.playing = True

    async def resume(self):
        if self.resume_error is not None:
            raise self.resume_error
        if self.loaded is None:
            raise PlaybackError("No source loaded")
        self.playing = True

    def pause(self):
        self.playing = False

    def stop(self):
        self.stop_calls += 1
        self._generation += 1
        self.loaded = None
        self.playing = False

    def seek(self, seconds):
        self.seeked_to = seconds

    def set_volume(self, fraction):
        self.volume = fraction

    @property
    def duration(self):
        return self._duration

    @duration.setter
    def duration(self, value):
        self._duration = value

    @property
    def position(self):
        return self.seeked_to or 0.0

    async def close(self):
        self.closed = True


class FakeLookup:
    """
    Lookup client double.

    `results` is returned by search (or raised when it is an exception).
    `gates` maps a query to an asyncio.Event the search waits on.
    """

    def __init__(self, results=(), artist=None):
        self.results = results
        self.artist = artist
        self.gates: dict[str, asyncio.Event] = {}
        self.per_query: dict[str, object] = {}
        self.calls: list[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def search(self, query, limit=10):
        self.calls.append(('search', query, limit))
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        result = self.per_query.get(query, self.results)
        if isinstance(result, Exception):
            raise result
        return tuple(result)[:limit]

    async def get_artist(self, artist_id):
        self.calls.append(('artist', artist_id))
        if isinstance(self.artist, Exception):
            raise self.artist
        return self.artist


class RecordingObserver:
    """Collects every state snapshot and artist delivered by the controller"""

    def __init__(self):
        self.states = []
        self.artists = []

    def on_state_changed(self, state):
        self.states.append(state)

    def on_artist(self, artist):
        self.artists.append(artist)


@pytest.fixture
def sample_track_data():
    """Sample Audius track entry"""
    return track_data(1)


@pytest.fixture
def sample_artist_data():
    """Sample Audius user payload"""
    return {
        'id': 'user1',
        'name': 'Lofi Artist 1',
        'bio': 'Beats to relax to',
        'follower_count': 12345,
        'followee_count': 67,
        'track_count': 42,
        'profile_picture': {'150x150': 'https://img.audius.co/u1/150x150.jpg'},
        'location': 'Berlin',
        'website': 'https://lofi.example.com',
    }


@pytest.fixture
def make_tracks():
    """Factory for a list of Track objects"""
    def _make(count=5, **overrides):
        return tuple(Track.from_api(track_data(i, **overrides)) for i in range(1, count + 1))
    return _make


@pytest.fixture
def sample_artist(sample_artist_data):
    return Artist.from_api(sample_artist_data)


@pytest.fixture
def audio_output():
    return FakeAudioOutput()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def fake_lookup(make_tracks):
    return FakeLookup(results=make_tracks(5))
