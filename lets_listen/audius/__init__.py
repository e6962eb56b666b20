"""
Audius integration for lets-listen.

    - models: Track, ArtistRef and Artist dataclasses
    - client: Blocking discovery API client used by the gateway
"""

from lets_listen.audius.client import (
    AudiusClient,
    extract_artist_entry,
    extract_track_entries,
)
from lets_listen.audius.models import Artist, ArtistRef, Track, tracks_from_api

__all__ = [
    "AudiusClient",
    "extract_artist_entry",
    "extract_track_entries",
    "Artist",
    "ArtistRef",
    "Track",
    "tracks_from_api",
]
