"""
Data models for Audius entities.

This module defines immutable dataclasses representing the Audius objects
the player works with: tracks returned by a search and artist (user)
profiles returned by a lookup.

Design Decisions:
    - All dataclasses are frozen (immutable) once fetched
    - Field names follow the Audius API response where possible
    - Missing optional fields get sensible defaults (None, 0, empty mapping)
    - Search order is significant, so track lists are kept as tuples

Usage:
    from lets_listen.audius.models import Track, Artist

    tracks = tracks_from_api(payload["data"])
    artist = Artist.from_api(payload["data"])
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping


AUDIUS_WEB_URL = "https://audius.co"

# Artwork resolution used for list rows and the player bar
DEFAULT_ARTWORK_SIZE = "150x150"


def _freeze_mapping(raw: Any) -> Mapping[str, str]:
    """Keep only string-valued entries of an artwork/avatar dict, read-only."""
    if not isinstance(raw, dict):
        return MappingProxyType({})
    return MappingProxyType({
        str(key): value for key, value in raw.items() if isinstance(value, str) and value
    })


def _count(raw: Any) -> int:
    """Non-negative integer count; absent, null or malformed values become 0."""
    if isinstance(raw, bool):
        return 0
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return 0
    return max(0, value)


def _optional_str(raw: Any) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


@dataclass(frozen=True)
class ArtistRef:
    """
    Reference to the artist owning a track.

    Attributes:
        id: Audius user id (e.g. "nlGNe").
        name: Display name shown next to the track title.
    """
    id: str
    name: str


@dataclass(frozen=True)
class Track:
    """
    Immutable representation of an Audius track.

    Attributes:
        id: Audius track id.
        title: Track title.
        duration: Length in seconds, never negative.
        user: Owning artist reference.
        artwork: Resolution key ("150x150", "480x480", "1000x1000") to URL.
        track_cid: Content identifier used to build fallback stream URLs.
        is_streamable: Whether Audius permits direct audio delivery.
        permalink: Path of the track page on audius.co (e.g. "/artist/song").
        genre, description, release_date: Detail view metadata.
        preview_url: Preview clip URL when Audius provides one.
        is_downloadable: Whether the artist allows downloads.
    """
    id: str
    title: str
    duration: int
    user: ArtistRef
    artwork: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    track_cid: str | None = None
    is_streamable: bool = False
    permalink: str = ""
    genre: str | None = None
    description: str | None = None
    release_date: str | None = None
    preview_url: str | None = None
    is_downloadable: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Track":
        """
        Create a Track from one entry of the Audius search response.

        Args:
            data: Track object from /v1/tracks/search.

        Returns:
            Track: New immutable instance.

        Raises:
            ValueError: If data is not a dictionary or lacks an id.

        Example:
            track = Track.from_api({
                "id": "D7KyD",
                "title": "Night Drive",
                "duration": 183,
                "user": {"id": "nlGNe", "name": "Lo-Fi Lab"},
                "is_streamable": True,
            })
        """
        if not isinstance(data, dict):
            raise ValueError(f"Track entry must be an object, got {type(data).__name__}")

        track_id = _optional_str(data.get("id"))
        if track_id is None:
            raise ValueError("Track entry has no id")

        user = data.get("user") if isinstance(data.get("user"), dict) else {}

        return cls(
            id=track_id,
            title=_optional_str(data.get("title")) or "Untitled",
            duration=_count(data.get("duration")),
            user=ArtistRef(
                id=_optional_str(user.get("id")) or "",
                name=_optional_str(user.get("name")) or "Unknown Artist",
            ),
            artwork=_freeze_mapping(data.get("artwork")),
            track_cid=_optional_str(data.get("track_cid")),
            is_streamable=bool(data.get("is_streamable", False)),
            permalink=_optional_str(data.get("permalink")) or "",
            genre=_optional_str(data.get("genre")),
            description=_optional_str(data.get("description")),
            release_date=_optional_str(data.get("release_date")),
            preview_url=_optional_str(data.get("preview_url")),
            is_downloadable=bool(data.get("is_downloadable", False)),
        )

    def artwork_url(self, size: str = DEFAULT_ARTWORK_SIZE) -> str | None:
        """Return the artwork URL for a resolution, or None if absent."""
        return self.artwork.get(size)

    @property
    def audius_url(self) -> str:
        """Full URL of the track page on audius.co."""
        if not self.permalink:
            return AUDIUS_WEB_URL
        return f"{AUDIUS_WEB_URL}{self.permalink}"


@dataclass(frozen=True)
class Artist:
    """
    Immutable representation of an Audius artist profile.

    Attributes:
        id: Audius user id.
        name: Display name.
        bio: Free-form biography, if set.
        follower_count, following_count, track_count: Non-negative, 0 when absent.
        profile_picture: Resolution key to avatar URL.
        location: Free-form location, if set.
        website: Website URL, if set.
    """
    id: str
    name: str
    bio: str | None = None
    follower_count: int = 0
    following_count: int = 0
    track_count: int = 0
    profile_picture: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    location: str | None = None
    website: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Artist":
        """
        Create an Artist from the Audius /v1/users/<id> payload.

        Raises:
            ValueError: If data is not a dictionary.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Artist payload must be an object, got {type(data).__name__}")

        return cls(
            id=_optional_str(data.get("id")) or "",
            name=_optional_str(data.get("name")) or "Unknown Artist",
            bio=_optional_str(data.get("bio")),
            follower_count=_count(data.get("follower_count")),
            following_count=_count(data.get("followee_count", data.get("following_count"))),
            track_count=_count(data.get("track_count")),
            profile_picture=_freeze_mapping(data.get("profile_picture")),
            location=_optional_str(data.get("location")),
            website=_optional_str(data.get("website")),
        )

    def avatar_url(self, size: str = DEFAULT_ARTWORK_SIZE) -> str | None:
        return self.profile_picture.get(size)


def tracks_from_api(entries: Iterable[Any]) -> tuple[Track, ...]:
    """
    Convert a list of raw track entries into an ordered tuple of Tracks.

    Order is preserved exactly as returned by the search.

    Raises:
        ValueError: If any entry is malformed.
    """
    return tuple(Track.from_api(entry) for entry in entries)
