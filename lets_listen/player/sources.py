"""
Audio source candidates for lets-listen.

When a track cannot be streamed from its primary source, the player tries
a fixed list of Audius content nodes in order. The order encodes how
reliable each node has been and must not change:

    https://audius-creator-6.theblueprint.xyz
    https://audius-content-13.figment.io
    https://blockdaemon-audius-content-08.bdnodes.net
    https://audius-content-14.cultur3stake.com

A candidate URL is <host>/content/<track_cid>.
"""

from dataclasses import dataclass
from typing import Callable, Sequence
from urllib.parse import quote

from lets_listen.audius.models import Track
from lets_listen.core.exceptions import NoSourceError


FALLBACK_HOSTS: tuple[str, ...] = (
    "https://audius-creator-6.theblueprint.xyz",
    "https://audius-content-13.figment.io",
    "https://blockdaemon-audius-content-08.bdnodes.net",
    "https://audius-content-14.cultur3stake.com",
)

NO_SOURCE_MESSAGE = "No audio source available for this track"

# Returns the primary stream URL for a track, or None to go straight to the fallback hosts
PrimarySource = Callable[[Track], "str | None"]


@dataclass(frozen=True)
class ResolvedSource:
    """
    The source that started playing.

    Attributes:
        url: URL loaded into the audio output.
        host_index: Position in the fallback host list, or None for the primary source.
    """
    url: str
    host_index: int | None = None


def content_url(host: str, track_cid: str) -> str:
    """Build <host>/content/<track_cid>."""
    return f"{host.rstrip('/')}/content/{track_cid}"


def fallback_candidates(
    track: Track,
    hosts: Sequence[str] = FALLBACK_HOSTS
) -> list[str]:
    """
    Build the ordered fallback URLs for a track.

    Args:
        track: Track to play.
        hosts: Content hosts in trial order.

    Returns:
        One URL per host, in the same order as hosts.

    Raises:
        NoSourceError: If the track has no track_cid.
    """
    if not track.track_cid:
        raise NoSourceError(NO_SOURCE_MESSAGE, details={"track_id": track.id})
    return [content_url(host, track.track_cid) for host in hosts]


def audius_stream_source(api_url: str) -> PrimarySource:
    """
    Primary source using the discovery provider's stream redirect.

    Example:
        primary = audius_stream_source("https://discoveryprovider.audius.co/v1")
        primary(track)  # ".../v1/tracks/D7KyD/stream"
    """
    base = api_url.rstrip("/")

    def _stream_url(track: Track) -> str | None:
        if not track.id:
            return None
        return f"{base}/tracks/{quote(track.id, safe='')}/stream"

    return _stream_url
