"""
Search and artist lookup client for the player.

Talks to the gateway's combined endpoint:

    GET {gateway_url}/api/audius?query=<q>&limit=<n>
    GET {gateway_url}/api/audius?artistId=<id>

and turns the forwarded Audius payloads into Track and Artist models.
Non-2xx answers become UpstreamError with the status and the gateway's
'details' text; bodies that are not the expected JSON envelope become
UpstreamFormatError.

Usage:
    async with LookupClient("http://127.0.0.1:8000") as lookup:
        tracks = await lookup.search("lofi", limit=5)
        artist = await lookup.get_artist(tracks[0].user.id)
"""

import asyncio
import json
from typing import Any

import aiohttp

from lets_listen.audius.client import (
    DEFAULT_SEARCH_LIMIT,
    extract_artist_entry,
    extract_track_entries,
)
from lets_listen.audius.models import Artist, Track, tracks_from_api
from lets_listen.core.exceptions import (
    BadRequestError,
    UpstreamError,
    UpstreamFormatError,
)
from lets_listen.core.logger import get_logger

logger = get_logger(__name__)


COMBINED_ENDPOINT = "/api/audius"


class LookupClient:
    """
    Async client for the gateway.

    Attributes:
        base_url: Gateway root, e.g. "http://127.0.0.1:8000".
        timeout: Seconds allowed per request; None waits indefinitely.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        session: aiohttp.ClientSession | None = None
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "LookupClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> tuple[Track, ...]:
        """
        Search tracks through the gateway.

        Args:
            query: Search text; surrounding whitespace is ignored.
            limit: Maximum number of tracks.

        Returns:
            Tracks in the order the search returned them.

        Raises:
            BadRequestError: If query is empty. Raised before any request.
            UpstreamError: For a non-2xx answer or an unreachable gateway.
            UpstreamFormatError: If the body is not JSON, is not
                                 {"data": [...]} or an array, or holds
                                 malformed track entries.
        """
        query = (query or "").strip()
        if not query:
            raise BadRequestError("Please enter a search term")

        payload = await self._get_json({"query": query, "limit": str(int(limit))})
        entries = extract_track_entries(payload)

        try:
            tracks = tracks_from_api(entries)
        except ValueError as e:
            raise UpstreamFormatError(
                f"Invalid response format from API: {e}",
                details={"query": query}
            ) from e

        logger.debug(f"Search '{query}' returned {len(tracks)} tracks")
        return tracks

    async def get_artist(self, artist_id: str) -> Artist:
        """
        Fetch an artist profile through the gateway.

        Raises:
            BadRequestError: If artist_id is empty. Raised before any request.
            UpstreamError: For a non-2xx answer or an unreachable gateway.
            UpstreamFormatError: If the body is not a JSON object.
        """
        artist_id = (artist_id or "").strip()
        if not artist_id:
            raise BadRequestError("Missing artist ID")

        payload = await self._get_json({"artistId": artist_id})
        return Artist.from_api(extract_artist_entry(payload))

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def _get_json(self, params: dict[str, str]) -> Any:
        url = f"{self.base_url}{COMBINED_ENDPOINT}"
        logger.debug(f"API URL: {url} params={params}")
        session = await self._get_session()

        try:
            async with session.get(url, params=params) as response:
                raw = await response.read()
                status = response.status
                reason = response.reason or ""
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamError(
                f"Could not reach {url}: {str(e) or type(e).__name__}",
                details={"url": url, "original_error": repr(e)}
            ) from e

        if not 200 <= status < 300:
            body = raw.decode("utf-8", errors="replace")
            raise UpstreamError(
                _error_message(status, reason, body),
                status=status,
                details={"url": url, "body": body[:500]}
            )

        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise UpstreamFormatError(
                "Invalid response format from API: body is not valid UTF-8 JSON",
                details={"url": url, "original_error": str(e)}
            ) from e

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()


def _error_message(status: int, reason: str, body: str) -> str:
    """
    Build the user-facing text for a failed request.

    Uses the gateway envelope's 'details' (or 'error') when the body has
    one, e.g. "HTTP 500 Internal Server Error: Audius API error: 503 Service Unavailable".
    """
    prefix = f"HTTP {status} {reason}".rstrip()
    try:
        envelope = json.loads(body) if body else None
    except ValueError:
        envelope = None

    if isinstance(envelope, dict):
        detail = envelope.get("details") or envelope.get("error")
        if detail:
            return f"{prefix}: {detail}"
    return f"HTTP error! status: {status}" if not reason else prefix
