"""
Audius discovery API client for lets-listen.

This module wraps the two Audius endpoints the gateway forwards:

    GET {api_url}/tracks/search?query=<q>&limit=<n>
    GET {api_url}/users/<id>

The client is blocking (requests.Session) and is used by the Flask gateway,
which handles one request per worker. The payload is returned as decoded
JSON so the gateway can forward it unchanged; the envelope helpers at the
bottom of this module are shared with the async lookup client.

Usage:
    from lets_listen.audius.client import AudiusClient

    client = AudiusClient(config.audius, timeout=config.network.timeout)
    payload = client.search_tracks("lofi", limit=5)
"""

from typing import Any
from urllib.parse import quote

import requests

from lets_listen.core.config import AudiusConfig
from lets_listen.core.exceptions import (
    BadRequestError,
    UpstreamError,
    UpstreamFormatError,
)
from lets_listen.core.logger import get_logger

logger = get_logger(__name__)


DEFAULT_SEARCH_LIMIT = 10


class AudiusClient:
    """
    Thin blocking client for the Audius discovery provider.

    Attributes:
        api_url: Base URL, e.g. "https://discoveryprovider.audius.co/v1".
        timeout: Seconds to wait for a response; None waits indefinitely.
        session: Shared requests.Session carrying the Accept and User-Agent headers.
    """

    def __init__(self, config: AudiusConfig | None = None, timeout: float | None = None) -> None:
        config = config or AudiusConfig()
        self.api_url = config.api_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": config.user_agent,
        })

    def search_tracks(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> Any:
        """
        Search tracks by free-text query.

        Args:
            query: Search text. Surrounding whitespace is ignored.
            limit: Maximum number of tracks to return.

        Returns:
            The decoded JSON payload, normally {"data": [...]}.

        Raises:
            BadRequestError: If query is empty (no request is made).
            UpstreamError: If Audius answers with a non-2xx status or cannot be reached.
            UpstreamFormatError: If the body is not JSON or has no track list.
        """
        query = (query or "").strip()
        if not query:
            raise BadRequestError("Missing query parameter")

        logger.info(f"Searching Audius for: \"{query}\"")
        payload = self._make_api_request("tracks/search", {"query": query, "limit": limit})

        entries = extract_track_entries(payload)
        logger.info(f"Found {len(entries)} tracks")
        return payload

    def get_user(self, artist_id: str) -> Any:
        """
        Fetch an artist (user) profile.

        Args:
            artist_id: Audius user id.

        Returns:
            The decoded JSON payload, normally {"data": {...}}.

        Raises:
            BadRequestError: If artist_id is empty (no request is made).
            UpstreamError: If Audius answers with a non-2xx status or cannot be reached.
            UpstreamFormatError: If the body is not a JSON object.
        """
        artist_id = (artist_id or "").strip()
        if not artist_id:
            raise BadRequestError("Missing artist ID")

        logger.info(f"Fetching artist details for ID: {artist_id}")
        payload = self._make_api_request(f"users/{quote(artist_id, safe='')}")

        extract_artist_entry(payload)
        logger.info("Artist details fetched successfully")
        return payload

    def _make_api_request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """
        Perform a GET against the discovery provider and decode the JSON body.

        Raises:
            UpstreamError: On connection failure or non-2xx status.
            UpstreamFormatError: If the body is not valid JSON.
        """
        url = f"{self.api_url}/{endpoint}"
        logger.debug(f"API URL: {url} params={params}")

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamError(
                f"Audius API request failed: {e}",
                details={"url": url, "original_error": str(e)}
            ) from e

        if not response.ok:
            raise UpstreamError(
                f"Audius API error: {response.status_code} {response.reason}",
                status=response.status_code,
                details={"url": url}
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFormatError(
                "Invalid response format from API: body is not valid JSON",
                details={"url": url, "original_error": str(e)}
            ) from e

    def close(self) -> None:
        self.session.close()


def extract_track_entries(payload: Any) -> list[Any]:
    """
    Return the track list from a search payload.

    Accepts {"data": [...]} or a bare array.

    Raises:
        UpstreamFormatError: For any other shape.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    raise UpstreamFormatError(
        "Invalid response format from API",
        details={"expected": "object with a 'data' array, or an array"}
    )


def extract_artist_entry(payload: Any) -> dict[str, Any]:
    """
    Return the artist object from a lookup payload.

    Accepts {"data": {...}} or the artist object itself.

    Raises:
        UpstreamFormatError: If the payload is not an object.
    """
    if not isinstance(payload, dict):
        raise UpstreamFormatError(
            "Invalid response format from API",
            details={"expected": "object"}
        )
    data = payload.get("data")
    if isinstance(data, dict):
        return data
    return payload
