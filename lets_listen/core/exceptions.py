"""
Exception classes for lets-listen.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message that is safe to show in
the player's error state, plus an optional details dictionary for logs.

Exception Hierarchy:
    LetsListenError (base)
        ConfigError - Configuration file issues
        BadRequestError - Empty query or identifier, rejected before any I/O
        UpstreamError - Non-2xx answer from the Audius API or the gateway
        UpstreamFormatError - Response body is not the expected JSON envelope
        UnavailableError - Track is flagged as not streamable
        NoSourceError - Track has no content identifier to build sources from
        NoWorkingSourceError - Every fallback host failed
        PlaybackError - Audio output rejected a play request
        InvalidIndexError - Track index outside the current result list

None of these errors is retried automatically. The only retry loop in the
system is the fallback chain, which catches PlaybackError per candidate.
"""


class LetsListenError(Exception):
    """
    Base exception for all lets-listen errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., URLs, ids).

    Example:
        try:
            await controller.search("lofi")
        except LetsListenError as e:
            logger.error(f"Operation failed: {e.message}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': URL that caused the error
                     - 'track_id': Audius track ID involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(LetsListenError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Example:
        raise ConfigError(
            "'gateway.port' must be an integer between 1 and 65535",
            details={'field': 'gateway.port', 'value': 0}
        )
    """
    pass


class BadRequestError(LetsListenError):
    """
    Raised when a search query or artist id is missing or empty.

    Validation happens before any network call is made.
    """
    pass


class UpstreamError(LetsListenError):
    """
    Raised when the external service answers with a non-success status.

    Attributes:
        status: HTTP status code returned by the service, or None when the
                request never produced a response (connection refused, timeout).

    Example:
        raise UpstreamError(
            "Audius API error: 503 Service Unavailable",
            status=503,
            details={'url': url}
        )
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: dict | None = None
    ) -> None:
        """
        Initialize upstream error with the HTTP status.

        Args:
            message: Human-readable error description including status and reason.
            status: HTTP status code of the failed response, if any.
            details: Optional dictionary with additional context.
        """
        super().__init__(message, details)
        self.status = status


class UpstreamFormatError(LetsListenError):
    """
    Raised when a response is not valid JSON or lacks the expected envelope.

    Search responses must be an object with a 'data' array or a bare array.
    Artist responses must be an object.
    """
    pass


class UnavailableError(LetsListenError):
    """Raised when a track is not available for streaming. No fallback is attempted."""
    pass


class NoSourceError(LetsListenError):
    """Raised when a track has no track_cid, so no fallback source can be built."""
    pass


class NoWorkingSourceError(LetsListenError):
    """
    Raised when every fallback content host failed to start playback.

    Attributes (in details):
        'attempted': List of candidate URLs in the order they were tried.
    """
    pass


class PlaybackError(LetsListenError):
    """Raised when the audio output rejects a play request (unsupported, blocked, 4xx)."""
    pass


class InvalidIndexError(LetsListenError):
    """Raised when a track index is outside [0, len(tracks) - 1]."""
    pass
