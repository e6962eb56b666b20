"""
Utility functions for lets-listen.

This module provides small helpers used across the application:
    - Duration and count formatting for track rows and artist details
    - Value clamping for volume and seek positions
    - Delayed browser launch for the gateway

Usage:
    from lets_listen.utils import format_duration, format_count, clamp
"""

import math
import threading
import webbrowser

from lets_listen.core.logger import get_logger

logger = get_logger(__name__)


def format_duration(seconds: int | float | None) -> str:
    """
    Format a duration in seconds as m:ss (or h:mm:ss for an hour or more).

    Args:
        seconds: Duration in seconds. None, NaN and negatives render as 0:00.

    Returns:
        Formatted duration string.

    Examples:
        format_duration(90)    # "1:30"
        format_duration(3661)  # "1:01:01"
        format_duration(None)  # "0:00"
    """
    if seconds is None or isinstance(seconds, bool):
        return "0:00"
    if isinstance(seconds, float) and math.isnan(seconds):
        return "0:00"
    if seconds <= 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_count(value: int | None) -> str:
    """Format a follower/track count with thousands separators ("12,345")."""
    return f"{max(0, int(value or 0)):,}"


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]. NaN clamps to lower."""
    if math.isnan(value):
        return lower
    return max(lower, min(upper, value))


def open_browser_later(url: str, delay: float = 1.0) -> threading.Timer:
    """
    Open url in the default browser after a short delay.

    The delay lets the server start listening first. Failures are logged,
    never raised, since the gateway keeps serving either way.

    Returns:
        The started timer (callers may cancel it).
    """
    def _open() -> None:
        if webbrowser.open(url):
            logger.info("Browser opened automatically")
        else:
            logger.info("Could not open browser automatically")

    timer = threading.Timer(delay, _open)
    timer.daemon = True
    timer.start()
    return timer
