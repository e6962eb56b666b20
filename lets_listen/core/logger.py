"""
Logging configuration for lets-listen.

This module sets up the logging system with multiple outputs:
    - Console: Colored, compact messages written through tqdm.write()
    - log_full_<ts>.log: Complete log of all events (DEBUG and above)
    - log_errors_<ts>.log: Only ERROR and CRITICAL level messages
    - playback_failures_<ts>.log: Tracks for which no audio source worked

File outputs are only created when a log directory is configured.

Usage:
    from lets_listen.core.logger import setup_logging, get_logger

    setup_logging(log_dir, level="INFO")  # Call once at startup
    logger = get_logger(__name__)          # Get logger for each module

    logger.info("Searching Audius for 'lofi'")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm


LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
PLAYBACK_FAILURES_FILENAME = "playback_failures"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that adds colors to console output.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        colored_levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        message = f"{colored_levelname}: {record.getMessage()}"
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    Messages are written with tqdm.write(), which places them above any
    active progress bar.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class PlaybackFailureHandler(logging.Handler):
    """
    Handler that captures tracks for which no audio source could be played.

    Written in a simple, human-readable format:

        Song Title - Artist Name
        https://audius.co/artist/song-title
        Could not find a working audio source for this track

    The handler only reacts to records carrying these extra fields:
        - 'playback_failed_title': Track title
        - 'playback_failed_artist': Artist display name
        - 'playback_failed_url': Audius page URL

    Attributes:
        report_path: Path to the report file.
        report_file: Open file handle (opened by open()).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "playback_failed_title"):
            return

        if self.report_file is None:
            return

        try:
            title = getattr(record, "playback_failed_title", "Unknown")
            artist = getattr(record, "playback_failed_artist", "Unknown")
            url = getattr(record, "playback_failed_url", "")
            reason = getattr(record, "playback_failed_reason", record.getMessage())

            self.report_file.write(f"{title} - {artist}\n")
            if url:
                self.report_file.write(f"{url}\n")
            self.report_file.write(f"{reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self.report_file is not None:
            self.report_file.close()
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that passes only ERROR and CRITICAL records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path | None = None, level: str = "INFO") -> None:
    """
    Configure the logging system for the application.

    Call once at startup, after the configuration is loaded.

    Args:
        log_dir: Directory where log files are created. When None, only the
                 console handler is installed.
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Behavior:
        1. Initialize colorama (ANSI support on Windows consoles)
        2. Set root logger to DEBUG and drop existing handlers
        3. Install colored console handler at the requested level
        4. If log_dir is set, create it and add full, error-only and
           playback failure file handlers named with a run timestamp
        5. Quiet chatty third-party loggers (urllib3, werkzeug, aiohttp)
    """
    colorama.just_fix_windows_console()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

        full_handler = logging.FileHandler(
            log_dir / f"{LOG_FULL_FILENAME}_{timestamp}.log", mode="w", encoding="utf-8"
        )
        full_handler.setLevel(logging.DEBUG)
        full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        root_logger.addHandler(full_handler)

        error_handler = logging.FileHandler(
            log_dir / f"{LOG_ERRORS_FILENAME}_{timestamp}.log", mode="w", encoding="utf-8"
        )
        error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
        error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        error_handler.addFilter(ErrorOnlyFilter())
        root_logger.addHandler(error_handler)

        failures_handler = PlaybackFailureHandler(
            log_dir / f"{PLAYBACK_FAILURES_FILENAME}_{timestamp}.log"
        )
        failures_handler.open()
        root_logger.addHandler(failures_handler)

    for noisy in ("urllib3", "werkzeug", "aiohttp.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().
    """
    return logging.getLogger(name)


def log_playback_failure(
    logger: logging.Logger,
    title: str,
    artist: str,
    page_url: str,
    reason: str
) -> None:
    """
    Log a track for which playback could not be started.

    Attaches the extra fields that PlaybackFailureHandler writes to
    playback_failures_<ts>.log.

    Example:
        log_playback_failure(
            logger,
            title="Song Title",
            artist="Artist Name",
            page_url="https://audius.co/artist/song-title",
            reason="Could not find a working audio source for this track"
        )
    """
    logger.error(
        f"Playback failed: {title} - {reason}",
        extra={
            "playback_failed_title": title,
            "playback_failed_artist": artist,
            "playback_failed_url": page_url,
            "playback_failed_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove all root handlers.

    Called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)
