"""
Command-line interface for lets-listen.

This module implements the CLI using Click, providing commands to run the
proxy gateway and to search, inspect and play Audius tracks through it.
rich-click is used for the output colors.

Commands:
    lets-listen serve [--host H] [--port P] [--open]   Run the proxy gateway
    lets-listen search QUERY [--limit N]               Search tracks
    lets-listen artist ID                              Show an artist profile
    lets-listen play QUERY [--index I] [--limit N]     Resolve a working audio source
                     [--follow]                    ...and follow playback with a progress bar
    lets-listen health                                 Check a running gateway

Options:
    --config <path>     Configuration file (default: ./config.yaml)
    --verbose           Debug output on the console

Usage:
    # Start the gateway and open the browser
    lets-listen serve --open

    # In another terminal
    lets-listen search "lofi" --limit 5
    lets-listen play "lofi" --index 2
    lets-listen play "lofi" --follow

Exit Codes:
    0    Success
    1    Configuration error or unexpected error
    3    Gateway or Audius API error
    4    Other lets-listen error (no source, not streamable, bad input)
    130  Interrupted by user
"""

import asyncio
import sys
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Iterator, Optional

import requests
import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100

from lets_listen import __version__
from lets_listen.core import (
    Config,
    ConfigError,
    LetsListenError,
    UpstreamError,
    UpstreamFormatError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from lets_listen.gateway import serve as serve_gateway
from lets_listen.player import (
    ConsoleView,
    LookupClient,
    PlaybackController,
    StreamProbeOutput,
    audius_stream_source,
    follow_playback,
)
from lets_listen.player.view import format_track_details

logger = get_logger(__name__)


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.version_option(__version__, prog_name="lets-listen")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """
    lets-listen: Search and play Audius music through a small proxy.

    \b
    BASIC USAGE:
        lets-listen serve --open                # Run the gateway
        lets-listen search "lofi" --limit 5     # Search tracks
        lets-listen play "lofi" --index 2       # Find a working audio source
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    level = "DEBUG" if verbose else config.logging.level
    setup_logging(config.logging.directory, level=level)
    ctx.obj = config


@contextmanager
def _error_handling() -> Iterator[None]:
    """Map errors to exit codes and shut logging down on the way out."""
    try:
        yield

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except (UpstreamError, UpstreamFormatError) as e:
        click.echo(f"Gateway error: {e.message}", err=True)
        logger.error(f"Gateway error: {e.message}", exc_info=True)
        sys.exit(3)

    except LetsListenError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


@cli.command()
@click.option("--host", type=str, default=None, help="Interface to bind")
@click.option("--port", type=click.IntRange(1, 65535), default=None, help="TCP port")
@click.option(
    "--open/--no-open", "open_browser",
    default=None,
    help="Open the browser once the server is up"
)
@click.pass_obj
def serve(config: Config, host: Optional[str], port: Optional[int], open_browser: Optional[bool]) -> None:
    """Run the proxy gateway until interrupted."""
    with _error_handling():
        gateway = config.gateway
        if host is not None or port is not None:
            gateway = replace(
                gateway,
                host=host if host is not None else gateway.host,
                port=port if port is not None else gateway.port,
            )
            config = replace(config, gateway=gateway)
        serve_gateway(config, open_browser=open_browser)


@cli.command()
@click.argument("query")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum number of tracks")
@click.pass_obj
def search(config: Config, query: str, limit: Optional[int]) -> None:
    """Search tracks by title or artist."""
    with _error_handling():
        asyncio.run(_search(config, query, limit))


@cli.command()
@click.argument("artist_id")
@click.pass_obj
def artist(config: Config, artist_id: str) -> None:
    """Show an artist profile."""
    with _error_handling():
        asyncio.run(_artist(config, artist_id))


@cli.command()
@click.argument("query")
@click.option("--index", type=click.IntRange(min=1), default=1, help="Result number to play (1-based)")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum number of tracks")
@click.option("--follow", is_flag=True, help="Follow playback through the results with a progress bar")
@click.pass_obj
def play(config: Config, query: str, index: int, limit: Optional[int], follow: bool) -> None:
    """Search, pick a result and resolve a working audio source for it."""
    with _error_handling():
        asyncio.run(_play(config, query, index - 1, limit, follow))


@cli.command()
@click.pass_obj
def health(config: Config) -> None:
    """Check that the gateway is up."""
    with _error_handling():
        url = f"{config.player.gateway_url}/api/health"
        try:
            response = requests.get(url, timeout=config.network.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"Gateway not reachable at {url}: {e}") from e
        if not response.ok:
            raise UpstreamError(
                f"HTTP {response.status_code} {response.reason}",
                status=response.status_code
            )
        payload = response.json()
        click.echo(f"{payload.get('status')}: {payload.get('message')} ({payload.get('timestamp')})")


def _make_controller(
    config: Config,
    lookup: LookupClient,
    output: StreamProbeOutput,
    show_tracks: bool = True
) -> PlaybackController:
    return PlaybackController(
        lookup,
        output,
        observers=[ConsoleView(show_tracks=show_tracks, show_errors=False)],
        volume=config.player.volume,
        search_limit=config.player.search_limit,
        primary_source=audius_stream_source(config.audius.api_url),
    )


def _raise_failure(controller: PlaybackController) -> None:
    error = controller.state.error
    if error is None:
        return
    if isinstance(error, LetsListenError):
        raise error
    raise LetsListenError(controller.state.error_message or str(error))


async def _search(config: Config, query: str, limit: Optional[int]) -> None:
    output = StreamProbeOutput(timeout=config.network.timeout)
    async with LookupClient(config.player.gateway_url, timeout=config.network.timeout) as lookup:
        controller = _make_controller(config, lookup, output)
        try:
            if not await controller.search(query, limit):
                _raise_failure(controller)
        finally:
            await output.close()


async def _artist(config: Config, artist_id: str) -> None:
    output = StreamProbeOutput(timeout=config.network.timeout)
    async with LookupClient(config.player.gateway_url, timeout=config.network.timeout) as lookup:
        controller = _make_controller(config, lookup, output)
        try:
            if await controller.show_artist(artist_id) is None:
                _raise_failure(controller)
        finally:
            await output.close()


async def _play(config: Config, query: str, index: int, limit: Optional[int], follow: bool = False) -> None:
    output = StreamProbeOutput(timeout=config.network.timeout)
    async with LookupClient(config.player.gateway_url, timeout=config.network.timeout) as lookup:
        controller = _make_controller(config, lookup, output, show_tracks=False)
        try:
            if not await controller.search(query, limit):
                _raise_failure(controller)
                return

            for line in format_track_details(controller.track_details(index)):
                click.echo(line)

            if not await controller.select_track(index):
                _raise_failure(controller)
                return

            click.echo(f"Source: {controller.state.source_url}")
            if follow:
                await follow_playback(controller)
                _raise_failure(controller)
            controller.close_session()
        finally:
            await output.close()


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `lets-listen` from the command line.
    It invokes the Click CLI group.
    """
    cli()


if __name__ == "__main__":
    main()
