"""
Proxy gateway for lets-listen.

Usage:
    from lets_listen.gateway import create_app, serve

    serve(config)  # Blocks until interrupted
"""

from lets_listen.core.config import Config
from lets_listen.core.logger import get_logger
from lets_listen.gateway.app import create_app
from lets_listen.utils import open_browser_later

logger = get_logger(__name__)


def serve(config: Config, open_browser: bool | None = None) -> None:
    """
    Run the gateway with Flask's built-in server until interrupted.

    Args:
        config: Application configuration.
        open_browser: Override for config.gateway.open_browser.
    """
    app = create_app(config)
    url = f"http://{config.gateway.host}:{config.gateway.port}"

    logger.info("Let's Listen Music App server running!")
    logger.info(f"Open {url} in your browser")
    logger.info(f"Health check: {url}/health")

    if open_browser is None:
        open_browser = config.gateway.open_browser
    if open_browser:
        open_browser_later(url)

    app.run(host=config.gateway.host, port=config.gateway.port, use_reloader=False)


__all__ = ["create_app", "serve"]
