"""
Proxy gateway for lets-listen.

A Flask application that forwards search and artist lookups to the Audius
discovery API so the player (browser or CLI) never talks to Audius directly.

Endpoints:
    GET /api/search?query=<q>&limit=<n>         Track search (limit defaults to 10)
    GET /api/audius/search?query=<q>&limit=<n>  Same as /api/search
    GET /api/audius/artist/<id>                 Artist profile
    GET /api/audius?query=<q>&limit=<n>         Combined endpoint: search...
    GET /api/audius?artistId=<id>               ...or artist lookup (artistId wins)
    GET /api/health, /health                    Liveness report

Every response carries permissive CORS headers and any OPTIONS request is
answered with 200 and an empty body. Errors use the envelope
{"error": <summary>, "details": <reason>} with 400 for missing input and
500 for upstream failures.

Usage:
    from lets_listen.gateway import create_app

    app = create_app(config)
    app.run(host=config.gateway.host, port=config.gateway.port)
"""

from datetime import datetime, timezone
from pathlib import Path

from flask import Flask, Response, abort, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException

from lets_listen.audius.client import DEFAULT_SEARCH_LIMIT, AudiusClient
from lets_listen.core.config import Config
from lets_listen.core.exceptions import BadRequestError, LetsListenError
from lets_listen.core.logger import get_logger

logger = get_logger(__name__)


SERVICE_NAME = "Let's Listen Music Server"

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}

SEARCH_FAILED = "Failed to fetch tracks from Audius API"
ARTIST_FAILED = "Failed to fetch artist details from Audius API"
COMBINED_FAILED = "Failed to fetch data from Audius API"


def create_app(config: Config | None = None, client: AudiusClient | None = None) -> Flask:
    """
    Build the gateway Flask application.

    Args:
        config: Application configuration. Defaults are used when None.
        client: Upstream client. Built from config when None; tests pass a mock.

    Returns:
        Flask: Configured application with all routes registered.
    """
    config = config or Config()
    client = client or AudiusClient(config.audius, timeout=config.network.timeout)

    app = Flask(__name__, static_folder=None)
    app.config["LETS_LISTEN_ENVIRONMENT"] = config.gateway.environment
    app.extensions["audius_client"] = client

    @app.before_request
    def _short_circuit_preflight():
        if request.method == "OPTIONS":
            return Response(status=200)
        return None

    @app.after_request
    def _add_cors_headers(response: Response) -> Response:
        for header, value in CORS_HEADERS.items():
            response.headers[header] = value
        return response

    @app.get("/api/search")
    @app.get("/api/audius/search")
    def search():
        query, limit = _search_params()
        if not query:
            return jsonify({"error": "Missing query parameter"}), 400
        return _forward(SEARCH_FAILED, client.search_tracks, query, limit)

    @app.get("/api/audius/artist/<artist_id>")
    def artist(artist_id: str):
        if not artist_id.strip():
            return jsonify({"error": "Missing artist ID"}), 400
        return _forward(ARTIST_FAILED, client.get_user, artist_id)

    @app.get("/api/audius")
    def combined():
        artist_id = request.args.get("artistId", "").strip()
        if artist_id:
            return _forward(COMBINED_FAILED, client.get_user, artist_id)

        query, limit = _search_params()
        if query:
            return _forward(COMBINED_FAILED, client.search_tracks, query, limit)

        return jsonify({"error": "Missing query parameter or artist ID"}), 400

    @app.get("/api/health")
    @app.get("/health")
    def health():
        return jsonify({
            "status": "OK",
            "message": "Let's Listen API is working!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "url": request.full_path.rstrip("?"),
            "environment": config.gateway.environment,
            "service": SERVICE_NAME,
        })

    if config.gateway.static_dir is not None:
        _register_static_routes(app, config.gateway.static_dir)

    @app.errorhandler(HTTPException)
    def _http_error(error: HTTPException):
        return jsonify({"error": error.name, "details": error.description}), error.code

    @app.errorhandler(Exception)
    def _internal_error(error: Exception):
        logger.exception("Server error")
        development = app.config["LETS_LISTEN_ENVIRONMENT"] == "development"
        return jsonify({
            "error": "Internal server error",
            "details": str(error) if development else "Something went wrong",
        }), 500

    return app


def _search_params() -> tuple[str, int]:
    """
    Read query and limit from the request arguments.

    A missing or non-numeric limit falls back to the default of 10.
    """
    query = request.args.get("query", "").strip()
    limit = request.args.get("limit", DEFAULT_SEARCH_LIMIT, type=int)
    if limit is None or limit < 1:
        limit = DEFAULT_SEARCH_LIMIT
    return query, limit


def _forward(failure_summary: str, fetch, *args):
    """
    Call the upstream client and turn its outcome into a JSON response.

    Args:
        failure_summary: Text for the 'error' field when the call fails.
        fetch: Client method to call.
        *args: Arguments for fetch.

    Returns:
        The upstream payload with 200, 400 for rejected input, or the error
        envelope with 500 for any upstream failure.
    """
    try:
        payload = fetch(*args)
    except BadRequestError as e:
        return jsonify({"error": e.message}), 400
    except LetsListenError as e:
        logger.error(f"API Error: {e.message}")
        return jsonify({"error": failure_summary, "details": e.message}), 500

    return jsonify(payload)


def _register_static_routes(app: Flask, static_dir: Path) -> None:
    """
    Serve front-end files from static_dir.

    Existing files are served as-is; any other non-API path returns
    index.html so client-side routes keep working.
    """
    root = str(static_dir)

    @app.get("/", defaults={"path": ""})
    @app.get("/<path:path>")
    def static_files(path: str):
        if path.startswith("api/"):
            abort(404)
        if path and (static_dir / path).is_file():
            return send_from_directory(root, path)
        if not (static_dir / "index.html").is_file():
            abort(404)
        return send_from_directory(root, "index.html")
