"""Flask app for the AstroBot AI builder API.

Wires the document store, parts catalog, budget allocator, LLM selection
and build repository together and exposes them under /api/v1.
"""

import base64
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request

# Load environment variables from .env file before configuration is read
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

from . import config  # noqa: E402
from .api import SERVICES_KEY, Services, api  # noqa: E402
from .budget import BudgetAllocator  # noqa: E402
from .builder import BuildAssembler  # noqa: E402
from .builds import BuildRepository  # noqa: E402
from .catalog import CatalogCache, CatalogFetcher  # noqa: E402
from .categories import load_budget_fractions  # noqa: E402
from .llm import OpenAIClient  # noqa: E402
from .logging_utils import setup_logging  # noqa: E402
from .selection import SelectionPrompter, TextCompletion  # noqa: E402
from .store import DocumentStore  # noqa: E402

__all__ = ["create_app", "build_services", "main"]

logger = logging.getLogger(__name__)


def build_services(
    store: Optional[DocumentStore] = None,
    llm: Optional[TextCompletion] = None,
    fetcher: Optional[CatalogFetcher] = None,
) -> Services:
    """Construct every collaborator from configuration.

    Any of the store, LLM and fetcher may be passed in (tests, scripts).
    """
    store = store or DocumentStore(config.DB_PATH)
    cache = CatalogCache(store)
    fetcher = fetcher or CatalogFetcher(cache)
    allocator = BudgetAllocator(fractions=load_budget_fractions(config.BUDGET_FRACTIONS_FILE))
    prompter = SelectionPrompter(llm or OpenAIClient())
    builds = BuildRepository(store)
    assembler = BuildAssembler(fetcher, allocator, prompter, builds)
    return Services(assembler=assembler, builds=builds, cache=cache)


# ---------- BASIC AUTH ----------


def _basic_auth_creds() -> tuple[Optional[str], Optional[str]]:
    """Get API credentials from environment."""
    return os.getenv("API_USER"), os.getenv("API_PASS")


def _unauthorized() -> Response:
    return Response(
        "Authentication required",
        401,
        {"WWW-Authenticate": 'Basic realm="Login Required"'},
    )


def require_basic_auth() -> Optional[Response]:
    """
    Enforce HTTP Basic Auth for all routes except the healthcheck.
    Skips enforcement if credentials are not configured (API_USER/API_PASS unset).
    """
    user, password = _basic_auth_creds()
    if not user or not password or request.path.endswith("/healthcheck"):
        return None

    header = request.headers.get("Authorization", "")
    if not header.startswith("Basic "):
        return _unauthorized()

    try:
        decoded = base64.b64decode(header.split(" ", 1)[1]).decode("utf-8")
        username, passwd = decoded.split(":", 1)
    except (ValueError, UnicodeDecodeError):
        return _unauthorized()

    if username == user and passwd == password:
        return None
    return _unauthorized()


def create_app(services: Optional[Services] = None) -> Flask:
    """Create the Flask app.

    Args:
        services: Pre-built collaborators; built from configuration if omitted.
    """
    app = Flask(__name__)
    app.extensions[SERVICES_KEY] = services or build_services()
    app.before_request(require_basic_auth)
    app.register_blueprint(api)

    @app.errorhandler(404)
    def _route_not_found(e):
        return jsonify({"error": "Cannot access route"}), 404

    return app


def main() -> None:
    setup_logging(logging.DEBUG if config.FLASK_DEBUG else logging.INFO)
    app = create_app()
    logger.info(f"Server is running on port {config.FLASK_PORT}")
    app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=config.FLASK_DEBUG)


if __name__ == "__main__":
    main()
