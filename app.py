"""Flask web app for Bedtime Stories."""

# Load environment variables from .env file before other imports
from dotenv import load_dotenv  # type: ignore[import-untyped]

load_dotenv()  # noqa: E402

import os  # noqa: E402
import logging  # noqa: E402
from typing import Any, Dict, Optional  # noqa: E402
from flask import Flask  # noqa: E402
from flask_cors import CORS  # type: ignore[import-untyped]  # noqa: E402
from flask_limiter import Limiter  # type: ignore[import-untyped]  # noqa: E402
from flask_limiter.util import get_remote_address  # type: ignore[import-untyped]  # noqa: E402
from src.bedtime.config import load_config  # noqa: E402
from src.bedtime.auth import init_auth  # noqa: E402
from src.bedtime.drafts import create_draft_store  # noqa: E402
from src.bedtime.utils import create_story_repository  # noqa: E402
from src.bedtime.utils.db_storage import UserStorage  # noqa: E402
from src.bedtime.utils.errors import register_error_handlers  # noqa: E402
from src.bedtime.api.routes import register_routes  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO if os.getenv('FLASK_ENV') != 'development' else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Overrides applied on top of the environment configuration

    Returns:
        Configured Flask app with storage, auth, rate limits and routes
    """
    flask_app = Flask(__name__, static_folder='static')
    flask_app.config.update(load_config())
    if config:
        flask_app.config.update(config)

    CORS(flask_app, origins=flask_app.config["CORS_ORIGINS"])

    # Configure rate limiting
    limiter = Limiter(
        key_func=get_remote_address,
        app=flask_app,
        default_limits=flask_app.config["DEFAULT_RATE_LIMITS"],
        storage_uri=flask_app.config["RATELIMIT_STORAGE_URI"],
        headers_enabled=flask_app.config["RATELIMIT_HEADERS_ENABLED"],
    )
    # Route decorators only hold a weak reference to the limiter
    flask_app.extensions["rate_limiter"] = limiter

    db_path = flask_app.config["DATABASE_PATH"]
    flask_app.extensions["story_repository"] = create_story_repository(db_path)
    flask_app.extensions["user_storage"] = UserStorage(db_path)
    flask_app.extensions["draft_store"] = create_draft_store(
        backend=flask_app.config["DRAFT_STORE"],
        max_entries=flask_app.config["DRAFT_STORE_MAX_ENTRIES"],
        redis_url=flask_app.config["REDIS_URL"],
        ttl_seconds=flask_app.config["DRAFT_TTL_SECONDS"],
    )

    init_auth(flask_app)
    register_error_handlers(flask_app, debug=flask_app.config["DEBUG_ERRORS"])
    register_routes(flask_app, limiter)

    if not flask_app.config.get("GOOGLE_API_KEY"):
        logger.warning("GOOGLE_API_KEY not set: story generation will answer 503")
    if not flask_app.config.get("FIREWORKS_API_KEY"):
        logger.warning("FIREWORKS_API_KEY not set: illustrations will use the placeholder")

    logger.info(f"Bedtime Stories app created (storage: {db_path})")
    return flask_app


app = create_app()


if __name__ == '__main__':
    # Production settings
    debug_mode = os.getenv('FLASK_ENV') == 'development'
    port = int(os.getenv('PORT', 5000))
    host = os.getenv('HOST', '0.0.0.0')

    app.run(debug=debug_mode, host=host, port=port)
