"""
Application configuration from environment variables.

``load_config`` is read once by ``create_app`` after ``load_dotenv`` has
populated the environment. Tests pass overrides to ``create_app`` instead
of touching the environment.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

_PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_DB_PATH = _PROJECT_ROOT / "data" / "bedtime.db"
PLACEHOLDER_IMAGE = "/placeholder.svg"


def get_env_int(var_name: str, default: int, min_value: int = 1, max_value: int = 100000) -> int:
    """Get and range-check an integer environment variable."""
    value = os.getenv(var_name)
    if value is None or value == "":
        return default
    try:
        int_value = int(value)
    except ValueError:
        raise ValueError(f"{var_name} must be a valid integer, got '{value}'")
    if int_value < min_value or int_value > max_value:
        raise ValueError(
            f"{var_name} must be between {min_value} and {max_value}, got {int_value}"
        )
    return int_value


def get_env_float(var_name: str, default: float, min_value: float = 0.0, max_value: float = 3600.0) -> float:
    value = os.getenv(var_name)
    if value is None or value == "":
        return default
    try:
        float_value = float(value)
    except ValueError:
        raise ValueError(f"{var_name} must be a number, got '{value}'")
    if float_value < min_value or float_value > max_value:
        raise ValueError(
            f"{var_name} must be between {min_value} and {max_value}, got {float_value}"
        )
    return float_value


def get_env_str(var_name: str, default: str, allowed_values: Optional[List[str]] = None) -> str:
    """Get a string environment variable, optionally restricted to a set of values."""
    value = os.getenv(var_name, default)
    if allowed_values and value not in allowed_values:
        raise ValueError(
            f"{var_name} must be one of {allowed_values}, got '{value}'"
        )
    return value


def load_config() -> Dict[str, Any]:
    """Build the Flask config mapping from the environment."""
    flask_env = get_env_str("FLASK_ENV", "production")
    return {
        "ENV_NAME": flask_env,
        "DEBUG_ERRORS": flask_env == "development",
        "SECRET_KEY": os.getenv("SECRET_KEY", "dev-secret-key-change-me"),
        "DATABASE_PATH": get_env_str("DATABASE_PATH", str(DEFAULT_DB_PATH)),
        "CORS_ORIGINS": get_env_str("CORS_ORIGINS", "*"),
        # Providers
        "GOOGLE_API_KEY": os.getenv("GOOGLE_API_KEY"),
        "LLM_MODEL": os.getenv("LLM_MODEL"),
        "LLM_TEMPERATURE": get_env_float("LLM_TEMPERATURE", 0.7, max_value=2.0),
        "FIREWORKS_API_KEY": os.getenv("FIREWORKS_API_KEY"),
        "IMAGE_TIMEOUT_SECONDS": get_env_int("IMAGE_TIMEOUT_SECONDS", 60, max_value=600),
        "PROXY_TIMEOUT_SECONDS": get_env_int("PROXY_TIMEOUT_SECONDS", 15, max_value=600),
        "PLACEHOLDER_IMAGE": get_env_str("PLACEHOLDER_IMAGE", PLACEHOLDER_IMAGE),
        # Drafts
        "REDIS_URL": os.getenv("REDIS_URL"),
        "DRAFT_STORE": get_env_str("DRAFT_STORE", "memory", allowed_values=["memory", "redis"]),
        "DRAFT_STORE_MAX_ENTRIES": get_env_int("DRAFT_STORE_MAX_ENTRIES", 10, max_value=1000),
        "DRAFT_TTL_SECONDS": get_env_int("DRAFT_TTL_SECONDS", 7 * 24 * 3600, max_value=90 * 24 * 3600),
        # Reading view
        "REVEAL_INTERVAL_SECONDS": get_env_float("REVEAL_INTERVAL_SECONDS", 1.0),
        # Rate limiting (Flask-Limiter reads the RATELIMIT_* keys itself)
        "RATELIMIT_STORAGE_URI": os.getenv("REDIS_URL", "memory://"),
        "RATELIMIT_HEADERS_ENABLED": True,
        "DEFAULT_RATE_LIMITS": ["200 per day", "50 per hour"],
        "GENERATE_RATE_LIMIT": get_env_str("GENERATE_RATE_LIMIT", "10 per minute"),
        "IMAGE_RATE_LIMIT": get_env_str("IMAGE_RATE_LIMIT", "30 per minute"),
        "AUTH_RATE_LIMIT": get_env_str("AUTH_RATE_LIMIT", "20 per minute"),
        "STORY_RATE_LIMIT": get_env_str("STORY_RATE_LIMIT", "100 per hour"),
    }
