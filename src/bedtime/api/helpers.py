"""
Accessors for per-app collaborators.

``create_app`` stores the repository, user storage, draft store and
providers in ``app.extensions``. Providers are created lazily so the app
starts without API keys; tests place fakes there directly.
"""

import logging
from typing import Any, Dict

from flask import current_app, request

from src.bedtime.drafts import DraftStore
from src.bedtime.providers.factory import create_image_provider, create_provider
from src.bedtime.utils.errors import ServiceUnavailableError, ValidationError
from src.bedtime.utils.llm import BaseImageClient, BaseLLMClient
from src.bedtime.utils.repository import StoryRepository

logger = logging.getLogger(__name__)


def get_story_repository() -> StoryRepository:
    return current_app.extensions["story_repository"]


def get_user_storage():
    return current_app.extensions["user_storage"]


def get_draft_store() -> DraftStore:
    return current_app.extensions["draft_store"]


def get_text_provider() -> BaseLLMClient:
    """
    Text provider for this app, created on first use.

    Raises:
        ServiceUnavailableError: If the provider cannot be configured
    """
    provider = current_app.extensions.get("text_provider")
    if provider is None:
        try:
            provider = create_provider(
                api_key=current_app.config.get("GOOGLE_API_KEY"),
                model_name=current_app.config.get("LLM_MODEL"),
                temperature=current_app.config.get("LLM_TEMPERATURE", 0.7),
            )
        except ValueError as e:
            logger.error(f"Text provider unavailable: {e}")
            raise ServiceUnavailableError("llm", str(e))
        current_app.extensions["text_provider"] = provider
    return provider


def get_image_provider() -> BaseImageClient:
    """
    Image provider for this app, created on first use.

    Raises:
        ValueError: If the provider cannot be configured. Image callers
            treat this like any other image failure.
    """
    provider = current_app.extensions.get("image_provider")
    if provider is None:
        provider = create_image_provider(
            api_key=current_app.config.get("FIREWORKS_API_KEY"),
            timeout=current_app.config.get("IMAGE_TIMEOUT_SECONDS", 60),
        )
        current_app.extensions["image_provider"] = provider
    return provider


def get_json_body() -> Dict[str, Any]:
    """
    Decoded JSON object from the request body.

    Raises:
        ValidationError: If the body is not a JSON object
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError(
            "Request body must be a JSON object.",
            details={"type": type(data).__name__}
        )
    return data
