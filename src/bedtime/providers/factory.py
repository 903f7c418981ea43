"""
Provider factory.

Creates text and image providers from configuration.
"""

import os
import logging
from typing import Optional

from .gemini import GeminiProvider, DEFAULT_GEMINI_MODEL
from .fireworks import FireworksImageProvider
from ..utils.llm import BaseLLMClient, BaseImageClient

logger = logging.getLogger(__name__)


def create_provider(provider_name: Optional[str] = None, **kwargs) -> BaseLLMClient:
    """
    Create a text provider instance.

    Args:
        provider_name: 'gemini' or None to read LLM_PROVIDER
        **kwargs: api_key, model_name, temperature

    Raises:
        ValueError: If provider_name is unknown or the provider is misconfigured
    """
    if provider_name is None:
        provider_name = os.getenv("LLM_PROVIDER", "gemini").lower()

    if provider_name == "gemini":
        logger.debug("Creating Gemini text provider")
        return GeminiProvider(
            api_key=kwargs.get("api_key"),
            model_name=kwargs.get("model_name") or os.getenv("LLM_MODEL", DEFAULT_GEMINI_MODEL),
            temperature=kwargs.get("temperature", float(os.getenv("LLM_TEMPERATURE", "0.7"))),
        )
    raise ValueError(
        f"Unknown LLM provider: {provider_name}. "
        f"Supported providers: gemini"
    )


def create_image_provider(provider_name: Optional[str] = None, **kwargs) -> BaseImageClient:
    """
    Create an image provider instance.

    Args:
        provider_name: 'fireworks' or None to read IMAGE_PROVIDER
        **kwargs: api_key, timeout

    Raises:
        ValueError: If provider_name is unknown or the provider is misconfigured
    """
    if provider_name is None:
        provider_name = os.getenv("IMAGE_PROVIDER", "fireworks").lower()

    if provider_name == "fireworks":
        logger.debug("Creating Fireworks image provider")
        return FireworksImageProvider(
            api_key=kwargs.get("api_key"),
            timeout=kwargs.get("timeout", 60),
        )
    raise ValueError(
        f"Unknown image provider: {provider_name}. "
        f"Supported providers: fireworks"
    )
