"""
Google Gemini text provider.

All google-generativeai specific code is isolated in this module.
"""

import os
import logging
import time
from typing import Optional, List

import google.generativeai as genai  # type: ignore[import-untyped]
from google.generativeai.types import GenerationConfig  # type: ignore[import-untyped]

from ..utils.llm import BaseLLMClient

logger = logging.getLogger(__name__)

ALLOWED_MODELS: List[str] = [
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-2.0-flash",
    "gemini-1.5-pro",
    "gemini-1.5-flash",
]

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


def _validate_gemini_model_name(model_name: str) -> str:
    """
    Normalize a model name to the ``models/`` form and check it is allowed.

    Raises:
        ValueError: If the model is not in ``ALLOWED_MODELS``
    """
    base_name = model_name.replace("models/", "")
    if base_name not in ALLOWED_MODELS:
        raise ValueError(
            f"Invalid Gemini model: {model_name}. Allowed models: {', '.join(ALLOWED_MODELS)}"
        )
    return f"models/{base_name}"


class GeminiProvider(BaseLLMClient):
    """
    Provider for Google's Generative AI models.

    One instance is shared by all requests; ``generate`` keeps no state
    between calls, so concurrent story and title requests are safe.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_GEMINI_MODEL,
        temperature: float = 0.7
    ):
        """
        Initialize Gemini provider.

        Args:
            api_key: Google API key (if None, uses GOOGLE_API_KEY env var)
            model_name: Model name (default: gemini-2.5-flash)
            temperature: Default generation temperature

        Raises:
            ValueError: If the API key is missing or the model name is invalid
        """
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError("GOOGLE_API_KEY environment variable is required")

        genai.configure(api_key=self.api_key)
        self._model_name = _validate_gemini_model_name(model_name)
        self.temperature = temperature

        logger.info(f"Initialized GeminiProvider with model: {self._model_name}")

    @property
    def model_name(self) -> str:
        return self._model_name

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate text using the configured Gemini model.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction
            temperature: Overrides the instance default
            max_tokens: Maximum output tokens

        Returns:
            Generated text, stripped. Empty string when the model returned none.

        Raises:
            Exception: If generation fails. Nothing is retried.
        """
        start_time = time.time()
        try:
            model = genai.GenerativeModel(
                self.model_name,
                system_instruction=system_prompt,
            )
            generation_config = GenerationConfig(
                temperature=temperature if temperature is not None else self.temperature,
                max_output_tokens=max_tokens,
            )
            response = model.generate_content(prompt, generation_config=generation_config)

            text = getattr(response, "text", "") or ""
            if not text:
                finish_reason = "UNKNOWN"
                if getattr(response, "candidates", None):
                    finish_reason = getattr(response.candidates[0], "finish_reason", "UNKNOWN")
                logger.warning(f"Gemini generation finished with reason: {finish_reason}. No text returned.")
                return ""

            logger.debug(f"Gemini generation took {time.time() - start_time:.2f}s")
            return text.strip()
        except (ConnectionError, TimeoutError, OSError) as e:
            logger.error(f"Network error generating content with Gemini: {e}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Error generating content with Gemini: {e}", exc_info=True)
            raise

    def check_availability(self) -> bool:
        """
        Check that the configured model is listed for this API key.

        Returns:
            True if the model is available, False otherwise
        """
        try:
            available = {
                getattr(model, "name", str(model)).replace("models/", "")
                for model in genai.list_models()
            }
        except Exception as e:
            logger.error(f"Error checking Gemini API availability: {e}", exc_info=True)
            return False

        base_model = self.model_name.replace("models/", "")
        if base_model not in available:
            logger.warning(f"Configured Gemini model '{self.model_name}' not found in available models")
            return False
        return True
