"""
Fireworks Stable Diffusion XL image provider.

Images come back as JPEG bytes and are handed to the client as a
``data:image/jpeg;base64,...`` reference so nothing has to be hosted.
"""

import base64
import logging
import os
from typing import Optional

import requests

from ..utils.llm import BaseImageClient, ImageGenerationError

logger = logging.getLogger(__name__)

FIREWORKS_IMAGE_URL = (
    "https://api.fireworks.ai/inference/v1/image_generation/"
    "accounts/fireworks/models/stable-diffusion-xl-1024-v1-0"
)
DEFAULT_IMAGE_SIZE = 1024
DEFAULT_SEED = 0


class FireworksImageProvider(BaseImageClient):
    """Image provider calling the Fireworks SDXL endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: str = FIREWORKS_IMAGE_URL,
        timeout: int = 60,
        width: int = DEFAULT_IMAGE_SIZE,
        height: int = DEFAULT_IMAGE_SIZE,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Fireworks provider.

        Args:
            api_key: Fireworks API key (if None, uses FIREWORKS_API_KEY env var)
            endpoint: Image generation URL
            timeout: Request timeout in seconds
            width: Image width in pixels
            height: Image height in pixels
            session: Optional requests session (connection reuse, tests)

        Raises:
            ValueError: If no API key is configured
        """
        self.api_key = api_key or os.getenv("FIREWORKS_API_KEY")
        if not self.api_key:
            raise ValueError("FIREWORKS_API_KEY environment variable is required")
        self.endpoint = endpoint
        self.timeout = timeout
        self.width = width
        self.height = height
        self._session = session or requests.Session()

    def generate(self, prompt: str) -> str:
        try:
            response = self._session.post(
                self.endpoint,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "image/jpeg",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json={
                    "prompt": prompt,
                    "height": self.height,
                    "width": self.width,
                    "seed": DEFAULT_SEED,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Network error calling Fireworks: {e}")
            raise ImageGenerationError(f"Fireworks request failed: {e}") from e

        if not response.ok:
            raise ImageGenerationError(f"Fireworks API error: {response.text}")

        encoded = base64.b64encode(response.content).decode("ascii")
        return f"data:image/jpeg;base64,{encoded}"
