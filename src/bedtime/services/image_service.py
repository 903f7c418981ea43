"""
Image service.

Generates illustrations through the configured image provider and proxies
remote images for clients that cannot fetch them directly.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import requests

from src.bedtime.config import PLACEHOLDER_IMAGE
from src.bedtime.utils.errors import ImageFetchError, UpstreamServiceError, ValidationError
from src.bedtime.utils.llm import BaseImageClient
from src.bedtime.utils.url_safety import UnsafeURLError, fetch_public_url

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"
PROXY_CACHE_CONTROL = "public, max-age=31536000"
MAX_PARALLEL_IMAGES = 5


@dataclass(frozen=True)
class ProxiedImage:
    content: bytes
    content_type: str
    cache_control: str = PROXY_CACHE_CONTROL


class ImageService:
    """Service for illustration generation and image proxying."""

    def __init__(
        self,
        provider_factory: Callable[[], BaseImageClient],
        placeholder: str = PLACEHOLDER_IMAGE,
        proxy_timeout: int = 15,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize image service.

        Args:
            provider_factory: Returns the image provider; called per request
            placeholder: Reference substituted for failed illustrations
            proxy_timeout: Timeout for proxied fetches in seconds
            session: Optional requests session used by the proxy
        """
        self._provider_factory = provider_factory
        self.placeholder = placeholder
        self.proxy_timeout = proxy_timeout
        self._session = session

    def generate_image(self, prompt: str) -> str:
        """Generate one illustration. Provider errors propagate."""
        return self._provider_factory().generate(prompt)

    def _generate_with(self, provider: BaseImageClient, prompt: str) -> Tuple[str, Optional[str]]:
        try:
            return provider.generate(prompt), None
        except Exception as e:
            logger.warning(f"Image generation failed, using placeholder: {e}")
            return self.placeholder, str(e)

    def generate_or_placeholder(self, prompt: str) -> Tuple[str, Optional[str]]:
        """
        Generate one illustration, substituting the placeholder on failure.

        Returns:
            Tuple of (image reference, error message or None)
        """
        try:
            return self.generate_image(prompt), None
        except Exception as e:
            logger.warning(f"Image generation failed, using placeholder: {e}")
            return self.placeholder, str(e)

    def generate_many(self, prompts: Sequence[str]) -> List[str]:
        """Generate illustrations concurrently; each failure becomes a placeholder."""
        if not prompts:
            return []
        # Resolved here: worker threads have no application context
        try:
            provider = self._provider_factory()
        except Exception as e:
            logger.warning(f"Image provider unavailable, using {len(prompts)} placeholders: {e}")
            return self.placeholders(len(prompts))

        workers = min(len(prompts), MAX_PARALLEL_IMAGES)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda prompt: self._generate_with(provider, prompt), prompts))
        failures = sum(1 for _, error in results if error)
        if failures:
            logger.warning(f"{failures} of {len(prompts)} illustrations replaced by placeholder")
        return [image for image, _ in results]

    def placeholders(self, count: int) -> List[str]:
        return [self.placeholder] * count

    def proxy_image(self, url: str) -> ProxiedImage:
        """
        Fetch a remote image on behalf of the client.

        Raises:
            ValidationError: If the URL or a redirect target is not a public host
            ImageFetchError: If the remote server answers with an error status
            UpstreamServiceError: If the remote server cannot be reached
        """
        getter = self._session.get if self._session else None
        try:
            response = fetch_public_url(url, self.proxy_timeout, get=getter)
        except UnsafeURLError as e:
            raise ValidationError(f"Image URL is not allowed: {e}")
        except requests.RequestException as e:
            logger.error(f"Error proxying image {url}: {e}")
            raise UpstreamServiceError("Internal Server Error", str(e))

        if not response.ok:
            logger.info(f"Proxied image {url} answered {response.status_code}")
            raise ImageFetchError(response.status_code, url)

        return ProxiedImage(
            content=response.content,
            content_type=response.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
        )
