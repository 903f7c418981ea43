"""
Provider interfaces for text and image generation.

Concrete implementations live in ``src.bedtime.providers``. Services only
depend on these base classes, so tests can pass simple fakes.
"""

from abc import ABC, abstractmethod
from typing import Optional


class BaseLLMClient(ABC):
    """A hosted language model that turns a prompt into text."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Name of the model requests are sent to."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate text for ``prompt``.

        Raises:
            Exception: Any provider failure; callers decide whether it is fatal
        """

    def check_availability(self) -> bool:
        return True


class ImageGenerationError(Exception):
    """Raised by image providers when the service rejects or fails a request."""


class BaseImageClient(ABC):
    """A hosted image model that turns a prompt into an image reference."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """
        Generate one image.

        Returns:
            A reference usable as an ``<img src>`` (URL or ``data:`` URI)

        Raises:
            ImageGenerationError: If the service fails
        """
