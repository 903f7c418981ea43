"""
Text and image provider implementations.

Text: Google Gemini via GeminiProvider.
Images: Fireworks Stable Diffusion XL via FireworksImageProvider.
"""

from .gemini import GeminiProvider
from .fireworks import FireworksImageProvider
from .factory import (
    create_provider,
    create_image_provider,
)

__all__ = [
    "GeminiProvider",
    "FireworksImageProvider",
    "create_provider",
    "create_image_provider",
]
