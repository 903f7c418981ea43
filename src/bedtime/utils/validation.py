"""
Shape checks for story records.

``validate_story_data`` is the single gate every save goes through. It is a
pure function: it inspects the raw record, never mutates it, and reports the
first rule that fails.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

TITLE_REQUIRED_MESSAGE = "Title is required and must be a string"
CONTENT_REQUIRED_MESSAGE = "Content is required and must be a string"
IMAGES_INVALID_MESSAGE = "Images must be an array of strings"
METADATA_INVALID_MESSAGE = "Metadata must be an object"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of ``validate_story_data``."""
    valid: bool
    error: Optional[str] = None


def _is_present(data: Mapping[str, Any], key: str) -> bool:
    return bool(data.get(key))


def validate_story_data(data: Any) -> ValidationResult:
    """
    Check a raw story record before it is persisted.

    Rules are evaluated in order and the first failure wins:

    1. ``title`` must be a non-empty string (untrimmed value).
    2. ``content`` must be a non-empty string (untrimmed value).
    3. ``images``, when present, must be a list. Elements are not checked
       here; non-strings are filtered by ``normalize_story_data``.
    4. ``metadata``, when present, must be a mapping.

    A falsy value (``None``, ``""``, ``0``, ``False``) counts as absent for
    the optional keys. Any other key is ignored.

    Args:
        data: Arbitrary decoded request body

    Returns:
        ValidationResult with ``valid`` and, on failure, the error message
    """
    if not isinstance(data, Mapping):
        return ValidationResult(False, TITLE_REQUIRED_MESSAGE)

    title = data.get("title")
    if not isinstance(title, str) or not title:
        return ValidationResult(False, TITLE_REQUIRED_MESSAGE)

    content = data.get("content")
    if not isinstance(content, str) or not content:
        return ValidationResult(False, CONTENT_REQUIRED_MESSAGE)

    if _is_present(data, "images") and not isinstance(data["images"], (list, tuple)):
        return ValidationResult(False, IMAGES_INVALID_MESSAGE)

    if _is_present(data, "metadata") and not isinstance(data["metadata"], Mapping):
        return ValidationResult(False, METADATA_INVALID_MESSAGE)

    return ValidationResult(True)


def normalize_story_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Normalize a record that already passed ``validate_story_data``.

    Trims title and content, keeps only string image references (order
    preserved) and defaults metadata to an empty mapping. Any ``userId``
    in the input is dropped; ownership comes from the session.
    """
    images = data.get("images") or []
    metadata = data.get("metadata") or {}
    return {
        "title": data["title"].strip(),
        "content": data["content"].strip(),
        "images": [image for image in images if isinstance(image, str)],
        "metadata": dict(metadata),
    }
