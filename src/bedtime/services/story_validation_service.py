"""
Story validation service.

Turns validation failures into ``ValidationError`` so route handlers can
stay linear. Covers:
- story submissions (wraps ``validate_story_data``)
- generation requests
- image prompts and proxy URLs
- export formats and account forms
"""

import logging
import re
from typing import Any, Dict, List
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from src.bedtime.models import GenerationRequest, STORY_LENGTHS
from src.bedtime.utils.errors import ValidationError
from src.bedtime.utils.validation import (
    CONTENT_REQUIRED_MESSAGE,
    TITLE_REQUIRED_MESSAGE,
    normalize_story_data,
    validate_story_data,
)

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class StoryValidationService:
    """Service for validating story input parameters."""

    MAX_FIELD_LENGTH = 500
    MAX_PROMPT_LENGTH = 2000
    MAX_PREVIOUS_STORY_LENGTH = 5000
    MIN_PASSWORD_LENGTH = 8
    VALID_EXPORT_FORMATS = ["pdf", "docx", "epub", "markdown", "txt"]

    def validate_story_submission(self, data: Any) -> Dict[str, Any]:
        """
        Validate and normalize a story about to be saved.

        Args:
            data: Raw request body

        Returns:
            Normalized fields: title, content, images, metadata

        Raises:
            ValidationError: With the validator's message on failure
        """
        result = validate_story_data(data)
        if not result.valid:
            raise ValidationError(result.error)

        fields = normalize_story_data(data)
        # Whitespace-only values pass the raw check but not the record invariant
        if not fields["title"]:
            raise ValidationError(TITLE_REQUIRED_MESSAGE)
        if not fields["content"]:
            raise ValidationError(CONTENT_REQUIRED_MESSAGE)
        return fields

    def validate_images_update(self, data: Dict[str, Any]) -> List[str]:
        images = data.get("images")
        if not isinstance(images, list):
            raise ValidationError(
                "Images must be an array of strings",
                details={"field": "images"}
            )
        return [image for image in images if isinstance(image, str)]

    def _optional_text(self, data: Dict[str, Any], key: str, max_length: int) -> Any:
        value = data.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError(
                f"{key} must be a string if provided.",
                details={"field": key, "type": type(value).__name__}
            )
        value = value.strip()
        if len(value) > max_length:
            raise ValidationError(
                f"{key} is too long (maximum {max_length} characters).",
                details={"field": key, "length": len(value), "max_length": max_length}
            )
        return value or None

    def validate_generation_input(self, data: Dict[str, Any]) -> GenerationRequest:
        """
        Validate a story generation request.

        ``age``, ``characters``, ``setting`` and ``moral`` are required
        non-empty strings. ``length`` defaults to medium.

        Raises:
            ValidationError: If a field is missing or malformed
        """
        fields: Dict[str, Any] = {}
        for key in ("age", "characters", "setting", "moral"):
            value = self._optional_text(data, key, self.MAX_FIELD_LENGTH)
            if not value:
                raise ValidationError(
                    f"{key} is required.",
                    details={"field": key}
                )
            fields[key] = value

        length = data.get("length") or "medium"
        if length not in STORY_LENGTHS:
            raise ValidationError(
                f"Invalid length: {length}. Choose one of: {', '.join(STORY_LENGTHS)}",
                details={"field": "length", "allowed": list(STORY_LENGTHS)}
            )

        try:
            return GenerationRequest(
                **fields,
                length=length,
                tone=self._optional_text(data, "tone", self.MAX_FIELD_LENGTH),
                continuation=bool(data.get("continuation", False)),
                previous_story=self._optional_text(data, "previousStory", self.MAX_PREVIOUS_STORY_LENGTH),
                prompt=self._optional_text(data, "prompt", self.MAX_PROMPT_LENGTH),
                illustrate=bool(data.get("illustrate", False)),
            )
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid generation request.",
                details={"errors": e.errors(include_url=False)}
            )

    def validate_continuation_input(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Optional prompt and replacement characters/setting/moral for a sequel."""
        return {
            "prompt": self._optional_text(data, "prompt", self.MAX_PROMPT_LENGTH),
            "new_characters": self._optional_text(data, "newCharacters", self.MAX_FIELD_LENGTH),
            "new_setting": self._optional_text(data, "newSetting", self.MAX_FIELD_LENGTH),
            "new_moral": self._optional_text(data, "newMoral", self.MAX_FIELD_LENGTH),
            "illustrate": bool(data.get("illustrate", False)),
        }

    def validate_image_prompt(self, prompt: Any) -> str:
        if not prompt or not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("Prompt is required", details={"field": "prompt"})
        if len(prompt) > self.MAX_PROMPT_LENGTH:
            raise ValidationError(
                f"Prompt is too long (maximum {self.MAX_PROMPT_LENGTH} characters).",
                details={"field": "prompt", "length": len(prompt)}
            )
        return prompt.strip()

    def validate_proxy_url(self, url: Any) -> str:
        """
        Check an image URL before it is fetched server-side.

        Only absolute http(s) URLs are accepted.
        """
        if not url:
            raise ValidationError("Missing URL parameter", details={"field": "url"})
        if not isinstance(url, str):
            raise ValidationError("Invalid URL format", details={"field": "url"})
        parsed = urlparse(url.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("Invalid URL format", details={"field": "url"})
        return url.strip()

    def validate_export_format(self, format_type: str) -> str:
        normalized = (format_type or "").lower()
        if normalized == "md":
            normalized = "markdown"
        if normalized not in self.VALID_EXPORT_FORMATS:
            raise ValidationError(
                f"Unsupported export format: {format_type}. "
                f"Supported formats: {', '.join(self.VALID_EXPORT_FORMATS)}",
                details={"format": format_type, "supported_formats": self.VALID_EXPORT_FORMATS}
            )
        return normalized

    def validate_registration(self, data: Dict[str, Any]) -> Dict[str, Any]:
        email = data.get("email")
        password = data.get("password")
        name = data.get("name")
        if not isinstance(email, str) or not _EMAIL_PATTERN.match(email.strip()):
            raise ValidationError("A valid email address is required.", details={"field": "email"})
        if not isinstance(password, str) or len(password) < self.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {self.MIN_PASSWORD_LENGTH} characters.",
                details={"field": "password"}
            )
        if name is not None and not isinstance(name, str):
            raise ValidationError("Name must be a string if provided.", details={"field": "name"})
        return {"email": email.strip(), "password": password, "name": (name or "").strip() or None}

    def validate_login(self, data: Dict[str, Any]) -> Dict[str, str]:
        email = data.get("email")
        password = data.get("password")
        if not isinstance(email, str) or not email.strip() or not isinstance(password, str) or not password:
            raise ValidationError("Email and password are required.", details={"fields": ["email", "password"]})
        return {"email": email.strip(), "password": password}
