"""
Tests for story record validation and normalization.
"""

import pytest

from src.bedtime.utils.validation import (
    CONTENT_REQUIRED_MESSAGE,
    IMAGES_INVALID_MESSAGE,
    METADATA_INVALID_MESSAGE,
    TITLE_REQUIRED_MESSAGE,
    ValidationResult,
    normalize_story_data,
    validate_story_data,
)
from src.bedtime.services.story_validation_service import StoryValidationService
from src.bedtime.utils.errors import ValidationError
from tests.test_constants import WHITESPACE_ONLY


class TestValidateStoryData:
    """Rules are checked in order and the first failure is reported."""

    def test_minimal_record_is_valid(self):
        assert validate_story_data({"title": "T", "content": "C"}) == ValidationResult(True)

    @pytest.mark.parametrize("data", [
        {"content": "C"},
        {"title": None, "content": "C"},
        {"title": 42, "content": "C"},
        {"title": "", "content": "C"},
        {"title": ["T"], "content": "C"},
    ])
    def test_missing_or_non_string_title(self, data):
        result = validate_story_data(data)
        assert result.valid is False
        assert result.error == TITLE_REQUIRED_MESSAGE

    @pytest.mark.parametrize("data", [None, "a story", ["title", "content"], 7])
    def test_non_object_body_fails_title_rule(self, data):
        assert validate_story_data(data).error == TITLE_REQUIRED_MESSAGE

    def test_title_checked_before_content(self):
        assert validate_story_data({}).error == TITLE_REQUIRED_MESSAGE

    @pytest.mark.parametrize("content", [None, "", 3.5, {"text": "C"}])
    def test_missing_or_non_string_content(self, content):
        result = validate_story_data({"title": "T", "content": content})
        assert result.valid is False
        assert result.error == CONTENT_REQUIRED_MESSAGE

    def test_non_array_images_reported_regardless_of_metadata(self):
        result = validate_story_data({
            "title": "T", "content": "C", "images": "img.png", "metadata": "not-an-object"
        })
        assert result.error == IMAGES_INVALID_MESSAGE

    def test_metadata_must_be_object(self):
        result = validate_story_data({"title": "T", "content": "C", "metadata": "not-an-object"})
        assert result.valid is False
        assert result.error == METADATA_INVALID_MESSAGE

    def test_array_metadata_rejected(self):
        assert validate_story_data({"title": "T", "content": "C", "metadata": []}).error == METADATA_INVALID_MESSAGE

    def test_null_optional_fields_count_as_absent(self):
        assert validate_story_data({"title": "T", "content": "C", "images": None, "metadata": None}).valid

    @pytest.mark.parametrize("field,value", [
        ("images", 0), ("images", ""), ("images", False), ("metadata", ""), ("metadata", 0),
    ])
    def test_falsy_optional_fields_count_as_absent(self, field, value):
        data = {"title": "T", "content": "C", field: value}
        assert validate_story_data(data).valid
        fields = normalize_story_data(data)
        assert fields["images"] == []
        assert fields["metadata"] == {}

    def test_image_elements_not_checked(self):
        assert validate_story_data({"title": "T", "content": "C", "images": ["a", 1, None]}).valid

    def test_unknown_keys_ignored(self):
        assert validate_story_data({"title": "T", "content": "C", "userId": "someone-else"}).valid

    def test_whitespace_title_passes_raw_check(self):
        assert validate_story_data({"title": WHITESPACE_ONLY, "content": "C"}).valid

    def test_input_not_mutated(self):
        data = {"title": " T ", "content": " C ", "images": ["a", 1]}
        validate_story_data(data)
        assert data == {"title": " T ", "content": " C ", "images": ["a", 1]}


class TestNormalizeStoryData:

    def test_trims_and_defaults(self):
        fields = normalize_story_data({"title": "  Whitespace Story  ", "content": "  Body  "})
        assert fields == {"title": "Whitespace Story", "content": "Body", "images": [], "metadata": {}}

    def test_filters_non_string_images(self):
        fields = normalize_story_data({"title": "T", "content": "C", "images": ["a.png", 3, None, "b.png"]})
        assert fields["images"] == ["a.png", "b.png"]

    def test_keeps_metadata(self):
        fields = normalize_story_data({"title": "T", "content": "C", "metadata": {"age": "4-6"}})
        assert fields["metadata"] == {"age": "4-6"}


class TestStoryValidationService:
    """Service wrappers raise ValidationError with the validator message."""

    @pytest.fixture
    def service(self):
        return StoryValidationService()

    def test_submission_error_message(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.validate_story_submission({"title": "T"})
        assert exc_info.value.message == CONTENT_REQUIRED_MESSAGE
        assert exc_info.value.status_code == 400

    def test_whitespace_only_title_rejected_after_trim(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.validate_story_submission({"title": WHITESPACE_ONLY, "content": "C"})
        assert exc_info.value.message == TITLE_REQUIRED_MESSAGE

    def test_whitespace_only_content_rejected_after_trim(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.validate_story_submission({"title": "T", "content": "\n\n  "})
        assert exc_info.value.message == CONTENT_REQUIRED_MESSAGE

    def test_generation_requires_fields(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.validate_generation_input({"age": "4-6", "characters": "fox", "setting": "river"})
        assert exc_info.value.details["field"] == "moral"

    def test_generation_defaults_length(self, service):
        request = service.validate_generation_input(
            {"age": "4-6", "characters": "fox", "setting": "river", "moral": "kindness"}
        )
        assert request.length == "medium"
        assert request.continuation is False
        assert request.illustrate is False

    def test_generation_rejects_unknown_length(self, service):
        with pytest.raises(ValidationError):
            service.validate_generation_input(
                {"age": "4-6", "characters": "fox", "setting": "river", "moral": "kindness", "length": "epic"}
            )

    def test_generation_reads_previous_story_alias(self, service):
        request = service.validate_generation_input({
            "age": "4-6", "characters": "fox", "setting": "river", "moral": "kindness",
            "continuation": True, "previousStory": "The fox slept.",
        })
        assert request.continuation is True
        assert request.previous_story == "The fox slept."

    @pytest.mark.parametrize("prompt", [None, "", "   ", 5])
    def test_image_prompt_required(self, service, prompt):
        with pytest.raises(ValidationError) as exc_info:
            service.validate_image_prompt(prompt)
        assert exc_info.value.message == "Prompt is required"

    def test_proxy_url_missing(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.validate_proxy_url(None)
        assert exc_info.value.message == "Missing URL parameter"

    @pytest.mark.parametrize("url", ["not a url", "ftp://example.com/a.png", "file:///etc/passwd", "http://"])
    def test_proxy_url_invalid(self, service, url):
        with pytest.raises(ValidationError) as exc_info:
            service.validate_proxy_url(url)
        assert exc_info.value.message == "Invalid URL format"

    def test_proxy_url_valid(self, service):
        assert service.validate_proxy_url(" https://example.com/a.png ") == "https://example.com/a.png"

    def test_export_format_alias(self, service):
        assert service.validate_export_format("MD") == "markdown"
        with pytest.raises(ValidationError):
            service.validate_export_format("odt")

    def test_registration_checks(self, service):
        with pytest.raises(ValidationError):
            service.validate_registration({"email": "not-an-email", "password": "long-enough"})
        with pytest.raises(ValidationError):
            service.validate_registration({"email": "a@example.com", "password": "short"})
        fields = service.validate_registration({"email": " a@example.com ", "password": "long-enough"})
        assert fields == {"email": "a@example.com", "password": "long-enough", "name": None}
