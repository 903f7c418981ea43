"""
Story export service.

Loads the owner's story and hands it to the renderers in ``exports``.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Response

from src.bedtime.exports import export_story
from .story_service import StoryService
from .story_validation_service import StoryValidationService

logger = logging.getLogger(__name__)


class StoryExportService:
    """Service for exporting stories in various formats."""

    def __init__(self, story_service: StoryService):
        self.story_service = story_service
        self.validation_service = StoryValidationService()

    def export_story(self, story_id: str, user_id: str, format_type: str) -> 'Response':
        """
        Export one of the user's stories.

        Raises:
            ValidationError: If the format is unsupported
            NotFoundError: If the story does not belong to the user
            ServiceUnavailableError: If rendering fails
        """
        format_type = self.validation_service.validate_export_format(format_type)
        story = self.story_service.get_story(story_id, user_id)
        logger.info(f"Exporting story {story_id} as {format_type}")
        return export_story(story.to_dict(), format_type)
