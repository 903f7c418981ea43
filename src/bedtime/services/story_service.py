"""
Story service for CRUD operations.

Every operation is scoped to the owner id from the session. Storage
failures surface as ``UpstreamServiceError`` with the underlying message in
``details.reason``.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from src.bedtime.utils.repository import StoryRepository

from src.bedtime.models import StoryRecord
from src.bedtime.utils.errors import NotFoundError, UpstreamServiceError
from src.bedtime.api.helpers import get_story_repository
from .story_validation_service import StoryValidationService

logger = logging.getLogger(__name__)


class StoryService:
    """Service for story CRUD operations."""

    def __init__(self, repository: Optional['StoryRepository'] = None):
        """
        Initialize story service.

        Args:
            repository: Story repository instance (uses the app's repository if None)
        """
        self._repository = repository
        self.validation_service = StoryValidationService()

    @property
    def repository(self) -> 'StoryRepository':
        if self._repository is None:
            return get_story_repository()
        return self._repository

    def create_story(self, data: Any, user_id: str) -> StoryRecord:
        """
        Validate, normalize and persist a story.

        Raises:
            ValidationError: If the submission fails validation
            UpstreamServiceError: If the store rejects the write
        """
        fields = self.validation_service.validate_story_submission(data)
        try:
            story = self.repository.create(fields, user_id)
        except Exception as e:
            logger.error(f"Failed to save story for user {user_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to save story", str(e))
        logger.info(f"Saved story {story.id} for user {user_id}")
        return story

    def list_stories(self, user_id: str) -> List[StoryRecord]:
        try:
            return self.repository.find_many(user_id)
        except Exception as e:
            logger.error(f"Failed to list stories for user {user_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Internal server error", str(e))

    def get_story(self, story_id: str, user_id: str) -> StoryRecord:
        """
        Load one of the user's stories.

        Another user's story is reported as not found.

        Raises:
            NotFoundError: If no story with this id belongs to the user
            UpstreamServiceError: If the store fails
        """
        try:
            story = self.repository.find_one(story_id, user_id)
        except Exception as e:
            logger.error(f"Failed to load story {story_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Internal server error", str(e))
        if story is None:
            raise NotFoundError("Story", story_id)
        return story

    def update_images(self, story_id: str, user_id: str, data: Dict[str, Any]) -> StoryRecord:
        images = self.validation_service.validate_images_update(data)
        try:
            story = self.repository.update_images(story_id, user_id, images)
        except Exception as e:
            logger.error(f"Failed to update images of story {story_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to save story", str(e))
        if story is None:
            raise NotFoundError("Story", story_id)
        logger.info(f"Updated {len(images)} images on story {story_id}")
        return story
