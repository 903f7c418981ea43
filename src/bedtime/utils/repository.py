"""
Story repository abstraction layer.

Provides the persistence interface used by the service layer. All reads and
writes are scoped to an owner id taken from the authenticated session.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import os
import logging
import uuid

from ..models import StoryRecord

logger = logging.getLogger(__name__)


def _to_record(story: Dict[str, Any]) -> StoryRecord:
    return StoryRecord(
        id=story["id"],
        title=story["title"],
        content=story["content"],
        images=story.get("images") or [],
        metadata=story.get("metadata") or {},
        user_id=story["user_id"],
        created_at=story["created_at"],
        updated_at=story["updated_at"],
    )


class StoryRepository(ABC):
    """Abstract interface for story storage operations."""

    @abstractmethod
    def create(self, fields: Dict[str, Any], user_id: str) -> StoryRecord:
        """
        Persist a new story.

        Args:
            fields: Normalized title, content, images and metadata
            user_id: Owner id from the session

        Returns:
            The stored record with id and timestamps assigned
        """

    @abstractmethod
    def find_many(self, user_id: str) -> List[StoryRecord]:
        """All stories of ``user_id`` ordered by creation time, newest first."""

    @abstractmethod
    def find_one(self, story_id: str, user_id: str) -> Optional[StoryRecord]:
        """A story by id, only if it belongs to ``user_id``."""

    @abstractmethod
    def update_images(self, story_id: str, user_id: str, images: List[str]) -> Optional[StoryRecord]:
        """Assign the final image list of a saved story."""

    def count(self, user_id: Optional[str] = None) -> int:
        if user_id is None:
            raise NotImplementedError("Counting all stories is not supported by this repository")
        return len(self.find_many(user_id))


class DatabaseStoryRepository(StoryRepository):
    """SQLite-backed story repository wrapping ``StoryStorage``."""

    def __init__(self, db_path: Optional[str] = None):
        from .db_storage import StoryStorage

        self._storage = StoryStorage(db_path=db_path)

    def create(self, fields: Dict[str, Any], user_id: str) -> StoryRecord:
        return _to_record(self._storage.create_story(user_id, fields))

    def find_many(self, user_id: str) -> List[StoryRecord]:
        return [_to_record(story) for story in self._storage.list_stories(user_id)]

    def find_one(self, story_id: str, user_id: str) -> Optional[StoryRecord]:
        story = self._storage.load_story(story_id, user_id)
        return _to_record(story) if story else None

    def update_images(self, story_id: str, user_id: str, images: List[str]) -> Optional[StoryRecord]:
        story = self._storage.update_images(story_id, user_id, images)
        return _to_record(story) if story else None

    def count(self, user_id: Optional[str] = None) -> int:
        return self._storage.count_stories(user_id)


class MemoryStoryRepository(StoryRepository):
    """Process-local repository for development and tests."""

    def __init__(self):
        self._stories: Dict[str, Dict[str, Any]] = {}

    def create(self, fields: Dict[str, Any], user_id: str) -> StoryRecord:
        from .db_storage import utc_now

        now = utc_now()
        story = {
            "id": uuid.uuid4().hex,
            "user_id": user_id,
            "title": fields["title"],
            "content": fields["content"],
            "images": list(fields.get("images") or []),
            "metadata": dict(fields.get("metadata") or {}),
            "created_at": now,
            "updated_at": now,
        }
        self._stories[story["id"]] = story
        return _to_record(story)

    def find_many(self, user_id: str) -> List[StoryRecord]:
        owned = [story for story in self._stories.values() if story["user_id"] == user_id]
        # dicts keep insertion order, so reversing first keeps ties newest-first
        owned = list(reversed(owned))
        owned.sort(key=lambda story: story["created_at"], reverse=True)
        return [_to_record(story) for story in owned]

    def find_one(self, story_id: str, user_id: str) -> Optional[StoryRecord]:
        story = self._stories.get(story_id)
        if story is None or story["user_id"] != user_id:
            return None
        return _to_record(story)

    def update_images(self, story_id: str, user_id: str, images: List[str]) -> Optional[StoryRecord]:
        from .db_storage import utc_now

        story = self._stories.get(story_id)
        if story is None or story["user_id"] != user_id:
            return None
        story["images"] = list(images)
        story["updated_at"] = utc_now()
        return _to_record(story)

    def count(self, user_id: Optional[str] = None) -> int:
        if user_id is None:
            return len(self._stories)
        return sum(1 for story in self._stories.values() if story["user_id"] == user_id)


def create_story_repository(db_path: Optional[str] = None) -> StoryRepository:
    """
    Create the story repository selected by ``STORY_STORAGE``.

    - ``STORY_STORAGE=database`` (default): DatabaseStoryRepository
    - ``STORY_STORAGE=memory``: MemoryStoryRepository
    """
    backend = os.getenv("STORY_STORAGE", "database").lower()
    if backend == "memory":
        logger.info("Creating in-memory story repository")
        return MemoryStoryRepository()
    logger.info("Creating database story repository")
    return DatabaseStoryRepository(db_path=db_path)
