"""
Utility modules for the Bedtime Stories service.

Modules:
- validation: story record shape checks
- db_storage: SQLite persistence for stories, users and sessions
- repository: owner-scoped story repository interface
- llm: provider interfaces for text and image generation
- errors: API error hierarchy and Flask handlers
"""

from .validation import (
    ValidationResult,
    validate_story_data,
    normalize_story_data,
)
from .repository import (
    StoryRepository,
    DatabaseStoryRepository,
    MemoryStoryRepository,
    create_story_repository,
)

__all__ = [
    "ValidationResult",
    "validate_story_data",
    "normalize_story_data",
    "StoryRepository",
    "DatabaseStoryRepository",
    "MemoryStoryRepository",
    "create_story_repository",
]
