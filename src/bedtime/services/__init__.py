"""
Service layer for the Bedtime Stories application.

Services hold the business logic behind the HTTP routes and the CLI:
- input validation
- owner-scoped story persistence
- story and illustration generation
- export
"""

from .story_validation_service import StoryValidationService
from .story_service import StoryService
from .image_service import ImageService
from .story_generation_service import StoryGenerationService
from .story_export_service import StoryExportService

__all__ = [
    'StoryValidationService',
    'StoryService',
    'ImageService',
    'StoryGenerationService',
    'StoryExportService',
]
