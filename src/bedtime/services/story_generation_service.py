"""
Story generation service.

Runs the story and title requests against the text provider concurrently,
attaches illustrations (or placeholders) and records the result as a draft
for its owner.
"""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from src.bedtime.drafts import DraftStore

from src.bedtime.models import GenerationRequest, StoryRecord
from src.bedtime.prompts import (
    STORY_MAX_TOKENS,
    STORY_SYSTEM_PROMPT,
    STORY_TEMPERATURE,
    TITLE_MAX_TOKENS,
    TITLE_SYSTEM_PROMPT,
    TITLE_TEMPERATURE,
    build_continuation_request,
    build_image_prompts,
    build_story_prompt,
    build_title_prompt,
    illustration_count,
)
from src.bedtime.titles import clean_title, sanitize_title
from src.bedtime.utils.errors import APIError, UpstreamServiceError
from src.bedtime.utils.llm import BaseLLMClient
from .image_service import ImageService

logger = logging.getLogger(__name__)


class StoryGenerationService:
    """Service for generating new stories and continuations."""

    def __init__(
        self,
        llm_factory: Callable[[], BaseLLMClient],
        image_service: ImageService,
        draft_store: Optional['DraftStore'] = None,
    ):
        """
        Initialize generation service.

        Args:
            llm_factory: Returns the text provider
            image_service: Illustration source
            draft_store: Where results for signed-in users are kept until saved
        """
        self._llm_factory = llm_factory
        self.image_service = image_service
        self.draft_store = draft_store

    def _generate_text(self, request: GenerationRequest) -> Dict[str, str]:
        client = self._llm_factory()
        with ThreadPoolExecutor(max_workers=2) as executor:
            story_future = executor.submit(
                client.generate,
                build_story_prompt(request),
                system_prompt=STORY_SYSTEM_PROMPT,
                temperature=STORY_TEMPERATURE,
                max_tokens=STORY_MAX_TOKENS,
            )
            title_future = executor.submit(
                client.generate,
                build_title_prompt(request),
                system_prompt=TITLE_SYSTEM_PROMPT,
                temperature=TITLE_TEMPERATURE,
                max_tokens=TITLE_MAX_TOKENS,
            )
            # Both must finish; the first failure is reported
            content = story_future.result()
            raw_title = title_future.result()
        return {"content": content, "title": raw_title}

    def generate_story(self, request: GenerationRequest, owner_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate a story, its title and its illustrations.

        Args:
            request: Validated generation request
            owner_id: Signed-in user, if any; their draft store entry is updated

        Returns:
            Dict with id, title, content, images and metadata

        Raises:
            UpstreamServiceError: If the text provider fails or returns no story
        """
        try:
            text = self._generate_text(request)
        except APIError:
            raise
        except Exception as e:
            logger.error(f"Story generation failed: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to generate story", str(e))

        content = (text["content"] or "").strip()
        if not content:
            raise UpstreamServiceError("Failed to generate story", "The language model returned no story text")

        if request.continuation:
            title = sanitize_title(text["title"])
        else:
            title = clean_title(text["title"])

        metadata = request.story_metadata()
        count = illustration_count(request.length)
        if request.illustrate:
            images = self.image_service.generate_many(build_image_prompts(content, metadata, count))
        else:
            images = self.image_service.placeholders(count)

        story = {
            "id": uuid.uuid4().hex,
            "title": title,
            "content": content,
            "images": images,
            "metadata": metadata,
        }
        logger.info(f"Generated story {story['id']} ({request.length}, {len(images)} images)")

        if owner_id and self.draft_store is not None:
            self.draft_store.save(owner_id, story)
        return story

    def continue_story(
        self,
        story: StoryRecord,
        owner_id: Optional[str] = None,
        prompt: Optional[str] = None,
        new_characters: Optional[str] = None,
        new_setting: Optional[str] = None,
        new_moral: Optional[str] = None,
        illustrate: bool = False,
    ) -> Dict[str, Any]:
        """Generate the next chapter of a saved story."""
        request = build_continuation_request(
            story.content,
            story.metadata,
            prompt=prompt,
            new_characters=new_characters,
            new_setting=new_setting,
            new_moral=new_moral,
            illustrate=illustrate,
        )
        result = self.generate_story(request, owner_id=owner_id)
        result["continuesStoryId"] = story.id
        return result
