"""
Prompt construction for story, title and illustration requests.
"""

import math
from typing import Any, Dict, List, Optional, Sequence

from .document import split_paragraphs
from .models import GenerationRequest

STORY_SYSTEM_PROMPT = (
    "You are a creative children's story writer who specializes in creating "
    "engaging, age-appropriate bedtime stories with clear moral lessons."
)
TITLE_SYSTEM_PROMPT = "You are a creative title generator for children's stories."
DEFAULT_TONE = "warm, comforting, and suitable for bedtime reading"

STORY_TEMPERATURE = 0.7
STORY_MAX_TOKENS = 1000
TITLE_TEMPERATURE = 0.7
TITLE_MAX_TOKENS = 50

WORD_COUNTS = {"short": 150, "medium": 300}
DEFAULT_WORD_COUNT = 500
IMAGE_COUNTS = {"short": 2, "medium": 3}
DEFAULT_IMAGE_COUNT = 5

RECAP_LENGTH = 200
SCENE_LENGTH = 100

CONTINUATION_AGE = "5-10"
CONTINUATION_LENGTH = "medium"
FALLBACK_CHARACTERS = "same characters"
FALLBACK_SETTING = "same setting"
FALLBACK_MORAL = "continuing the previous lesson"


def target_word_count(length: str) -> int:
    return WORD_COUNTS.get(length, DEFAULT_WORD_COUNT)


def illustration_count(length: str) -> int:
    return IMAGE_COUNTS.get(length, DEFAULT_IMAGE_COUNT)


def build_story_prompt(request: GenerationRequest) -> str:
    """Build the user prompt for the story body."""
    lines = [
        "Create a children's bedtime story with the following requirements:",
        f"- Age range: {request.age} years old",
        f"- Main characters: {request.characters}",
        f"- Setting: {request.setting}",
        f"- Moral lesson: {request.moral}",
        f"- Target length: approximately {target_word_count(request.length)} words",
        "- Style: engaging, age-appropriate, with clear moral lesson",
        "- Format: Include paragraphs separated by newlines",
        f"- Tone: {request.tone or DEFAULT_TONE}",
    ]
    if request.continuation:
        lines.append("")
        lines.append("This story continues an earlier bedtime story.")
        if request.previous_story:
            lines.append(f"Previously: {request.previous_story}")
        if request.prompt:
            lines.append(f"What should happen next: {request.prompt}")
        lines.append("Keep the characters consistent with the earlier story.")
    return "\n".join(lines)


def build_title_prompt(request: GenerationRequest) -> str:
    prompt = (
        f"Generate a short, engaging title for a children's story about "
        f"{request.characters} in {request.setting} that teaches about {request.moral}."
    )
    if request.continuation:
        prompt += " This is the next chapter of an earlier story. Reply with the title only."
    return prompt


def build_recap(content: str) -> str:
    """First 200 characters of the previous story, with an ellipsis when cut."""
    if len(content) > RECAP_LENGTH:
        return content[:RECAP_LENGTH] + "..."
    return content


def build_continuation_request(
    previous_content: str,
    previous_metadata: Optional[Dict[str, Any]],
    prompt: Optional[str] = None,
    new_characters: Optional[str] = None,
    new_setting: Optional[str] = None,
    new_moral: Optional[str] = None,
    illustrate: bool = False,
) -> GenerationRequest:
    """
    Build the generation request for the next chapter of a saved story.

    New values win, then the previous story's metadata, then generic
    fallbacks.
    """
    metadata = previous_metadata or {}
    return GenerationRequest(
        age=CONTINUATION_AGE,
        characters=new_characters or metadata.get("characters") or FALLBACK_CHARACTERS,
        setting=new_setting or metadata.get("setting") or FALLBACK_SETTING,
        moral=new_moral or metadata.get("moral") or FALLBACK_MORAL,
        length=CONTINUATION_LENGTH,
        continuation=True,
        previous_story=build_recap(previous_content),
        prompt=prompt,
        illustrate=illustrate,
    )


def scene_paragraph_index(image_index: int, image_total: int, paragraph_total: int) -> int:
    """Paragraph an illustration is drawn from, spread evenly over the story."""
    if image_total <= 0 or paragraph_total <= 0:
        return 0
    return min(math.floor(image_index / image_total * paragraph_total), paragraph_total - 1)


def build_image_prompt(scene: str, metadata: Dict[str, Any]) -> str:
    characters = metadata.get("characters", "")
    return (
        f"Create a child-friendly illustration for a bedtime story featuring {characters}. "
        f"The image should be based on this scene: \"{scene[:SCENE_LENGTH]}...\". "
        f"The style should be colorful, gentle, and appropriate for children aged "
        f"{metadata.get('age', '')}. "
        f"The illustration should be suitable for a story about {metadata.get('moral', '')}. "
        f"Make sure to maintain visual consistency with the previous illustrations of {characters}."
    )


def build_image_prompts(content: str, metadata: Dict[str, Any], count: int) -> List[str]:
    """One prompt per illustration, each drawn from a different part of the story."""
    paragraphs: Sequence[str] = split_paragraphs(content)
    prompts = []
    for index in range(count):
        paragraph_index = scene_paragraph_index(index, count, len(paragraphs))
        scene = paragraphs[paragraph_index] if paragraphs else ""
        prompts.append(build_image_prompt(scene, metadata))
    return prompts
