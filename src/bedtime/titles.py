"""Cleanup of language-model title suggestions."""

import re

FALLBACK_TITLE = "The Adventure Begins"
MIN_TITLE_LENGTH = 2

_ENUMERATION_PATTERN = re.compile(r'^\d+\.\s?')
_BULLET_PATTERN = re.compile(r'^[-*]\s')
_LETTER_PATTERN = re.compile(r'^[A-Z]\.\s')


def sanitize_title(raw: str) -> str:
    """
    Reduce a title suggestion to a single clean title.

    Models asked for a chapter title often answer with a numbered list,
    several alternatives or a trailing explanation. Each step below runs
    once, in order, on the output of the previous one:

    1. drop a leading enumeration marker (``"1."`` or ``"1. "``)
    2. drop a leading bullet (``"- "`` or ``"* "``)
    3. drop a leading letter marker (``"A. "``)
    4. keep the first line
    5. keep the text before ``" - "``
    6. keep the text before ``" or "``
    7. trim whitespace

    Args:
        raw: Text returned by the language model

    Returns:
        The cleaned title, or ``FALLBACK_TITLE`` when fewer than two
        characters remain

    Example:
        >>> sanitize_title("1. The Brave Fox\\nAlternative: The Sly Fox")
        'The Brave Fox'
    """
    title = raw or ""
    title = _ENUMERATION_PATTERN.sub('', title, count=1)
    title = _BULLET_PATTERN.sub('', title, count=1)
    title = _LETTER_PATTERN.sub('', title, count=1)
    title = title.split("\n", 1)[0]
    title = title.split(" - ", 1)[0]
    title = title.split(" or ", 1)[0]
    title = title.strip()

    if len(title) < MIN_TITLE_LENGTH:
        return FALLBACK_TITLE
    return title


def clean_title(raw: str) -> str:
    """Trim a fresh-story title, falling back when the model returned nothing."""
    title = (raw or "").strip()
    return title or FALLBACK_TITLE
