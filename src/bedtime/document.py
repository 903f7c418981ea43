"""
Paragraph splitting and illustrated page composition.

Every surface that shows a story (the reading view, the reveal stream and
all exporters) goes through ``compose_story`` so image placement is
identical everywhere.
"""

import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Iterator, List, Sequence, Union

PARAGRAPH_DELIMITER = "\n\n"


@dataclass(frozen=True)
class TextBlock:
    """One paragraph of story text."""
    paragraph_index: int
    text: str

    kind = "text"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, **_camel(asdict(self))}


@dataclass(frozen=True)
class ImageBlock:
    """One illustration placed between paragraphs."""
    image_index: int
    url: str

    kind = "image"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, **_camel(asdict(self))}


DocumentBlock = Union[TextBlock, ImageBlock]


def _camel(fields: Dict[str, Any]) -> Dict[str, Any]:
    result = {}
    for key, value in fields.items():
        head, *rest = key.split("_")
        result[head + "".join(part.title() for part in rest)] = value
    return result


def split_paragraphs(content: str) -> List[str]:
    """
    Split story text on blank lines.

    Segments that are empty or whitespace-only are dropped; the others are
    returned untouched and in order. Joining the result with
    ``join_paragraphs`` and splitting again yields the same list.
    """
    if not content:
        return []
    return [segment for segment in content.split(PARAGRAPH_DELIMITER) if segment.strip()]


def join_paragraphs(paragraphs: Sequence[str]) -> str:
    return PARAGRAPH_DELIMITER.join(paragraphs)


def compose_document(paragraphs: Sequence[str], images: Sequence[str]) -> List[DocumentBlock]:
    """
    Interleave paragraphs and images into page blocks.

    Every paragraph becomes a ``TextBlock``. After each odd-indexed
    paragraph ``i`` the image at ``i // 2`` is placed, if there is one.
    Images beyond the last such slot are not placed.

    Args:
        paragraphs: Output of ``split_paragraphs``
        images: Ordered image references

    Returns:
        Ordered list of TextBlock and ImageBlock instances
    """
    blocks: List[DocumentBlock] = []
    for index, text in enumerate(paragraphs):
        blocks.append(TextBlock(index, text))
        slot = index // 2
        if index % 2 == 1 and slot < len(images):
            blocks.append(ImageBlock(slot, images[slot]))
    return blocks


def compose_story(story: Any) -> List[DocumentBlock]:
    """Compose blocks for a story record or a dict with ``content``/``images``."""
    if isinstance(story, dict):
        content = story.get("content") or ""
        images = story.get("images") or []
    else:
        content = story.content
        images = story.images
    return compose_document(split_paragraphs(content), images)


def blocks_to_dicts(blocks: Sequence[DocumentBlock]) -> List[Dict[str, Any]]:
    return [block.to_dict() for block in blocks]


def reveal_paragraphs(
    content: str,
    interval: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[TextBlock]:
    """
    Yield paragraphs one at a time for progressive display.

    The first paragraph is yielded immediately, every following one after
    ``interval`` seconds. The iterator holds no state outside itself, so
    abandoning it (client disconnect) stops the reveal.
    """
    for index, text in enumerate(split_paragraphs(content)):
        if index and interval > 0:
            sleep(interval)
        yield TextBlock(index, text)
