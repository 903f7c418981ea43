"""
Tests for paragraph splitting, page composition and the reveal iterator.
"""

import pytest

from src.bedtime.document import (
    ImageBlock,
    TextBlock,
    blocks_to_dicts,
    compose_document,
    compose_story,
    join_paragraphs,
    reveal_paragraphs,
    split_paragraphs,
)
from tests.test_constants import FOUR_PARAGRAPHS


class TestSplitParagraphs:

    def test_splits_on_blank_lines(self):
        assert split_paragraphs("a\n\nb\n\nc") == ["a", "b", "c"]

    def test_drops_blank_segments(self):
        assert split_paragraphs("a\n\n\n\n   \n\nb") == ["a", "b"]

    def test_single_newline_stays_in_paragraph(self):
        assert split_paragraphs("line one\nline two\n\nnext") == ["line one\nline two", "next"]

    @pytest.mark.parametrize("content", ["", "   ", "\n\n\n\n"])
    def test_empty_content(self, content):
        assert split_paragraphs(content) == []

    @pytest.mark.parametrize("content", [
        "a\n\n\n\nb\n\n  \n\nc",
        "a\n\n\nb",
        "\n\nx\n\n\n",
        "\n\n\n\nleading blank lines",
        "trailing blank lines\n\n\n\n\n",
        "a\n\n\n\n\n\nb\n\n\n c",
        "  \n\n a \n\n",
        "one paragraph only",
        "",
        FOUR_PARAGRAPHS,
    ])
    def test_rejoin_is_idempotent(self, content):
        paragraphs = split_paragraphs(content)
        assert split_paragraphs(join_paragraphs(paragraphs)) == paragraphs


class TestComposeDocument:

    def test_four_paragraphs_one_image(self):
        paragraphs = ["P0", "P1", "P2", "P3"]
        assert compose_document(paragraphs, ["imgA"]) == [
            TextBlock(0, "P0"),
            TextBlock(1, "P1"),
            ImageBlock(0, "imgA"),
            TextBlock(2, "P2"),
            TextBlock(3, "P3"),
        ]

    def test_image_after_every_odd_paragraph(self):
        blocks = compose_document(["P0", "P1", "P2", "P3"], ["imgA", "imgB"])
        assert [type(block).__name__ for block in blocks] == [
            "TextBlock", "TextBlock", "ImageBlock", "TextBlock", "TextBlock", "ImageBlock"
        ]
        assert blocks[-1] == ImageBlock(1, "imgB")

    @pytest.mark.parametrize("paragraph_count,image_count", [
        (0, 3), (1, 3), (2, 0), (3, 5), (5, 1), (6, 3), (7, 10),
    ])
    def test_image_follows_text_iff_odd_with_slot(self, paragraph_count, image_count):
        paragraphs = [f"P{i}" for i in range(paragraph_count)]
        images = [f"img{j}" for j in range(image_count)]
        blocks = compose_document(paragraphs, images)

        texts = [block for block in blocks if isinstance(block, TextBlock)]
        placed = [block for block in blocks if isinstance(block, ImageBlock)]
        assert [block.text for block in texts] == paragraphs
        assert len(placed) == min(image_count, paragraph_count // 2)

        for position, block in enumerate(blocks):
            if isinstance(block, TextBlock):
                i = block.paragraph_index
                follows = position + 1 < len(blocks) and isinstance(blocks[position + 1], ImageBlock)
                assert follows == (i % 2 == 1 and i // 2 < image_count)

    def test_surplus_images_not_placed(self):
        blocks = compose_document(["P0", "P1"], ["imgA", "imgB", "imgC"])
        assert [block.url for block in blocks if isinstance(block, ImageBlock)] == ["imgA"]

    def test_compose_story_from_dict(self):
        blocks = compose_story({"content": FOUR_PARAGRAPHS, "images": ["imgA"]})
        assert len(blocks) == 5
        assert blocks[2] == ImageBlock(0, "imgA")

    def test_wire_format(self):
        blocks = compose_document(["P0", "P1"], ["imgA"])
        assert blocks_to_dicts(blocks) == [
            {"type": "text", "paragraphIndex": 0, "text": "P0"},
            {"type": "text", "paragraphIndex": 1, "text": "P1"},
            {"type": "image", "imageIndex": 0, "url": "imgA"},
        ]


class TestRevealParagraphs:

    def test_yields_in_order_with_interval(self):
        sleeps = []
        blocks = list(reveal_paragraphs("a\n\nb\n\nc", interval=1.5, sleep=sleeps.append))
        assert blocks == [TextBlock(0, "a"), TextBlock(1, "b"), TextBlock(2, "c")]
        assert sleeps == [1.5, 1.5]

    def test_first_paragraph_is_immediate(self):
        sleeps = []
        iterator = reveal_paragraphs("a\n\nb", interval=1.0, sleep=sleeps.append)
        assert next(iterator) == TextBlock(0, "a")
        assert sleeps == []

    def test_zero_interval_never_sleeps(self):
        sleeps = []
        list(reveal_paragraphs(FOUR_PARAGRAPHS, interval=0, sleep=sleeps.append))
        assert sleeps == []

    def test_abandoned_iterator_stops(self):
        sleeps = []
        iterator = reveal_paragraphs(FOUR_PARAGRAPHS, interval=1.0, sleep=sleeps.append)
        next(iterator)
        next(iterator)
        iterator.close()
        assert sleeps == [1.0]
