"""
Bedtime Stories

Generates illustrated bedtime stories with an LLM, stores them per user and
renders them as interleaved text and image documents.
"""

__version__ = "0.1.0"

from .document import TextBlock, ImageBlock, compose_document, split_paragraphs
from .titles import sanitize_title, FALLBACK_TITLE

__all__ = [
    "TextBlock",
    "ImageBlock",
    "compose_document",
    "split_paragraphs",
    "sanitize_title",
    "FALLBACK_TITLE",
]
