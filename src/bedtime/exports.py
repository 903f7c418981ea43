"""
Document renderers for illustrated stories.

Every format renders the blocks produced by ``compose_story`` in order, so
image placement matches the reading view. Renderers return bytes or text;
``export_story`` wraps them into a Flask download response.

Image references are resolved here, not in the composer: ``data:`` URIs are
decoded, public http(s) URLs fetched. Anything that cannot be resolved or
decoded is drawn as a placeholder.
"""

import base64
import binascii
import html
import logging
import re
from io import BytesIO
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import requests
from flask import Response, send_file

from .document import DocumentBlock, ImageBlock, TextBlock, compose_story
from .utils.errors import MissingDependencyError, ServiceUnavailableError, ValidationError
from .utils.url_safety import UnsafeURLError, fetch_public_url

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Illustration unavailable"
IMAGE_FETCH_TIMEOUT = 15

ImageLoader = Callable[[str], Optional[bytes]]

_PATH_TRAVERSAL_PATTERN = re.compile(r'\.\.+')
_DANGEROUS_CHARS_PATTERN = re.compile(r'[<>:"|?*\\/;&`$]')
_WHITESPACE_PATTERN = re.compile(r'\s+')
_NON_ALPHANUMERIC_PATTERN = re.compile(r'[^a-zA-Z0-9_-]')
_DATA_URI_PATTERN = re.compile(r'^data:(?P<mime>[\w/+.-]+)?(?P<params>(;[\w=.-]+)*?);base64,(?P<data>.*)$', re.DOTALL)

MIME_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "epub": "application/epub+zip",
    "markdown": "text/markdown",
    "txt": "text/plain",
}
EXTENSIONS = {"pdf": "pdf", "docx": "docx", "epub": "epub", "markdown": "md", "txt": "txt"}


def sanitize_filename(title: str, story_id: str, max_length: int = 50) -> str:
    """
    Sanitize a title for use in download filenames.

    Keeps only letters, digits, underscores and hyphens; whitespace becomes
    underscores. Falls back to ``Story_<id prefix>`` when nothing is left.
    """
    if not title:
        return f"Story_{_NON_ALPHANUMERIC_PATTERN.sub('', story_id)[:8] or 'export'}"

    safe = _PATH_TRAVERSAL_PATTERN.sub('', title)
    safe = _DANGEROUS_CHARS_PATTERN.sub('', safe)
    safe = _WHITESPACE_PATTERN.sub('_', safe)
    safe = _NON_ALPHANUMERIC_PATTERN.sub('', safe)
    safe = safe.strip('_-')[:max_length]

    if not safe:
        safe_id = _NON_ALPHANUMERIC_PATTERN.sub('', story_id)[:8]
        safe = f"Story_{safe_id}" if safe_id else "Story_export"
    return safe


def decode_data_uri(reference: str) -> Optional[bytes]:
    match = _DATA_URI_PATTERN.match(reference)
    if not match:
        return None
    try:
        return base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError):
        return None


def load_image_bytes(reference: str, timeout: int = IMAGE_FETCH_TIMEOUT) -> Optional[bytes]:
    """
    Resolve an image reference to raw bytes.

    Returns:
        The image bytes, or None for relative paths (such as the placeholder),
        undecodable data URIs and failed fetches
    """
    if not reference:
        return None
    if reference.startswith("data:"):
        return decode_data_uri(reference)
    if reference.startswith(("http://", "https://")):
        try:
            response = fetch_public_url(reference, timeout)
        except UnsafeURLError as e:
            logger.warning(f"Skipping image for export: {e}")
            return None
        except requests.RequestException as e:
            logger.warning(f"Could not fetch image for export: {e}")
            return None
        if not response.ok:
            logger.warning(f"Image fetch for export answered {response.status_code}")
            return None
        return response.content
    return None


def image_kind(data: bytes) -> Optional[Tuple[str, str]]:
    """(extension, media type) for PNG, JPEG, GIF and WEBP signatures."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png", "image/png"
    if data.startswith(b"\xff\xd8"):
        return "jpg", "image/jpeg"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "gif", "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp", "image/webp"
    return None


def render_markdown(title: str, blocks: Sequence[DocumentBlock]) -> str:
    parts = [f"# {title}"]
    for block in blocks:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        else:
            parts.append(f"![Illustration {block.image_index + 1}]({block.url})")
    return "\n\n".join(parts) + "\n"


def render_text(title: str, blocks: Sequence[DocumentBlock]) -> str:
    parts = [title, "=" * len(title)]
    for block in blocks:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        else:
            parts.append(f"[Illustration {block.image_index + 1}]")
    return "\n\n".join(parts) + "\n"


def render_pdf(title: str, blocks: Sequence[DocumentBlock], image_loader: ImageLoader = load_image_bytes) -> bytes:
    """
    Render blocks as a PDF.

    Page breaks are left to reportlab's platypus layout: a flowable that does
    not fit the remaining frame height moves to the next page.
    """
    try:
        from reportlab.lib.colors import HexColor
        from reportlab.lib.enums import TA_CENTER, TA_LEFT
        from reportlab.lib.pagesizes import letter
        from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
        from reportlab.lib.units import inch
        from reportlab.lib.utils import ImageReader
        from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
    except ImportError:
        raise MissingDependencyError("reportlab", "pip install reportlab")

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=letter,
        rightMargin=72, leftMargin=72, topMargin=72, bottomMargin=54,
        title=title,
    )
    max_width = doc.width
    max_height = doc.height * 0.6

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'StoryTitle',
        parent=styles['Heading1'],
        fontSize=22,
        leading=28,
        textColor=HexColor('#4b3f8f'),
        spaceAfter=24,
        alignment=TA_CENTER,
    )
    body_style = ParagraphStyle(
        'StoryBody',
        parent=styles['Normal'],
        fontSize=13,
        leading=19,
        spaceAfter=12,
        alignment=TA_LEFT,
    )
    placeholder_style = ParagraphStyle(
        'IllustrationPlaceholder',
        parent=styles['Italic'],
        textColor=HexColor('#888888'),
        alignment=TA_CENTER,
    )

    def placeholder_flowable():
        table = Table([[Paragraph(PLACEHOLDER_TEXT, placeholder_style)]],
                      colWidths=[max_width], rowHeights=[1.5 * inch])
        table.setStyle(TableStyle([
            ('BOX', (0, 0), (-1, -1), 0.75, HexColor('#cccccc')),
            ('BACKGROUND', (0, 0), (-1, -1), HexColor('#f5f3ff')),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        return table

    def image_flowable(block: ImageBlock):
        data = image_loader(block.url)
        if not data:
            return placeholder_flowable()
        try:
            width, height = ImageReader(BytesIO(data)).getSize()
        except Exception as e:
            logger.warning(f"Undecodable image {block.image_index} in PDF export: {e}")
            return placeholder_flowable()
        scale = min(max_width / width, max_height / height, 1.0)
        return Image(BytesIO(data), width=width * scale, height=height * scale)

    flowables: List[Any] = [Paragraph(html.escape(title, quote=False), title_style)]
    for block in blocks:
        if isinstance(block, TextBlock):
            text = html.escape(block.text, quote=False).replace("\n", "<br/>")
            flowables.append(Paragraph(text, body_style))
        else:
            flowables.append(Spacer(1, 0.15 * inch))
            flowables.append(image_flowable(block))
            flowables.append(Spacer(1, 0.25 * inch))

    doc.build(flowables)
    return buffer.getvalue()


def render_docx(title: str, blocks: Sequence[DocumentBlock], image_loader: ImageLoader = load_image_bytes) -> bytes:
    """Render blocks as a Word document."""
    try:
        from docx import Document  # type: ignore[import-untyped]
        from docx.enum.text import WD_ALIGN_PARAGRAPH  # type: ignore[import-untyped]
        from docx.shared import Inches, Pt  # type: ignore[import-untyped]
    except ImportError:
        raise MissingDependencyError("python-docx", "pip install python-docx")

    doc = Document()
    heading = doc.add_heading(title, level=1)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

    for block in blocks:
        if isinstance(block, TextBlock):
            para = doc.add_paragraph(block.text)
            for run in para.runs:
                run.font.size = Pt(13)
            continue

        data = image_loader(block.url)
        added = False
        if data:
            try:
                doc.add_picture(BytesIO(data), width=Inches(5.5))
                doc.paragraphs[-1].alignment = WD_ALIGN_PARAGRAPH.CENTER
                added = True
            except Exception as e:
                logger.warning(f"Undecodable image {block.image_index} in DOCX export: {e}")
        if not added:
            para = doc.add_paragraph()
            para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = para.add_run(f"[{PLACEHOLDER_TEXT}]")
            run.italic = True

    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def render_epub(
    title: str,
    blocks: Sequence[DocumentBlock],
    story_id: str,
    author: str = "Bedtime Stories",
    image_loader: ImageLoader = load_image_bytes,
) -> bytes:
    """Render blocks as a single-chapter EPUB with embedded images."""
    try:
        from ebooklib import epub  # type: ignore[import-untyped]
    except ImportError:
        raise MissingDependencyError("ebooklib", "pip install ebooklib")

    book = epub.EpubBook()
    book.set_identifier(f"story_{story_id}")
    book.set_title(title)
    book.set_language('en')
    book.add_author(author)

    body = [f"<h1>{html.escape(title)}</h1>"]
    for block in blocks:
        if isinstance(block, TextBlock):
            body.append(f"<p>{html.escape(block.text)}</p>")
            continue

        data = image_loader(block.url)
        kind = image_kind(data) if data else None
        if kind is None:
            body.append(f'<p class="placeholder"><em>{PLACEHOLDER_TEXT}</em></p>')
            continue
        extension, media_type = kind
        file_name = f"images/illustration_{block.image_index + 1}.{extension}"
        book.add_item(epub.EpubItem(
            uid=f"illustration_{block.image_index + 1}",
            file_name=file_name,
            media_type=media_type,
            content=data,
        ))
        body.append(f'<p><img src="{file_name}" alt="Illustration {block.image_index + 1}"/></p>')

    chapter = epub.EpubHtml(title=title, file_name='story.xhtml', lang='en')
    chapter.content = "".join(body)
    book.add_item(chapter)
    book.toc = [chapter]
    book.spine = ['nav', chapter]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())

    buffer = BytesIO()
    epub.write_epub(buffer, book, {})
    return buffer.getvalue()


def render_story(story: Dict[str, Any], format_type: str, image_loader: ImageLoader = load_image_bytes):
    """
    Render a story record (wire dict) in one format.

    Returns:
        bytes for pdf/docx/epub, str for markdown/txt
    """
    title = story["title"]
    blocks = compose_story(story)
    if format_type == "pdf":
        return render_pdf(title, blocks, image_loader)
    if format_type == "docx":
        return render_docx(title, blocks, image_loader)
    if format_type == "epub":
        return render_epub(title, blocks, story["id"], image_loader=image_loader)
    if format_type == "markdown":
        return render_markdown(title, blocks)
    if format_type == "txt":
        return render_text(title, blocks)
    raise ValidationError(
        f"Unsupported export format: {format_type}",
        details={"format": format_type, "supported_formats": list(MIME_TYPES)}
    )


def export_filename(story: Dict[str, Any], format_type: str) -> str:
    safe = sanitize_filename(story["title"], story["id"])
    return f"{safe}.{EXTENSIONS[format_type]}"


def export_story(story: Dict[str, Any], format_type: str) -> Response:
    """
    Flask download response for a story.

    Raises:
        ValidationError: Unknown format
        MissingDependencyError: Export library missing
        ServiceUnavailableError: Rendering failed
    """
    try:
        rendered = render_story(story, format_type)
    except (ValidationError, MissingDependencyError):
        raise
    except Exception as e:
        logger.error(f"{format_type} export failed for story {story.get('id')}: {e}", exc_info=True)
        raise ServiceUnavailableError("export", f"{format_type.upper()} export failed: {str(e)}")

    filename = export_filename(story, format_type)
    if isinstance(rendered, str):
        encoded_filename = quote(filename, safe='')
        return Response(
            rendered,
            mimetype=MIME_TYPES[format_type],
            headers={
                'Content-Disposition': f'attachment; filename="{filename}"; filename*=UTF-8\'\'{encoded_filename}'
            }
        )
    return send_file(
        BytesIO(rendered),
        mimetype=MIME_TYPES[format_type],
        as_attachment=True,
        download_name=filename,
    )
