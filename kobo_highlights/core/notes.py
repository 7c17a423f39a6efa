"""
Generates Markdown notes from highlights and merges new highlights into
existing notes.

Duplicate detection matches highlight text against the blockquotes already
present in the note, so the output carries no visible ID markers.
"""
import logging
import re
from datetime import datetime
from typing import List, Optional, Set, Tuple

from kobo_highlights.core.models import (
    BookInfo, BookWithHighlights, ChapterTable, ProcessedHighlight, TemplateContext
)
from kobo_highlights.core.position import resolve_location, round_half_up
from kobo_highlights.core.settings import ImporterSettings
from kobo_highlights.core.templates import render_template
from kobo_highlights.utils.text import fingerprint, sanitize_filename

logger = logging.getLogger(__name__)

BLOCKQUOTE_RE = re.compile(r'^>\s*(.+)$')
MIN_QUOTE_LENGTH = 10


def create_book_context(book: BookInfo, highlight_count: int, now: Optional[datetime] = None) -> TemplateContext:
    return {
        'title': book.title,
        'author': book.author,
        'progress': round_half_up(book.percent_read),
        'pages': book.num_pages,
        'date_last_read': book.date_last_read,
        'highlights_count': highlight_count,
        'source': 'kobo',
        'date': (now or datetime.now()).isoformat(),
        'content_id': book.content_id,
    }


def create_highlight_context(
    highlight: ProcessedHighlight,
    book_context: TemplateContext,
    chapter_table: ChapterTable,
) -> TemplateContext:
    """Book context plus the highlight's own variables. location is None when unknown."""
    location = resolve_location(
        highlight.chapter_content_id,
        highlight.chapter_progress,
        chapter_table,
        book_id=book_context.get('content_id'),
    )
    context = dict(book_context)
    context.update({
        'text': highlight.text,
        'annotation': highlight.annotation,
        'chapter_progress': highlight.chapter_progress,
        'date_created': highlight.created_at.isoformat(),
        'bookmark_id': highlight.bookmark_id,
        'location': location,
    })
    return context


def render_new_note(
    book_with_highlights: BookWithHighlights,
    settings: ImporterSettings,
    chapter_table: ChapterTable,
    now: Optional[datetime] = None,
) -> str:
    """Full note: frontmatter, page metadata, then one block per highlight."""
    book, highlights = book_with_highlights.book, book_with_highlights.highlights
    book_context = create_book_context(book, len(highlights), now)

    sections = [
        render_template(settings.frontmatter_template, book_context),
        '',
        render_template(settings.page_metadata_template, book_context),
        '',
    ]
    for highlight in highlights:
        context = create_highlight_context(highlight, book_context, chapter_table)
        sections.append(render_template(settings.highlight_template, context))

    return '\n'.join(sections)


def extract_existing_fingerprints(content: str) -> Set[str]:
    """
    Fingerprints of the blockquotes in a note, ignoring very short ones.

    Each quoted line is fingerprinted on its own and together with the
    non-blank lines directly below it, so a highlight spanning paragraphs
    (rendered as '> first\\nsecond') is still recognised.
    """
    fingerprints = set()
    lines = content.split('\n')
    for i, line in enumerate(lines):
        match = BLOCKQUOTE_RE.match(line)
        if not match:
            continue
        text = match.group(1).strip()
        if len(text) >= MIN_QUOTE_LENGTH:
            fingerprints.add(fingerprint(text))

        following = []
        for next_line in lines[i + 1:]:
            if not next_line.strip() or BLOCKQUOTE_RE.match(next_line):
                break
            following.append(next_line)
        if following:
            joined = '\n'.join([text] + following)
            if len(joined.strip()) >= MIN_QUOTE_LENGTH:
                fingerprints.add(fingerprint(joined))
    return fingerprints


def select_new_highlights(existing_content: str, highlights: List[ProcessedHighlight]) -> List[ProcessedHighlight]:
    """Highlights whose fingerprint is not among the note's blockquotes."""
    existing = extract_existing_fingerprints(existing_content)
    return [h for h in highlights if fingerprint(h.text) not in existing]


def append_to_note(
    existing_content: str,
    book_with_highlights: BookWithHighlights,
    settings: ImporterSettings,
    chapter_table: ChapterTable,
    now: Optional[datetime] = None,
) -> Tuple[str, int]:
    """
    Appends highlights not yet in the note below a sync header.
    Returns (content, new_highlights_count); with nothing new the original
    content object is returned untouched.
    """
    book, highlights = book_with_highlights.book, book_with_highlights.highlights
    new_highlights = select_new_highlights(existing_content, highlights)

    if not new_highlights:
        return existing_content, 0

    book_context = create_book_context(book, len(highlights), now)

    sections = [
        '',
        render_template(settings.sync_header_template, book_context),
        '',
    ]
    for highlight in new_highlights:
        context = create_highlight_context(highlight, book_context, chapter_table)
        sections.append(render_template(settings.highlight_template, context))

    logger.debug(f"{book.title}: {len(new_highlights)} of {len(highlights)} highlights are new")
    return existing_content + '\n'.join(sections), len(new_highlights)


def generate_filename(title: str, settings: ImporterSettings) -> str:
    """Renders the filename template for a book title, without extension."""
    return sanitize_filename(render_template(settings.file_name_template, {'title': title}))
