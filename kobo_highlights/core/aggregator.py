"""
Groups raw Kobo bookmarks by book and resolves each book's metadata.

Books without a title fall back to their file name, percent-decoded
('My%20Book.epub' becomes 'My Book'). A note saved earlier under the
undecoded name ('My%20Book.md') is not matched, so a new note is created.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Union
from urllib.parse import unquote, urlparse

from kobo_highlights.core.dates import parse_kobo_date
from kobo_highlights.core.models import (
    BookInfo, BookWithHighlights, ProcessedHighlight, RawBookMeta, RawHighlight
)
from kobo_highlights.utils.text import collation_key, normalize_text

logger = logging.getLogger(__name__)

ANNOTATION_PLACEHOLDER = 'Placeholder for attached annotation'
UNKNOWN_AUTHOR = 'Unknown Author'
EBOOK_EXTENSION_RE = re.compile(r'\.(epub|kepub|pdf|mobi)$', re.IGNORECASE)


def extract_title_from_path(volume_id: str) -> str:
    """file:///mnt/onboard/Some%20Book.epub -> 'Some Book'"""
    parsed = urlparse(volume_id)
    path = unquote(parsed.path) if parsed.scheme else volume_id
    filename = path.split('/')[-1] or 'Unknown'
    return EBOOK_EXTENSION_RE.sub('', filename)


def normalize_percent_read(raw: Optional[Union[str, float]]) -> float:
    """
    PercentRead is stored as a fraction (0.27) or a whole number (27)
    depending on the Kobo firmware version.
    """
    try:
        value = float(raw) if raw not in (None, '') else 0.0
    except (TypeError, ValueError):
        logger.warning(f"Unreadable PercentRead value {raw!r}, assuming 0")
        value = 0.0
    return value if value > 1 else value * 100


def process_highlight(raw: RawHighlight) -> Optional[ProcessedHighlight]:
    """Returns None for bookmarks carrying neither text nor annotation."""
    text = normalize_text(raw.text or '')
    annotation = raw.annotation or ''
    if not text and not annotation:
        return None

    return ProcessedHighlight(
        bookmark_id=raw.bookmark_id,
        text=text or ANNOTATION_PLACEHOLDER,
        annotation=annotation,
        created_at=parse_kobo_date(raw.date_created or raw.date_modified),
        chapter_progress=raw.chapter_progress,
        chapter_content_id=raw.content_id,
    )


def resolve_book(volume_id: str, meta: Optional[RawBookMeta]) -> BookInfo:
    title = (meta.title or meta.book_title) if meta else None
    if not title:
        title = extract_title_from_path(volume_id)

    return BookInfo(
        title=title,
        author=(meta.author if meta else None) or UNKNOWN_AUTHOR,
        content_id=volume_id,
        percent_read=normalize_percent_read(meta.percent_read if meta else None),
        num_pages=(meta.num_pages if meta else None) or None,
        date_last_read=(meta.date_last_read if meta else None) or None,
    )


def aggregate_highlights(
    raw_highlights: Iterable[RawHighlight],
    book_index: Dict[str, RawBookMeta],
) -> List[BookWithHighlights]:
    """
    Groups highlights by VolumeID, keeping the input order within each book,
    and returns the books sorted by title.
    """
    grouped: Dict[str, List[ProcessedHighlight]] = {}
    dropped: Dict[str, int] = {}

    for raw in raw_highlights:
        highlight = process_highlight(raw)
        if highlight is None:
            kind = raw.type or 'unknown'
            dropped[kind] = dropped.get(kind, 0) + 1
            continue
        grouped.setdefault(raw.volume_id, []).append(highlight)

    if dropped:
        summary = ', '.join(f"{count} {kind}" for kind, count in sorted(dropped.items()))
        logger.debug(f"Skipped bookmarks without text or annotation: {summary}")

    books = []
    for volume_id, highlights in grouped.items():
        meta = book_index.get(volume_id)
        if meta is None:
            logger.debug(f"No content row for {volume_id}, deriving title from path")
        books.append(BookWithHighlights(book=resolve_book(volume_id, meta), highlights=highlights))

    books.sort(key=lambda b: collation_key(b.book.title))
    return books
