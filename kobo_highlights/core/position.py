"""
Reconstructs where in a book a highlight sits, as a percentage.

Kobo chapter ContentIDs embed the chapter index:
    file:///mnt/onboard/book.epub#(5)OEBPS/Text/chapter.xhtml
    file:///mnt/onboard/book.epub!!OEBPS/chapter1.xhtml
"""
import logging
import math
import re
from typing import Iterable, Optional

from kobo_highlights.core.models import ChapterRow, ChapterTable

logger = logging.getLogger(__name__)

CHAPTER_INDEX_RE = re.compile(r'#\((\d+)\)')


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def extract_book_id(content_id: str) -> str:
    """Returns the part of a chapter ContentID before the first '#' or '!!'."""
    separators = [i for i in (content_id.find('#'), content_id.find('!!')) if i != -1]
    if separators:
        return content_id[:min(separators)]
    return content_id


def extract_chapter_index(content_id: Optional[str]) -> Optional[int]:
    """file:///path/book.epub#(5)OEBPS/Text/chapter.xhtml -> 5"""
    if not content_id:
        return None
    match = CHAPTER_INDEX_RE.search(content_id)
    if match:
        return int(match.group(1))
    return None


def build_chapter_table(chapters: Iterable[ChapterRow]) -> ChapterTable:
    """Maps each book id to (highest chapter VolumeIndex) + 1."""
    table: ChapterTable = {}
    for chapter in chapters:
        book_id = extract_book_id(chapter.content_id)
        table[book_id] = max(table.get(book_id, 0), chapter.volume_index + 1)
    return table


def resolve_location(
    chapter_content_id: Optional[str],
    chapter_progress: float,
    chapter_table: ChapterTable,
    book_id: Optional[str] = None,
) -> Optional[int]:
    """
    Returns the highlight's position in the book (0-100), or None when it
    cannot be computed from real data.

    book_id defaults to the prefix of chapter_content_id.
    """
    chapter_index = extract_chapter_index(chapter_content_id)
    if chapter_index is None:
        return None

    if book_id is None:
        book_id = extract_book_id(chapter_content_id)
    total_chapters = chapter_table.get(book_id, 0)
    if total_chapters <= 0:
        return None

    # No clamping: out-of-range input data shows up as an out-of-range percentage
    percent = round_half_up(((chapter_index + chapter_progress) / total_chapters) * 100)
    if not 0 <= percent <= 100:
        logger.warning(f"Location {percent}% out of range for {chapter_content_id}")
    return percent
