from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

# Book id -> total chapter count. Rebuilt on every import run.
ChapterTable = Dict[str, int]

# Flat variable map handed to the template renderer.
TemplateContext = Dict[str, Optional[Union[str, int, float]]]


@dataclass(frozen=True)
class RawHighlight:
    """One row of the Kobo Bookmark table."""
    bookmark_id: str
    volume_id: str
    text: Optional[str]
    annotation: Optional[str]
    date_created: Optional[str]
    chapter_progress: float
    content_id: Optional[str] = None  # Chapter-level ContentID, e.g. 'file:///b.epub#(3)OEBPS/ch4.xhtml'
    date_modified: Optional[str] = None
    type: Optional[str] = None  # Bookmark kind, e.g. 'dogear'


@dataclass(frozen=True)
class RawBookMeta:
    """One volume row (ContentType 6) of the Kobo content table."""
    content_id: str
    title: Optional[str] = None
    book_title: Optional[str] = None
    author: Optional[str] = None
    num_pages: Optional[int] = None
    date_last_read: Optional[str] = None
    percent_read: Optional[Union[str, float]] = None  # 0.27 or 27 depending on firmware


@dataclass(frozen=True)
class ChapterRow:
    """A chapter entry (ContentType 9) used to size the chapter table."""
    content_id: str
    volume_index: int


@dataclass(frozen=True)
class ProcessedHighlight:
    bookmark_id: str
    text: str
    annotation: str
    created_at: datetime
    chapter_progress: float
    chapter_content_id: Optional[str] = None


@dataclass(frozen=True)
class BookInfo:
    title: str
    author: str
    content_id: str
    percent_read: float
    num_pages: Optional[int] = None
    date_last_read: Optional[str] = None


@dataclass
class BookWithHighlights:
    """A resolved book and the highlights taken from it, in reading order."""
    book: BookInfo
    highlights: List[ProcessedHighlight] = field(default_factory=list)


@dataclass(frozen=True)
class HighlightCounts:
    total: int
    sideloaded: int
    official: int


@dataclass(frozen=True)
class NoteResult:
    path: Path
    new_highlights: int
    is_new: bool


@dataclass
class ImportResult:
    """Statistics of one import run."""
    counts: HighlightCounts
    books_processed: int = 0
    new_books: int = 0
    new_highlights: int = 0
    skipped_highlights: int = 0
    notes: List[NoteResult] = field(default_factory=list)
