from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

from kobo_highlights.core.models import BookInfo, BookWithHighlights, ProcessedHighlight
from kobo_highlights.core.settings import ImporterSettings

ALPHA_ID = "file:///mnt/onboard/alpha.epub"
BETA_ID = "store-uuid-1"

SCHEMA = """
CREATE TABLE content (
    ContentID TEXT NOT NULL,
    ContentType TEXT,
    BookTitle TEXT,
    Title TEXT,
    Attribution TEXT,
    DateLastRead TEXT,
    VolumeIndex INTEGER,
    ___NumPages INTEGER,
    ___PercentRead TEXT
);
CREATE TABLE Bookmark (
    BookmarkID TEXT NOT NULL,
    VolumeID TEXT,
    ContentID TEXT,
    Text TEXT,
    Annotation TEXT,
    DateCreated TEXT,
    DateModified TEXT,
    ChapterProgress REAL,
    Hidden TEXT,
    Type TEXT
);
"""


def _insert_bookmark(db_path: Path, bookmark_id, volume_id, content_id, text, annotation=None,
                     date_created="2024-03-05T10:00:00.000", chapter_progress=0.0, type_="highlight"):
    conn = sqlite3.connect(db_path)
    with conn:
        conn.execute(
            "INSERT INTO Bookmark (BookmarkID, VolumeID, ContentID, Text, Annotation, DateCreated, "
            "DateModified, ChapterProgress, Type) VALUES (?, ?, ?, ?, ?, ?, NULL, ?, ?)",
            (bookmark_id, volume_id, content_id, text, annotation, date_created, chapter_progress, type_),
        )
    conn.close()


@pytest.fixture
def empty_kobo_db(tmp_path: Path) -> Path:
    db_path = tmp_path / "KoboReader.sqlite"
    conn = sqlite3.connect(db_path)
    conn.executescript(SCHEMA)
    conn.close()
    return db_path


@pytest.fixture
def kobo_db(empty_kobo_db: Path) -> Path:
    """
    Two books: 'Alpha' (sideloaded, 4 chapters) and 'Beta' (store-bought,
    2 chapters, ContentIDs without a chapter index), four bookmarks.
    """
    conn = sqlite3.connect(empty_kobo_db)
    with conn:
        conn.executemany(
            "INSERT INTO content (ContentID, ContentType, BookTitle, Title, Attribution, DateLastRead, "
            "VolumeIndex, ___NumPages, ___PercentRead) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (ALPHA_ID, "6", None, "Alpha", "Ann Author", "2024-03-01T09:00:00", -1, 200, "0.5"),
                (BETA_ID, "6", None, "Beta", "Bob Writer", None, -1, None, "27"),
            ] + [
                (f"{ALPHA_ID}#({i})OEBPS/c{i + 1}.xhtml", "9", "Alpha", f"Chapter {i + 1}", None, None, i, None, None)
                for i in range(4)
            ] + [
                (f"{BETA_ID}!!ch{i}", "9", "Beta", f"Part {i + 1}", None, None, i, None, None)
                for i in range(2)
            ],
        )
    conn.close()

    _insert_bookmark(empty_kobo_db, "b1", ALPHA_ID, f"{ALPHA_ID}#(1)OEBPS/c2.xhtml",
                     "First alpha highlight text", chapter_progress=0.5)
    _insert_bookmark(empty_kobo_db, "b2", ALPHA_ID, f"{ALPHA_ID}#(2)OEBPS/c3.xhtml",
                     "Second alpha highlight text", annotation="Worth rereading", chapter_progress=0.25)
    _insert_bookmark(empty_kobo_db, "b3", ALPHA_ID, f"{ALPHA_ID}#(3)OEBPS/c4.xhtml",
                     None, chapter_progress=0.9, type_="dogear")
    _insert_bookmark(empty_kobo_db, "b4", BETA_ID, f"{BETA_ID}!!ch1",
                     "Beta store highlight text", chapter_progress=0.1)
    return empty_kobo_db


@pytest.fixture
def insert_bookmark():
    return _insert_bookmark


@pytest.fixture
def settings() -> ImporterSettings:
    return ImporterSettings()


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 3, 10, 8, 0, 0)


def _make_highlight(bookmark_id: str, text: str, chapter: int | None = 3, progress: float = 0.5,
                   annotation: str = "") -> ProcessedHighlight:
    content_id = f"file:///b.epub#({chapter})OEBPS/ch{chapter}.xhtml" if chapter is not None else "file:///b.epub!!OEBPS/x.xhtml"
    return ProcessedHighlight(
        bookmark_id=bookmark_id,
        text=text,
        annotation=annotation,
        created_at=datetime(2024, 3, 5, 10, 0, 0),
        chapter_progress=progress,
        chapter_content_id=content_id,
    )


@pytest.fixture
def make_highlight():
    return _make_highlight


@pytest.fixture
def book() -> BookInfo:
    return BookInfo(
        title="The Book",
        author="Ann Author",
        content_id="file:///b.epub",
        percent_read=42.0,
        num_pages=300,
        date_last_read="2024-03-01T09:00:00",
    )


@pytest.fixture
def book_with_highlights(book: BookInfo) -> BookWithHighlights:
    return BookWithHighlights(book=book, highlights=[
        _make_highlight("h1", "The quick brown fox jumps over the lazy dog"),
        _make_highlight("h2", "A second highlight that is long enough", chapter=None),
    ])
