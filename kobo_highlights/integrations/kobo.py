"""
Read-only access to a Kobo SQLite database (KoboReader.sqlite).

Rows are decoded into record types here; nothing past this module sees
sqlite3 rows.
"""
import sqlite3
import logging
from pathlib import Path
from typing import Dict, Iterable, List

from kobo_highlights.core.models import ChapterRow, HighlightCounts, RawBookMeta, RawHighlight

logger = logging.getLogger(__name__)

SIDELOADED_FILTER = "LIKE '%file:///%'"


class KoboDatabaseError(RuntimeError):
    """The Kobo database is missing or unreadable."""


def open_database(db_path: Path) -> sqlite3.Connection:
    """Opens the database read-only. The caller closes the connection."""
    if not db_path.exists():
        raise KoboDatabaseError(f"Database file not found: {db_path}")

    logger.info(f"Connecting to Kobo DB at {db_path}...")
    conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    conn.row_factory = sqlite3.Row
    try:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    except sqlite3.Error as e:
        conn.close()
        raise KoboDatabaseError(f"Cannot read {db_path}: {e}") from e

    # Table names are case-insensitive in SQLite
    missing = {"bookmark", "content"} - {t.lower() for t in tables}
    if missing:
        conn.close()
        raise KoboDatabaseError(f"{db_path} is not a Kobo database (missing tables: {', '.join(sorted(missing))})")
    return conn


def _query(conn: sqlite3.Connection, sql: str) -> List[sqlite3.Row]:
    try:
        return conn.execute(sql).fetchall()
    except sqlite3.Error as e:
        raise KoboDatabaseError(f"SQLite Error: {e}") from e


def list_books(conn: sqlite3.Connection, include_store_bought: bool) -> List[RawBookMeta]:
    """Lists book-level content rows (ContentType 6)."""
    query = """
        SELECT
            ContentID,
            BookTitle,
            Title,
            Attribution,
            DateLastRead,
            "___NumPages" AS NumPages,
            "___PercentRead" AS PercentRead
        FROM content
        WHERE ContentType = '6' AND VolumeIndex = -1
    """
    if not include_store_bought:
        query += f" AND ContentID {SIDELOADED_FILTER}"
    query += ' ORDER BY "___PercentRead" DESC, Title ASC'

    books = []
    for row in _query(conn, query):
        books.append(RawBookMeta(
            content_id=row["ContentID"],
            title=row["Title"],
            book_title=row["BookTitle"],
            author=row["Attribution"],
            num_pages=row["NumPages"],
            date_last_read=row["DateLastRead"],
            percent_read=row["PercentRead"],
        ))
    return books


def list_highlights(conn: sqlite3.Connection, include_store_bought: bool) -> List[RawHighlight]:
    """Lists bookmarks, ordered by volume then position in chapter."""
    query = """
        SELECT
            BookmarkID,
            VolumeID,
            ContentID,
            Text,
            Annotation,
            DateCreated,
            DateModified,
            ChapterProgress,
            Type
        FROM Bookmark
    """
    if not include_store_bought:
        query += f" WHERE VolumeID {SIDELOADED_FILTER}"
    query += " ORDER BY VolumeID ASC, ChapterProgress ASC"

    highlights = []
    for row in _query(conn, query):
        highlights.append(RawHighlight(
            bookmark_id=row["BookmarkID"],
            volume_id=row["VolumeID"],
            content_id=row["ContentID"],
            text=row["Text"],
            annotation=row["Annotation"],
            date_created=row["DateCreated"],
            date_modified=row["DateModified"],
            chapter_progress=float(row["ChapterProgress"] or 0.0),
            type=row["Type"],
        ))
    return highlights


def chapter_rows(conn: sqlite3.Connection) -> List[ChapterRow]:
    """Lists chapter-level content rows (ContentType 9)."""
    query = """
        SELECT
            ContentID,
            VolumeIndex
        FROM content
        WHERE ContentType = '9'
    """
    chapters = []
    for row in _query(conn, query):
        if row["VolumeIndex"] is None:
            continue
        chapters.append(ChapterRow(content_id=row["ContentID"], volume_index=int(row["VolumeIndex"])))
    return chapters


def count_bookmarks(conn: sqlite3.Connection) -> HighlightCounts:
    def get_count(sql: str) -> int:
        rows = _query(conn, sql)
        return rows[0][0] if rows else 0

    return HighlightCounts(
        total=get_count("SELECT COUNT(*) FROM Bookmark"),
        sideloaded=get_count(f"SELECT COUNT(*) FROM Bookmark WHERE VolumeID {SIDELOADED_FILTER}"),
        official=get_count(f"SELECT COUNT(*) FROM Bookmark WHERE VolumeID NOT {SIDELOADED_FILTER}"),
    )


def build_book_index(books: Iterable[RawBookMeta]) -> Dict[str, RawBookMeta]:
    """Indexes book rows by ContentID."""
    return {book.content_id: book for book in books}
