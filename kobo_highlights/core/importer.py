"""
Runs a full import: Kobo database -> grouped highlights -> Markdown notes.

Books are written one at a time in title order. Notes written before a
failure stay written.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from kobo_highlights.core.aggregator import aggregate_highlights
from kobo_highlights.core.models import BookWithHighlights, ChapterTable, ImportResult, NoteResult
from kobo_highlights.core.notes import append_to_note, generate_filename, render_new_note
from kobo_highlights.core.obsidian import (
    ensure_output_folder, get_note_path, get_output_dir, read_existing_note, write_note
)
from kobo_highlights.core.position import build_chapter_table
from kobo_highlights.core.settings import ImporterSettings
from kobo_highlights.integrations.kobo import (
    KoboDatabaseError, build_book_index, chapter_rows, count_bookmarks,
    list_books, list_highlights, open_database
)
from kobo_highlights.utils.paths import get_kobo_db_path, get_obsidian_vault_dir

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]


class NoHighlightsError(RuntimeError):
    """The database holds no bookmarks at all."""


def _log_progress(status: str, percent: float) -> None:
    logger.info(f"[{percent:3.0f}%] {status}")


def resolve_db_path(settings: ImporterSettings, db_path: Optional[Path] = None) -> Path:
    if db_path is not None:
        return db_path
    if settings.database_path:
        return Path(settings.database_path).expanduser()
    found = get_kobo_db_path()
    if found is None:
        raise KoboDatabaseError("Kobo database not found. Set the database path in settings.")
    return found


def resolve_vault_dir(settings: ImporterSettings, vault_dir: Optional[Path] = None) -> Path:
    if vault_dir is not None:
        return vault_dir
    if settings.vault_dir:
        return Path(settings.vault_dir).expanduser()
    return get_obsidian_vault_dir()


def create_or_update_book_note(
    book_with_highlights: BookWithHighlights,
    folder: Path,
    settings: ImporterSettings,
    chapter_table: ChapterTable,
    now: Optional[datetime] = None,
) -> NoteResult:
    """
    Creates the note for a book, or updates it: appends new highlights in
    append mode, overwrites it otherwise.
    """
    filename = generate_filename(book_with_highlights.book.title, settings)
    path = get_note_path(folder, filename)
    existing = read_existing_note(path)
    total = len(book_with_highlights.highlights)

    if existing is not None and settings.append_to_existing:
        content, new_count = append_to_note(existing, book_with_highlights, settings, chapter_table, now)
        # Only touch the file when something changed
        if new_count > 0:
            write_note(path, content)
        return NoteResult(path=path, new_highlights=new_count, is_new=False)

    content = render_new_note(book_with_highlights, settings, chapter_table, now)
    write_note(path, content)
    return NoteResult(path=path, new_highlights=total, is_new=existing is None)


def run_import(
    settings: ImporterSettings,
    db_path: Optional[Path] = None,
    vault_dir: Optional[Path] = None,
    progress: Optional[ProgressCallback] = None,
    now: Optional[datetime] = None,
) -> ImportResult:
    report = progress or _log_progress

    report("Checking database file...", 10)
    path = resolve_db_path(settings, db_path)

    report("Opening database...", 20)
    conn = open_database(path)

    try:
        report("Counting highlights...", 30)
        counts = count_bookmarks(conn)
        logger.debug(f"Highlight counts: {counts}")
        if counts.total == 0:
            raise NoHighlightsError("No highlights found in the database.")

        report("Loading books...", 40)
        book_index = build_book_index(list_books(conn, settings.include_store_bought))
        logger.info(f"Loaded {len(book_index)} books")

        report("Loading highlights...", 50)
        raw_highlights = list_highlights(conn, settings.include_store_bought)
        logger.info(f"Loaded {len(raw_highlights)} bookmarks")

        report("Processing highlights...", 60)
        books = aggregate_highlights(raw_highlights, book_index)
        logger.info(f"Processed {len(books)} books with highlights")

        report("Loading chapter data...", 65)
        chapter_table = build_chapter_table(chapter_rows(conn))
        logger.info(f"Loaded chapter data for {len(chapter_table)} books")
    finally:
        conn.close()

    report("Creating output folder...", 70)
    folder = ensure_output_folder(get_output_dir(resolve_vault_dir(settings, vault_dir), settings.output_folder))

    result = ImportResult(counts=counts, books_processed=len(books))
    total_seen = 0

    for i, book_with_highlights in enumerate(books):
        report(f"Importing: {book_with_highlights.book.title}", 70 + ((i + 1) / len(books)) * 25)
        note = create_or_update_book_note(book_with_highlights, folder, settings, chapter_table, now)
        result.notes.append(note)
        result.new_highlights += note.new_highlights
        total_seen += len(book_with_highlights.highlights)
        if note.is_new:
            result.new_books += 1

    result.skipped_highlights = total_seen - result.new_highlights

    report("Import complete!", 100)
    if result.new_highlights > 0:
        logger.info(f"Imported {result.new_highlights} new highlights from {result.books_processed} books.")
    else:
        logger.info("All highlights are already imported. No changes made.")
    return result
