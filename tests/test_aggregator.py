from __future__ import annotations

from datetime import datetime

import pytest

from kobo_highlights.core.aggregator import (
    ANNOTATION_PLACEHOLDER,
    aggregate_highlights,
    extract_title_from_path,
    normalize_percent_read,
)
from kobo_highlights.core.models import RawBookMeta, RawHighlight


def _raw(bookmark_id, volume_id, text, annotation=None, progress=0.0, date_created="2024-03-05T10:00:00", **kwargs):
    return RawHighlight(
        bookmark_id=bookmark_id,
        volume_id=volume_id,
        text=text,
        annotation=annotation,
        date_created=date_created,
        chapter_progress=progress,
        content_id=f"{volume_id}#(0)OEBPS/c.xhtml",
        **kwargs,
    )


def test_groups_by_volume_and_sorts_by_title():
    index = {
        "v1": RawBookMeta(content_id="v1", title="Zebra"),
        "v2": RawBookMeta(content_id="v2", title="apple"),
        "v3": RawBookMeta(content_id="v3", title="Émile"),
    }
    books = aggregate_highlights([
        _raw("a", "v1", "zebra one"),
        _raw("b", "v2", "apple one"),
        _raw("c", "v1", "zebra two"),
        _raw("d", "v3", "emile one"),
    ], index)

    assert [b.book.title for b in books] == ["apple", "Émile", "Zebra"]
    zebra = books[2]
    assert [h.bookmark_id for h in zebra.highlights] == ["a", "c"]
    assert all(b.book.content_id == b.highlights[0].chapter_content_id.split("#")[0] for b in books)


def test_text_is_normalized():
    books = aggregate_highlights([_raw("a", "v1", "  one\t\ttwo   three\n  four  ")], {})
    assert books[0].highlights[0].text == "one two three\n four"


def test_empty_bookmarks_are_dropped():
    books = aggregate_highlights([
        _raw("a", "v1", "   ", annotation=None),
        _raw("b", "v1", None, annotation=""),
        _raw("c", "v2", None),
    ], {})
    assert books == []


def test_annotation_only_bookmark_gets_placeholder_text():
    books = aggregate_highlights([_raw("a", "v1", None, annotation="My thought")], {})
    highlight = books[0].highlights[0]
    assert highlight.text == ANNOTATION_PLACEHOLDER
    assert highlight.annotation == "My thought"


def test_book_metadata_resolution():
    index = {
        "v1": RawBookMeta(content_id="v1", title=None, book_title="Fallback Title", author=None,
                          num_pages=320, date_last_read="2024-02-01T00:00:00", percent_read="0.27"),
    }
    book = aggregate_highlights([_raw("a", "v1", "text")], index)[0].book
    assert book.title == "Fallback Title"
    assert book.author == "Unknown Author"
    assert book.num_pages == 320
    assert book.date_last_read == "2024-02-01T00:00:00"
    assert book.percent_read == pytest.approx(27)


def test_title_falls_back_to_file_name():
    volume_id = "file:///mnt/onboard/Books/My%20Book.EPUB"
    book = aggregate_highlights([_raw("a", volume_id, "text")], {}).pop().book
    assert book.title == "My Book"
    assert book.percent_read == 0


@pytest.mark.parametrize("volume_id, expected", [
    ("file:///mnt/onboard/dune.kepub.epub", "dune.kepub"),
    ("file:///mnt/onboard/notes.pdf", "notes"),
    ("/mnt/onboard/plain.mobi", "plain"),
    ("0b5c3a9e-store-uuid", "0b5c3a9e-store-uuid"),
])
def test_extract_title_from_path(volume_id, expected):
    assert extract_title_from_path(volume_id) == expected


@pytest.mark.parametrize("raw, expected", [
    ("0.27", 27), (0.5, 50), ("27", 27), (100, 100), (1, 100), (None, 0), ("", 0), ("n/a", 0),
])
def test_normalize_percent_read(raw, expected):
    assert normalize_percent_read(raw) == pytest.approx(expected)


def test_creation_date_falls_back_to_modified_date():
    books = aggregate_highlights([
        _raw("a", "v1", "text", date_created=None, date_modified="2023-12-24T18:30:00"),
    ], {})
    assert books[0].highlights[0].created_at == datetime(2023, 12, 24, 18, 30, 0)


def test_skipped_bookmarks_are_reported_by_type(caplog):
    caplog.set_level("DEBUG", logger="kobo_highlights.core.aggregator")
    aggregate_highlights([
        _raw("a", "v1", None, type="dogear"),
        _raw("b", "v1", None, type="dogear"),
        _raw("c", "v1", "  "),
        _raw("d", "v1", "kept text", type="highlight"),
    ], {})
    assert "Skipped bookmarks without text or annotation: 2 dogear, 1 unknown" in caplog.text
