import logging
from dataclasses import asdict
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from kobo_highlights.core.importer import NoHighlightsError, resolve_db_path, run_import
from kobo_highlights.core.settings import ImporterSettings, load_settings, save_settings
from kobo_highlights.integrations.kobo import KoboDatabaseError, count_bookmarks, open_database
from kobo_highlights.utils.paths import get_settings_path, load_environment

load_environment()

logger = logging.getLogger(__name__)

app = FastAPI()

SETTINGS_FILE: Path = get_settings_path()


@app.get("/api/settings")
async def get_settings():
    return JSONResponse(load_settings(SETTINGS_FILE).model_dump())


@app.post("/api/settings")
async def update_settings(settings: ImporterSettings):
    save_settings(settings, SETTINGS_FILE)
    return JSONResponse({"status": "saved"})


@app.get("/api/highlights/counts")
def get_highlight_counts():
    """Counts bookmarks on the device, split into sideloaded and store-bought."""
    settings = load_settings(SETTINGS_FILE)
    try:
        conn = open_database(resolve_db_path(settings))
    except KoboDatabaseError as e:
        raise HTTPException(status_code=404, detail=str(e))
    try:
        counts = count_bookmarks(conn)
    except KoboDatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        conn.close()
    return JSONResponse(asdict(counts))


@app.post("/api/import")
def import_highlights():
    """Imports every highlight from the Kobo database into the vault."""
    settings = load_settings(SETTINGS_FILE)
    try:
        result = run_import(settings)
    except (KoboDatabaseError, NoHighlightsError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OSError as e:
        logger.error(f"Import failed while writing notes: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error writing notes: {e}")

    return JSONResponse({
        "status": "imported",
        "counts": asdict(result.counts),
        "books_processed": result.books_processed,
        "new_books": result.new_books,
        "new_highlights": result.new_highlights,
        "skipped_highlights": result.skipped_highlights,
        "notes": [
            {"path": str(note.path), "new_highlights": note.new_highlights, "is_new": note.is_new}
            for note in result.notes
        ],
    })
