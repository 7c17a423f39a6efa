"""Importer settings, persisted as a JSON file."""
import json
import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError

from kobo_highlights.core.templates import DEFAULT_TEMPLATES

logger = logging.getLogger(__name__)


class ImporterSettings(BaseModel):
    database_path: str = ""
    vault_dir: str = ""  # Empty means OBSIDIAN_VAULT_DIR / the default vault
    output_folder: str = "Kobo Highlights"
    include_store_bought: bool = True
    append_to_existing: bool = True

    file_name_template: str = DEFAULT_TEMPLATES['file_name']
    frontmatter_template: str = DEFAULT_TEMPLATES['frontmatter']
    page_metadata_template: str = DEFAULT_TEMPLATES['page_metadata']
    highlight_template: str = DEFAULT_TEMPLATES['highlight']
    sync_header_template: str = DEFAULT_TEMPLATES['sync_header']


def load_settings(path: Path) -> ImporterSettings:
    """Loads saved settings over the defaults. Missing or broken files give the defaults."""
    if not path.exists():
        return ImporterSettings()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return ImporterSettings(**data)
    except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
        logger.warning(f"Could not load settings from {path}: {e}")
        return ImporterSettings()


def save_settings(settings: ImporterSettings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(settings.model_dump(), f, indent=2, ensure_ascii=False)
