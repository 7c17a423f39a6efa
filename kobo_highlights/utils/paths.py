import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Sync desktop app on macOS, then a mounted reader
KOBO_DESKTOP_DIR = Path(os.path.expanduser("~/Library/Application Support/Kobo/Kobo Desktop Edition"))
KOBO_DESKTOP_DB_NAMES = ["Kobo.sqlite", "Book.sqlite", "KoboReader.sqlite"]
KOBO_DEVICE_DB = Path("/Volumes/KOBOeReader/.kobo/KoboReader.sqlite")


def get_project_root() -> Path:
    """Returns the root directory of the project."""
    # This file is in kobo_highlights/utils/paths.py
    # Root is 3 levels up
    return Path(__file__).resolve().parent.parent.parent


def load_environment() -> None:
    """Loads the .env file at the project root, if any."""
    load_dotenv(get_project_root() / ".env")


def get_kobo_db_path() -> Optional[Path]:
    """Returns the path to the Kobo database, or None if none is found."""
    override = os.getenv("KOBO_DB_PATH")
    if override:
        return Path(os.path.expanduser(override))

    for name in KOBO_DESKTOP_DB_NAMES:
        p = KOBO_DESKTOP_DIR / name
        if p.exists():
            return p
    if KOBO_DEVICE_DB.exists():
        return KOBO_DEVICE_DB
    return None


def get_obsidian_vault_dir() -> Path:
    """Returns the path to the Obsidian Vault."""
    return Path(os.path.expanduser(os.getenv("OBSIDIAN_VAULT_DIR", "~/Documents/Obsidian Vault")))


def get_settings_path() -> Path:
    """Returns the path of the importer settings file."""
    override = os.getenv("KOBO_HIGHLIGHTS_SETTINGS")
    if override:
        return Path(os.path.expanduser(override))
    return get_project_root() / "kobo_highlights_settings.json"


def ensure_dir_exists(path: Path) -> None:
    """Ensures that a directory exists."""
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)
