import logging
from pathlib import Path
from typing import Optional

from kobo_highlights.utils.paths import ensure_dir_exists

logger = logging.getLogger(__name__)


def get_output_dir(vault_dir: Path, output_folder: str) -> Path:
    """Returns the folder of the vault where highlight notes are written."""
    return vault_dir / output_folder


def ensure_output_folder(folder: Path) -> Path:
    """Creates the output folder if needed. Fails if a file is in its place."""
    if folder.exists() and not folder.is_dir():
        raise NotADirectoryError(f"{folder} exists but is not a folder")
    ensure_dir_exists(folder)
    return folder


def get_note_path(folder: Path, filename: str) -> Path:
    return folder / f"{filename}.md"


def read_existing_note(path: Path) -> Optional[str]:
    """Gets the content of a note, or None if it doesn't exist."""
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def write_note(path: Path, content: str) -> None:
    """Saves the content of a note, replacing any previous content."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    logger.debug(f"Wrote {path}")
