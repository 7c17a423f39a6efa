import re
import unicodedata

ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
MAX_FILENAME_LENGTH = 100


def normalize_text(text: str) -> str:
    """
    Trims highlight text, turns tabs into spaces and collapses runs of spaces.
    Newlines are kept for readability.
    """
    if not text:
        return ''
    text = text.strip().replace('\t', ' ')
    return re.sub(r' {2,}', ' ', text)


def fingerprint(text: str) -> str:
    """
    Coarse content hash for duplicate detection: the first 50 characters of the
    lower-cased, whitespace-collapsed text plus its total length.
    """
    normalized = re.sub(r'\s+', ' ', text.lower()).strip()
    prefix = normalized[:50]
    return f"{prefix or 'empty'}_{len(normalized)}"


def sanitize_filename(name: str) -> str:
    """Sanitizes a string to be safe for filenames."""
    # Drop invalid characters; the whitespace collapse below absorbs the gap
    safe_name = ILLEGAL_FILENAME_CHARS.sub(' ', name)
    safe_name = re.sub(r'\s+', ' ', safe_name).strip()
    return safe_name[:MAX_FILENAME_LENGTH]


def collation_key(text: str) -> str:
    """
    Sort key approximating locale-aware comparison: accents and case are
    ignored, so 'Émile' sorts next to 'emile' rather than after 'zoo'.
    """
    decomposed = unicodedata.normalize('NFKD', text)
    stripped = ''.join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()
