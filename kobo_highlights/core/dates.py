"""
Date parsing and token-based formatting for note templates.

Supported tokens: YYYY, MMMM (month name, Italian), MMM (short month name,
English), MM, dddd (weekday name), DD, HH, mm, ss.
"""
import logging
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

MONTHS = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December'
]

MONTHS_IT = [
    'gennaio', 'febbraio', 'marzo', 'aprile', 'maggio', 'giugno',
    'luglio', 'agosto', 'settembre', 'ottobre', 'novembre', 'dicembre'
]

# Indexed by datetime.weekday(), Monday first
WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


def parse_date(date_str: Optional[str]) -> Optional[datetime]:
    """Parses an ISO-8601 timestamp as written by Kobo firmware. Returns None if unparseable."""
    if not date_str:
        return None
    value = date_str.strip()
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_kobo_date(date_str: Optional[str]) -> datetime:
    """Like parse_date, but falls back to the current time."""
    parsed = parse_date(date_str)
    if parsed is None:
        if date_str:
            logger.warning(f"Unparseable Kobo date '{date_str}', using current time")
        return datetime.now()
    return parsed


def format_date(date_str: Optional[str], fmt: str) -> str:
    """
    Formats a date string with a token pattern.
    Empty input gives an empty string; unparseable input is returned as-is.
    Only the first occurrence of each token is replaced.
    """
    if not date_str:
        return ''

    date = parse_date(date_str)
    if date is None:
        return date_str
    if date.tzinfo is not None:
        date = date.astimezone()

    # Longest tokens first: MMMM before MMM before MM
    return (fmt
            .replace('YYYY', str(date.year), 1)
            .replace('MMMM', MONTHS_IT[date.month - 1], 1)
            .replace('MMM', MONTHS[date.month - 1][:3], 1)
            .replace('MM', f"{date.month:02d}", 1)
            .replace('dddd', WEEKDAYS[date.weekday()], 1)
            .replace('DD', f"{date.day:02d}", 1)
            .replace('HH', f"{date.hour:02d}", 1)
            .replace('mm', f"{date.minute:02d}", 1)
            .replace('ss', f"{date.second:02d}", 1))
