"""
Datetime utility functions.
"""

from datetime import date, datetime
from typing import Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def format_match_date(date_input: Union[str, date, datetime]) -> str:
    """
    Normalize a match date to ISO YYYY-MM-DD format.

    Args:
        date_input: Date as string (ISO "2025-03-24", US "3/24/2025", "03/24/2025")
                   or date/datetime object

    Returns:
        Formatted date string like "2025-03-24"

    Raises:
        ValueError: If the input is empty or cannot be parsed

    Examples:
        >>> format_match_date("3/24/2025")
        "2025-03-24"
        >>> format_match_date("2025-03-24")
        "2025-03-24"
    """
    if isinstance(date_input, datetime):
        return date_input.date().isoformat()
    if isinstance(date_input, date):
        return date_input.isoformat()

    if not isinstance(date_input, str):
        raise ValueError(f"Expected string or date, got {type(date_input)}")

    date_str = date_input.strip()
    if not date_str:
        raise ValueError("Match date is required")

    for fmt in ("%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(date_str, fmt).date().isoformat()
        except ValueError:
            continue

    raise ValueError(f"Invalid match date '{date_str}', expected YYYY-MM-DD")
