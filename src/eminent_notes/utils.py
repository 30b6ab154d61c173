"""Utility functions for Eminent Notes."""

import unicodedata
from typing import Optional


def fold_text(text: Optional[str]) -> Optional[str]:
    """Fold text for case- and diacritic-insensitive comparison.

    Decomposes the text, drops combining marks and applies Unicode case
    folding, so "Café" and "CAFE" fold to the same value.

    Examples:
        "Résumé" -> "resume"
        "STRASSE" -> "strasse"
        "Straße" -> "strasse"

    Args:
        text: The text to fold. None is passed through.

    Returns:
        The folded text, or None.
    """
    if text is None:
        return None
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Prevents SQL LIKE pattern injection where user input containing
    '%' or '_' could match unintended patterns.

    Args:
        value: User input string that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for safe use in LIKE clauses

    Example:
        >>> escape_like_pattern("100% complete")
        '100\\% complete'
        >>> escape_like_pattern("file_name")
        'file\\_name'
    """
    # Use str.translate() for single-pass efficiency
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)


def contains_pattern(needle: str) -> str:
    """Build a folded, escaped LIKE pattern matching any text containing needle."""
    return f"%{escape_like_pattern(fold_text(needle))}%"
