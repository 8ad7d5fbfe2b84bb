"""Unified text normalization for title/artist matching.

This module provides a single source of truth for normalizing track titles and
artist names when used for matching, comparison, or as duplicate group keys.

All code that compares titles or artists for equality should use normalize_for_matching().
"""

from __future__ import annotations

GROUP_KEY_SEPARATOR = "|"


def normalize_for_matching(text: str | None) -> str:
    """Normalize text for case-insensitive matching and group keys.

    Args:
        text: Text to normalize (title, artist name). ``None`` is accepted.

    Returns:
        Normalized text: stripped whitespace, lowercased

    Examples:
        >>> normalize_for_matching("  Vildhjarta  ")
        'vildhjarta'
        >>> normalize_for_matching("2CELLOS")
        '2cellos'
        >>> normalize_for_matching(None)
        ''
    """
    return text.strip().lower() if text else ""


def make_group_key(title: str | None, artist: str | None) -> str:
    """Build the duplicate group key for a title/artist pair.

    Never fails: missing or blank values contribute an empty component.

    Examples:
        >>> make_group_key(" Bad Guy ", "Billie Eilish")
        'bad guy|billie eilish'
        >>> make_group_key("", None)
        '|'
    """
    return f"{normalize_for_matching(title)}{GROUP_KEY_SEPARATOR}{normalize_for_matching(artist)}"
