"""Utility functions for Foucault."""
import re

# Whitespace and path-like separators split words
_WORD_SEPARATORS = re.compile(r"[\s:;/\\]+")
# Anything outside word characters and hyphens is dropped
_UNSAFE_CHARS = re.compile(r"[^\w\-]")


def sanitize_for_terminal(text: str) -> str:
    """Turn a note name into a filename fragment for the editor scratch file.

    Words are joined with hyphens; anything but letters, digits, hyphens
    and underscores is dropped, so the path is easy to read and retype
    from the message shown when an edit is kept.

    Examples:
        "Critique of Pure Reason" -> "Critique-of-Pure-Reason"
        "Hegel: Phenomenology" -> "Hegel-Phenomenology"
        "draft_note" -> "draft_note"

    Args:
        text: Note name.

    Returns:
        Hyphenated name, possibly empty.
    """
    words = _WORD_SEPARATORS.split(text or "")
    sanitized_words = (_UNSAFE_CHARS.sub("", word) for word in words)
    return "-".join(word for word in sanitized_words if word)


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Prevents user input containing '%' or '_' from matching unintended
    names in prefix and substring searches.

    Args:
        value: User input string that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for use with ESCAPE '\\'

    Example:
        >>> escape_like_pattern("100% done")
        '100\\% done'
        >>> escape_like_pattern("draft_1")
        'draft\\_1'
    """
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)
