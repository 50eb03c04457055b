"""Core utility functions for dwca_tools.

This module provides shared string helpers used by the descriptor parser,
the record layer and the writer.
"""

from __future__ import annotations

import html
import re
from typing import Optional

from dwca_tools.core.errors import UnsupportedArchiveError

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_ESCAPE_PATTERN = re.compile(r"\\([tnrf])", re.IGNORECASE)
_QUOTE_ESCAPES = {"\\t": "\t", "\\n": "\n", "\\r": "\r"}
_NULL_PATTERN = re.compile(r"^\s*(null|\\N)?\s*$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def empty_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


def trim_to_none(value: Optional[str]) -> Optional[str]:
    """Strip a string, returning None when nothing is left."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_whitespace(value: Optional[str]) -> Optional[str]:
    """Trim and collapse inner whitespace runs to a single space."""
    value = trim_to_none(value)
    if value is None:
        return None
    return _WHITESPACE.sub(" ", value)


def unescape_backslash(value: Optional[str]) -> Optional[str]:
    r"""Turn literal ``\t``, ``\n``, ``\r`` and ``\f`` sequences into control characters.

    Examples:
        >>> unescape_backslash("\\t")
        '\t'
        >>> unescape_backslash("") is None
        True
    """
    if not value:
        return None
    return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES[m.group(1).lower()], value)


def quote_char(value: Optional[str]) -> Optional[str]:
    r"""Parse a quote attribute value into a single character.

    Args:
        value: Raw attribute value. Empty or None means no quoting.

    Returns:
        The quote character, or None when quoting is disabled.

    Raises:
        UnsupportedArchiveError: If the value holds more than one character
            and is not one of ``\t``, ``\n`` or ``\r``.
    """
    if not value:
        return None
    if len(value) == 1:
        return value
    escaped = _QUOTE_ESCAPES.get(value.lower())
    if escaped is not None:
        return escaped
    raise UnsupportedArchiveError(
        f"Only archives with a single quotation character are supported, but found >>>{value}<<<"
    )


def is_null_literal(value: Optional[str]) -> bool:
    """True for None, blank strings and literal nulls such as ``NULL`` or ``\\N``."""
    return value is None or bool(_NULL_PATTERN.match(value))


def clean_value(value: Optional[str], nulls: bool = True, entities: bool = True) -> Optional[str]:
    """Basic cleaning of a raw cell value.

    Args:
        value: The raw value.
        nulls: If True, literal null values collapse to None.
        entities: If True, HTML and XML entities are replaced by their characters.
    """
    if value is None or (nulls and is_null_literal(value)):
        return None
    return html.unescape(value) if entities else value


def data_file_name(simple_name: str) -> str:
    """File name of the data file written for a row type.

    Examples:
        >>> data_file_name("VernacularName")
        'vernacularname.txt'
    """
    return f"{simple_name.lower()}.txt"


__all__ = [
    "empty_to_none",
    "trim_to_none",
    "normalize_whitespace",
    "unescape_backslash",
    "quote_char",
    "is_null_literal",
    "clean_value",
    "data_file_name",
]
