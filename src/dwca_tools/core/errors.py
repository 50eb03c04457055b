"""Error taxonomy for archive reading and writing.

- UnsupportedArchiveError: malformed or self-contradictory descriptor or package
- UnknownCharsetError: the character encoding of a data file could not be sniffed
- UnknownDelimitersError: no delimiter/quote combination fits a data file
- IllegalStateError: the archive writer was driven out of order
"""

from __future__ import annotations


class DwcaError(Exception):
    """Base class for all errors raised by dwca_tools."""


class UnsupportedArchiveError(DwcaError):
    """The descriptor or package layout cannot be turned into an archive model."""


class UnknownCharsetError(DwcaError):
    """Encoding detection failed for a data file."""


class UnknownDelimitersError(DwcaError):
    """Delimiter detection failed for a data file."""


class IllegalStateError(DwcaError, RuntimeError):
    """An operation was called in a state that does not allow it."""


__all__ = [
    "DwcaError",
    "UnsupportedArchiveError",
    "UnknownCharsetError",
    "UnknownDelimitersError",
    "IllegalStateError",
]
