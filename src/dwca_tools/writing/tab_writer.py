"""Tab delimited row writer used for every data file the archive writer produces."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Sequence

from dwca_tools.config import WRITER_ENCODING, WRITER_FIELD_DELIMITER, WRITER_LINE_TERMINATOR
from dwca_tools.core.utils import trim_to_none

_CONTROL_CHARS = re.compile(r"[\t\n\r]")


def tab_row(columns: Sequence[Optional[str]]) -> Optional[str]:
    """Format one row, or return None if every column is None.

    Tabs and line breaks inside values become a single space and values are
    trimmed; values left blank are written as empty columns.

    Examples:
        >>> tab_row(["1", "Abies\\talba", None])
        '1\\tAbies alba\\t\\n'
        >>> tab_row([None, None]) is None
        True
    """
    if all(c is None for c in columns):
        return None
    cells = []
    for c in columns:
        val = trim_to_none(_CONTROL_CHARS.sub(" ", c)) if c is not None else None
        cells.append(val or "")
    return WRITER_FIELD_DELIMITER.join(cells) + WRITER_LINE_TERMINATOR


class TabWriter:
    """Write tab delimited rows to a file, one row per line."""

    def __init__(self, path: Path, encoding: str = WRITER_ENCODING) -> None:
        self.path = Path(path)
        self.rows_written = 0
        self._handle = self.path.open("w", encoding=encoding, newline="")

    def write(self, row: Sequence[Optional[str]]) -> bool:
        """Write a row; rows without any value are skipped.

        Returns:
            True if a line was written.
        """
        if not row:
            return False
        line = tab_row(row)
        if line is None:
            return False
        self._handle.write(line)
        self.rows_written += 1
        return True

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> "TabWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["TabWriter", "tab_row"]
