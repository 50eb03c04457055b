"""Line-by-line reader for delimited data files.

The reader owns one file handle. Each physical line is tokenized into a row;
empty lines are skipped and declared header lines are held back. Read
failures do not raise: they are reported as a ``RowResult`` carrying a
``RowError``, after which the reader is exhausted.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, Iterator, List, Optional, TypeVar

from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.schemas import FileSchema
from .tokenizer import Tokenizer


logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = List[Optional[str]]

# Line numbers of empty lines remembered per reader
MAX_EMPTY_LINES_TRACKED = 1000


@dataclass(frozen=True)
class RowError:
    """A failure while reading one row.

    Attributes:
        line_number: 1-based physical line number the failure occurred at.
        message: Human readable description including the exception message.
        exception: The underlying exception, if any.
    """

    line_number: int
    message: str
    exception: Optional[BaseException] = None


@dataclass(frozen=True)
class RowResult(Generic[T]):
    """Outcome of one iteration step: a value, an error, or both.

    A result carrying an error is the last one produced by its source.
    """

    value: Optional[T] = None
    error: Optional[RowError] = None
    line_number: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def reading_encoding(encoding: Optional[str]) -> str:
    """Python codec used to read a declared encoding; UTF-8 tolerates a BOM.

    Raises:
        UnsupportedArchiveError: If the encoding is unknown.
    """
    if not encoding:
        raise UnsupportedArchiveError("A character encoding is required to read a data file")
    try:
        name = codecs.lookup(encoding).name
    except LookupError as e:
        raise UnsupportedArchiveError(f"Unknown character encoding >>>{encoding}<<<") from e
    return "utf-8-sig" if name == "utf-8" else name


class DelimitedReader:
    """Iterate the rows of one delimited text file.

    Attributes:
        header: Tokens of the first physical line, or None for an empty file.
        header_rows: Number of leading lines skipped before data rows.
        rows_read: Data rows produced so far.
    """

    def __init__(
        self,
        path: Path,
        encoding: Optional[str],
        delimiter: str,
        quote: Optional[str] = None,
        header_rows: int = 0,
    ) -> None:
        self.path = Path(path)
        self.encoding = encoding
        self.delimiter = delimiter
        self.quote = quote
        self.header_rows = header_rows if header_rows and header_rows > 0 else 0
        self.header: Optional[Row] = None
        self.rows_read = 0
        self._tokenizer = Tokenizer(delimiter, quote)
        self._line_number = 0
        self._empty_lines: List[int] = []
        self._pending_error: Optional[RowError] = None
        self._first_line: Optional[str] = None
        self._handle = self.path.open("r", encoding=reading_encoding(encoding))
        self._read_preamble()

    @classmethod
    def for_schema(cls, schema: FileSchema, base_directory: Optional[Path] = None) -> "DelimitedReader":
        """Open a reader for the canonical location of a file schema."""
        return cls(
            schema.location_path(base_directory),
            schema.encoding,
            schema.field_delimiter or ",",
            schema.quote_char,
            schema.header_line_count,
        )

    def _read_preamble(self) -> None:
        try:
            first = self._handle.readline()
            if not first:
                return
            self._line_number = 1
            first = first.rstrip("\n")
            self.header = self._tokenizer(first)
            if self.header_rows == 0:
                # first line is data; hand it out on the first iteration
                self._first_line = first
                return
            for _ in range(self.header_rows - 1):
                if not self._handle.readline():
                    break
                self._line_number += 1
        except (OSError, UnicodeDecodeError) as e:
            self._pending_error = self._error(e)

    def _error(self, e: BaseException) -> RowError:
        err = RowError(self._line_number + 1, f"Exception caught: {e}", e)
        logger.debug("Read error in %s at line %d: %s", self.path, err.line_number, e)
        return err

    def results(self) -> Iterator[RowResult[Row]]:
        """Yield one result per data row; an error result ends the iteration."""
        if self._pending_error is not None:
            err, self._pending_error = self._pending_error, None
            yield RowResult(error=err, line_number=err.line_number)
            return
        if self._first_line is not None:
            line, self._first_line = self._first_line, None
            if line:
                self.rows_read += 1
                yield RowResult(value=self._tokenizer(line), line_number=1)
            else:
                self._remember_empty_line()
        while True:
            try:
                line = self._handle.readline()
            except (OSError, UnicodeDecodeError) as e:
                err = self._error(e)
                yield RowResult(error=err, line_number=err.line_number)
                return
            except ValueError:
                # handle closed underneath the iteration
                return
            if not line:
                return
            self._line_number += 1
            line = line.rstrip("\n")
            if not line:
                self._remember_empty_line()
                continue
            self.rows_read += 1
            yield RowResult(value=self._tokenizer(line), line_number=self._line_number)

    def _remember_empty_line(self) -> None:
        if len(self._empty_lines) < MAX_EMPTY_LINES_TRACKED:
            self._empty_lines.append(self._line_number)

    def __iter__(self) -> Iterator[Row]:
        for result in self.results():
            if result.error is not None:
                logger.warning("Stopped reading %s: %s", self.path, result.error.message)
                return
            yield result.value

    @property
    def empty_lines(self) -> List[int]:
        """Line numbers of the first empty lines skipped so far."""
        return list(self._empty_lines)

    @property
    def current_line_number(self) -> int:
        return self._line_number

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> "DelimitedReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"DelimitedReader({str(self.path)!r}, encoding={self.encoding!r}, "
            f"delimiter={self.delimiter!r}, quote={self.quote!r}, header_rows={self.header_rows})"
        )


__all__ = ["DelimitedReader", "RowError", "RowResult", "Row", "reading_encoding"]
