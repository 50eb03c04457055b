"""Dialect detection for delimited files without a schema.

Detects the character encoding with a byte-pattern sniffer and then scores
every candidate delimiter/quote combination on the first sampled rows:

- all sampled rows have the column count of the first row → that count
- some rows differ from it by exactly one → that count minus two
- any row differs by more than one → -1 (rejected)

The highest score wins; on equal scores the combination tried first is kept.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from itertools import islice
from pathlib import Path
from typing import List, Optional, Sequence

import chardet

from dwca_tools.config import (
    CANDIDATE_DELIMITERS,
    ENCODING_ALIASES,
    ENCODING_SAMPLE_BYTES,
    MIN_ENCODING_CONFIDENCE,
    ROWS_TO_INSPECT,
)
from dwca_tools.core.errors import UnknownCharsetError, UnknownDelimitersError
from .reader import DelimitedReader, Row


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dialect:
    """Encoding, field delimiter and quote character of a delimited file."""

    encoding: str
    delimiter: str
    quote: Optional[str] = None


def detect_encoding(path: Path, sample_bytes: int = ENCODING_SAMPLE_BYTES) -> str:
    """Sniff the character encoding of a file from a bounded prefix.

    Args:
        path: File to inspect.
        sample_bytes: Number of leading bytes handed to the sniffer.

    Returns:
        Encoding name usable with ``open()``.

    Raises:
        UnknownCharsetError: If the file cannot be read, the guess is not
            confident enough, or Python has no codec for it.
    """
    try:
        with Path(path).open("rb") as f:
            raw = f.read(sample_bytes)
    except OSError as e:
        raise UnknownCharsetError(f"Unable to read {path}: {e}") from e
    res = chardet.detect(raw)
    encoding = res.get("encoding")
    confidence = res.get("confidence") or 0.0
    if not encoding:
        raise UnknownCharsetError(f"Unable to detect the character encoding of {path}")
    encoding = encoding.lower()
    if confidence < MIN_ENCODING_CONFIDENCE:
        raise UnknownCharsetError(
            f"Encoding guess {encoding} for {path} is not confident enough ({confidence:.2f})"
        )
    encoding = ENCODING_ALIASES.get(encoding, encoding)
    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise UnknownCharsetError(f"Detected encoding {encoding} of {path} is not supported") from e
    logger.debug("Detected encoding %s for %s (confidence: %.2f)", encoding, path, confidence)
    return encoding


def likely_quote_char(rows: Sequence[Row]) -> Optional[str]:
    """Guess a quote character from fields that start and end with the same symbol.

    Returns:
        The character if all such fields agree on one non-alphanumeric
        character, otherwise None.
    """
    quote: Optional[str] = None
    for row in rows:
        for col in row:
            if not col or len(col) < 2 or col[0] != col[-1]:
                continue
            candidate = col[0]
            if candidate.isalnum():
                break
            if quote is None:
                quote = candidate
            elif quote != candidate:
                return None
    return quote


def consistent_row_size(rows: Sequence[Row]) -> int:
    """Score a sample by the consistency of its column counts.

    Returns:
        The column count of the first row if all rows agree, that count minus
        two if some rows differ by exactly one, or -1 otherwise. An empty
        sample scores 0.
    """
    if not rows:
        return 0
    columns = len(rows[0])
    plus_minus_one = False
    for row in rows:
        diff = abs(columns - len(row))
        if diff > 1:
            return -1
        if diff == 1:
            plus_minus_one = True
    return columns - 2 if plus_minus_one else columns


def candidate_quotes(delimiter: str, likely: Optional[str]) -> List[Optional[str]]:
    """Quote characters to try for a delimiter, in preference order."""
    if delimiter == ",":
        quotes: List[Optional[str]] = [likely] if likely is not None else []
        return quotes + ['"', "'", None]
    quotes = [None, '"', "'"]
    if likely is not None:
        quotes.append(likely)
    return quotes


def _sample(
    path: Path,
    encoding: str,
    delimiter: str,
    quote: Optional[str],
    header_rows: int,
    rows: int,
) -> List[Row]:
    with DelimitedReader(path, encoding, delimiter, quote, header_rows) as reader:
        return list(islice(reader, rows))


def detect_dialect(
    path: Path,
    header_rows: int = 0,
    encoding: Optional[str] = None,
    delimiters: Sequence[str] = CANDIDATE_DELIMITERS,
    rows_to_inspect: int = ROWS_TO_INSPECT,
) -> Dialect:
    """Infer encoding, delimiter and quote character of a delimited file.

    Args:
        path: File to inspect.
        header_rows: Leading lines excluded from scoring.
        encoding: Known encoding; sniffed when None.
        delimiters: Candidate delimiters in preference order.
        rows_to_inspect: Number of rows sampled per candidate.

    Returns:
        The winning dialect.

    Raises:
        UnknownCharsetError: If the encoding cannot be sniffed.
        UnknownDelimitersError: If no combination scores above zero.

    Examples:
        >>> d = detect_dialect(Path("taxa.tsv"))  # doctest: +SKIP
        >>> (d.delimiter, d.quote)  # doctest: +SKIP
        ('\\t', None)
    """
    path = Path(path)
    encoding = encoding or detect_encoding(path)

    best_score = 0
    best: Optional[Dialect] = None
    for delim in delimiters:
        try:
            likely = likely_quote_char(_sample(path, encoding, delim, None, header_rows, rows_to_inspect))
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Sampling %s with delimiter %r failed: %s", path, delim, e)
            likely = None
        for quote in candidate_quotes(delim, likely):
            try:
                score = consistent_row_size(_sample(path, encoding, delim, quote, header_rows, rows_to_inspect))
            except (OSError, UnicodeDecodeError) as e:
                # other combinations may still work
                logger.debug("Scoring %s with %r/%r failed: %s", path, delim, quote, e)
                continue
            if score > best_score:
                best_score = score
                best = Dialect(encoding=encoding, delimiter=delim, quote=quote)

    if best is None:
        raise UnknownDelimitersError(f"Unable to detect field delimiter of {path}")

    msg = f"Detected field delimiter >>>{best.delimiter}<<<"
    if best.quote is not None:
        msg += f" and quoted by >>>{best.quote}<<<"
    logger.debug("%s for %s", msg, path)
    return best


__all__ = [
    "Dialect",
    "detect_dialect",
    "detect_encoding",
    "likely_quote_char",
    "consistent_row_size",
    "candidate_quotes",
]
