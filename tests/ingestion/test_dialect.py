"""Tests for dialect detection."""

from unittest.mock import patch

import pytest

from dwca_tools.core.errors import UnknownCharsetError, UnknownDelimitersError
from dwca_tools.ingestion.dialect import (
    candidate_quotes,
    consistent_row_size,
    detect_dialect,
    detect_encoding,
    likely_quote_char,
)


def _write(path, lines, encoding="utf-8"):
    path.write_text("\n".join(lines) + "\n", encoding=encoding)
    return path


def test_detects_quoted_comma_file(tmp_path):
    """A comma delimited, quoted file with 3 consistent columns."""
    lines = [f'"{i}","Abies alba {i}","Pinaceae"' for i in range(10)]
    dialect = detect_dialect(_write(tmp_path / "quoted.csv", lines))
    assert dialect.delimiter == ","
    assert dialect.quote == '"'
    assert dialect.encoding == "utf-8"


def test_detects_tab_file_without_quotes(tmp_path):
    """A tab delimited, unquoted file with consistent columns."""
    lines = [f"{i}\tAbies alba\tPinaceae" for i in range(10)]
    dialect = detect_dialect(_write(tmp_path / "plain.txt", lines))
    assert dialect.delimiter == "\t"
    assert dialect.quote is None


def test_detects_semicolon_file(tmp_path):
    lines = [f"{i};Abies alba;Pinaceae;Europe" for i in range(10)]
    dialect = detect_dialect(_write(tmp_path / "semi.csv", lines))
    assert dialect.delimiter == ";"


def test_header_rows_are_excluded(tmp_path):
    """Declared header rows do not take part in scoring."""
    lines = ["a messy header, with commas, everywhere, really"] + [f"{i}|x|y" for i in range(10)]
    dialect = detect_dialect(_write(tmp_path / "pipes.txt", lines), header_rows=1)
    assert dialect.delimiter == "|"


def test_no_viable_delimiter(tmp_path):
    """Every candidate yields rows whose width differs by more than one."""
    lines = ["a", "b,c,d;e;f|g|h\tx\ty"]
    with pytest.raises(UnknownDelimitersError):
        detect_dialect(_write(tmp_path / "chaos.txt", lines))


def test_unknown_charset(tmp_path):
    """A sniffer without an answer fails detection."""
    path = _write(tmp_path / "any.txt", ["a,b", "c,d"])
    with patch("dwca_tools.ingestion.dialect.chardet.detect", return_value={"encoding": None, "confidence": 0.0}):
        with pytest.raises(UnknownCharsetError):
            detect_dialect(path)


@pytest.mark.parametrize(
    "guess",
    [
        {"encoding": "EUC-TW", "confidence": 0.99},
        {"encoding": "ISO-2022-CN", "confidence": 0.99},
        {"encoding": "ISO-8859-4", "confidence": 0.014},
    ],
)
def test_unusable_charset_guess(tmp_path, guess):
    """Guesses without a Python codec or with low confidence are rejected."""
    path = _write(tmp_path / "any.txt", ["a,b", "c,d"])
    with patch("dwca_tools.ingestion.dialect.chardet.detect", return_value=guess):
        with pytest.raises(UnknownCharsetError):
            detect_encoding(path)
        with pytest.raises(UnknownCharsetError):
            detect_dialect(path)


def test_ascii_guess_reads_as_utf8(tmp_path):
    path = _write(tmp_path / "any.txt", ["a,b", "c,d"])
    with patch("dwca_tools.ingestion.dialect.chardet.detect", return_value={"encoding": "ascii", "confidence": 1.0}):
        assert detect_encoding(path) == "utf-8"


def test_explicit_encoding_skips_sniffing(tmp_path):
    path = _write(tmp_path / "latin.txt", ["1\tÉpicéa", "2\tSapin"], encoding="latin-1")
    with patch("dwca_tools.ingestion.dialect.chardet.detect") as sniff:
        dialect = detect_dialect(path, encoding="latin-1")
    sniff.assert_not_called()
    assert dialect.encoding == "latin-1"
    assert dialect.delimiter == "\t"


class TestScoring:
    """Tests for the scoring helpers."""

    def test_consistent_rows_score_column_count(self):
        assert consistent_row_size([["a", "b", "c"]] * 4) == 3

    def test_off_by_one_is_penalized(self):
        assert consistent_row_size([["a", "b", "c"], ["a", "b"], ["a", "b", "c"]]) == 1

    def test_off_by_more_is_rejected(self):
        assert consistent_row_size([["a", "b", "c"], ["a"]]) == -1

    def test_empty_sample_scores_zero(self):
        assert consistent_row_size([]) == 0

    def test_likely_quote_char(self):
        rows = [["'a'", "'b'"], ["'c'", None]]
        assert likely_quote_char(rows) == "'"

    def test_inconsistent_quote_chars(self):
        assert likely_quote_char([["'a'", '"b"']]) is None

    def test_alphanumeric_is_never_a_quote(self):
        assert likely_quote_char([["abba", "xyzx"]]) is None

    def test_candidate_order_for_comma(self):
        assert candidate_quotes(",", "'") == ["'", '"', "'", None]
        assert candidate_quotes(",", None) == ['"', "'", None]

    def test_candidate_order_for_other_delimiters(self):
        assert candidate_quotes("\t", "~") == [None, '"', "'", "~"]
        assert candidate_quotes(";", None) == [None, '"', "'"]
