"""Tests for the delimited-row tokenizer."""

import pytest

from dwca_tools.ingestion.tokenizer import Tokenizer, tokenize


def test_quoted_field_keeps_delimiter():
    """A quoted field keeps delimiters verbatim and loses its outer quotes."""
    assert tokenize('1,"a,b",3', ",", '"') == ["1", "a,b", "3"]


def test_empty_tokens_are_none():
    """Consecutive delimiters and delimiters at the edges produce None."""
    assert tokenize(",a,,b,", ",") == [None, "a", None, "b", None]


def test_empty_line_has_no_tokens():
    assert tokenize("", "\t") == []


def test_delimiter_is_literal_not_regex():
    """Delimiters are matched literally, including regex metacharacters."""
    assert tokenize("a|b|c", "|") == ["a", "b", "c"]
    assert tokenize("a||b||c", "||") == ["a", "b", "c"]
    assert tokenize("a.b", ".") == ["a", "b"]


def test_doubled_quote_is_literal():
    """Two quotes inside a quoted section stand for one quote character."""
    assert tokenize('"say ""hi""",x', ",", '"') == ['say "hi"', "x"]


def test_quote_ignored_without_quote_char():
    assert tokenize('"a,b"', ",") == ['"a', 'b"']


def test_unterminated_quote_runs_to_end_of_line():
    """Malformed quoting does not raise."""
    assert tokenize('1,"open,ended', ",", '"') == ["1", "open,ended"]


def test_quoted_empty_field_is_none():
    assert tokenize('"",x', ",", '"') == [None, "x"]


class TestTokenizer:
    """Tests for the bound Tokenizer."""

    def test_call_delegates(self):
        tok = Tokenizer("\t", None)
        assert tok("a\tb") == ["a", "b"]

    def test_requires_delimiter(self):
        with pytest.raises(ValueError):
            Tokenizer("")
