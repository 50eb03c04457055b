"""Tests for string helpers and configuration helpers."""

import pytest

from dwca_tools.config import get_id_column_name, load_yaml_config
from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.utils import (
    clean_value,
    data_file_name,
    is_null_literal,
    normalize_whitespace,
    quote_char,
    trim_to_none,
    unescape_backslash,
)


@pytest.mark.parametrize(
    "raw, expected",
    [("\\t", "\t"), ("\\T", "\t"), ("\\r\\n", "\r\n"), (";", ";"), ("a\\fb", "a\fb"), ("", None), (None, None)],
)
def test_unescape_backslash(raw, expected):
    assert unescape_backslash(raw) == expected


class TestQuoteChar:
    """Tests for parsing quote attributes."""

    def test_single_character(self):
        assert quote_char('"') == '"'

    def test_escaped_control_character(self):
        assert quote_char("\\t") == "\t"

    def test_empty_disables_quoting(self):
        assert quote_char("") is None
        assert quote_char(None) is None

    def test_multiple_characters(self):
        with pytest.raises(UnsupportedArchiveError):
            quote_char("''")


class TestValueCleaning:
    """Tests for cell value cleaning."""

    @pytest.mark.parametrize("value", [None, "", "  ", "NULL", "null", " Null ", "\\N"])
    def test_null_literals(self, value):
        assert is_null_literal(value)
        assert clean_value(value) is None

    def test_regular_values_are_not_null(self):
        assert not is_null_literal("nullable")
        assert clean_value("nullable") == "nullable"

    def test_entities(self):
        assert clean_value("Fagaceae &amp; Pinaceae") == "Fagaceae & Pinaceae"
        assert clean_value("&lt;b&gt;", entities=False) == "&lt;b&gt;"

    def test_nulls_kept_when_disabled(self):
        assert clean_value("NULL", nulls=False) == "NULL"


def test_whitespace_helpers():
    assert trim_to_none("  x ") == "x"
    assert trim_to_none("   ") is None
    assert normalize_whitespace("  a \n\t b  ") == "a b"
    assert normalize_whitespace(None) is None


def test_data_file_name():
    assert data_file_name("VernacularName") == "vernacularname.txt"


class TestConfig:
    """Tests for configuration helpers."""

    def test_id_column_names(self):
        assert get_id_column_name("Taxon") == "taxonID"
        assert get_id_column_name("Occurrence") == "occurrenceID"
        assert get_id_column_name("Distribution") == "identifier"
        assert get_id_column_name(None) == "identifier"

    def test_load_yaml_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("a: 1\nb: [x, y]\n", encoding="utf-8")
        assert load_yaml_config(path) == {"a": 1, "b": ["x", "y"]}

    def test_empty_yaml_is_empty_mapping(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_yaml_config(path) == {}

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_yaml_config(path)

    def test_missing_yaml(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_config(tmp_path / "missing.yaml")
