"""Tests for the line-by-line delimited reader."""

import pytest

from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.schemas import FileSchema
from dwca_tools.ingestion.reader import DelimitedReader, reading_encoding


def test_header_rows_are_held_back(tmp_path):
    """The first line is exposed as header and not yielded as data."""
    path = tmp_path / "taxa.txt"
    path.write_text("id\tname\n1\tAbies\n2\tPinus\n", encoding="utf-8")
    with DelimitedReader(path, "utf-8", "\t", header_rows=1) as reader:
        rows = list(reader)
        assert reader.header == ["id", "name"]
        assert reader.rows_read == 2
    assert rows == [["1", "Abies"], ["2", "Pinus"]]


def test_without_header_rows_first_line_is_data(tmp_path):
    path = tmp_path / "taxa.txt"
    path.write_text("1\tAbies\n2\tPinus\n", encoding="utf-8")
    with DelimitedReader(path, "utf-8", "\t") as reader:
        results = list(reader.results())
        assert reader.header == ["1", "Abies"]
    assert [r.value for r in results] == [["1", "Abies"], ["2", "Pinus"]]
    assert [r.line_number for r in results] == [1, 2]


def test_empty_lines_are_skipped_and_remembered(tmp_path):
    path = tmp_path / "gaps.txt"
    path.write_text("id\n1\n\n2\n\n", encoding="utf-8")
    with DelimitedReader(path, "utf-8", ",", header_rows=1) as reader:
        results = list(reader.results())
        assert reader.empty_lines == [3, 5]
    assert [r.value for r in results] == [["1"], ["2"]]
    assert [r.line_number for r in results] == [2, 4]


def test_several_header_rows(tmp_path):
    path = tmp_path / "multi.txt"
    path.write_text("id,name\n# generated\n1,Abies\n", encoding="utf-8")
    with DelimitedReader(path, "utf-8", ",", header_rows=2) as reader:
        assert list(reader) == [["1", "Abies"]]
        assert reader.header == ["id", "name"]


def test_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("", encoding="utf-8")
    with DelimitedReader(path, "utf-8", ",", header_rows=1) as reader:
        assert reader.header is None
        assert list(reader) == []


def test_byte_order_mark_is_dropped(tmp_path):
    path = tmp_path / "bom.txt"
    path.write_bytes("\ufeffid,name\n1,Abies\n".encode("utf-8"))
    with DelimitedReader(path, "UTF-8", ",", header_rows=1) as reader:
        assert reader.header == ["id", "name"]


def test_quoted_rows(tmp_path):
    path = tmp_path / "quoted.csv"
    path.write_text('"1","Abies alba, Mill."\n', encoding="utf-8")
    with DelimitedReader(path, "utf-8", ",", quote='"') as reader:
        assert list(reader) == [["1", "Abies alba, Mill."]]


def test_crlf_line_endings(tmp_path):
    path = tmp_path / "dos.txt"
    path.write_bytes(b"id\tname\r\n1\tAbies\r\n")
    with DelimitedReader(path, "utf-8", "\t", header_rows=1) as reader:
        assert list(reader) == [["1", "Abies"]]


def test_decode_error_is_reported_not_raised(tmp_path):
    """A read failure yields one error result and ends the iteration."""
    path = tmp_path / "broken.txt"
    path.write_bytes(b"1\tok\n2\t\xff\xfe bad\n")
    with DelimitedReader(path, "utf-8", "\t") as reader:
        results = list(reader.results())
    assert len(results) == 1
    assert results[0].value is None
    assert not results[0].ok
    assert results[0].error.line_number == 1
    assert "Exception caught" in results[0].error.message


def test_plain_iteration_stops_on_error(tmp_path, caplog):
    path = tmp_path / "broken.txt"
    path.write_bytes(b"1\tok\n2\t\xff\n")
    with DelimitedReader(path, "utf-8", "\t") as reader:
        assert list(reader) == []
    assert "Stopped reading" in caplog.text


def test_for_schema(tmp_path):
    (tmp_path / "taxa.csv").write_text("id;name\n1;Abies\n", encoding="latin-1")
    schema = FileSchema(locations=("taxa.csv",), encoding="latin1", field_delimiter=";", header_line_count=1)
    with DelimitedReader.for_schema(schema, tmp_path) as reader:
        assert reader.delimiter == ";"
        assert list(reader) == [["1", "Abies"]]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        DelimitedReader(tmp_path / "nope.txt", "utf-8", ",")


class TestReadingEncoding:
    """Tests for mapping declared encodings to codecs."""

    def test_utf8_tolerates_bom(self):
        assert reading_encoding("utf8") == "utf-8-sig"
        assert reading_encoding("UTF-8") == "utf-8-sig"

    def test_other_encodings_are_normalized(self):
        assert reading_encoding("latin1") == "iso8859-1"

    def test_unknown_encoding(self):
        with pytest.raises(UnsupportedArchiveError):
            reading_encoding("no-such-charset")

    def test_missing_encoding(self):
        with pytest.raises(UnsupportedArchiveError):
            reading_encoding(None)
