"""Tests for descriptor document generation."""

import xml.etree.ElementTree as ET

import pytest

from dwca_tools.core.enums import DataType
from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.schemas import Archive, Field, FileSchema
from dwca_tools.core.terms import ID_TERM
from dwca_tools.ingestion.descriptor import parse_descriptor, parse_descriptor_string
from dwca_tools.writing.descriptor_writer import descriptor_string, escape_backslash, write_descriptor


NS = "{http://rs.tdwg.org/dwc/text/}"


@pytest.fixture
def archive(term):
    core_fields = [
        Field(term("scientificName"), 1),
        Field(term("individualCount"), 2, data_type=DataType.INTEGER),
        Field(term("recordedBy"), 3, multi_value_delimiter="|"),
        Field(term("basisOfRecord"), default_value="PreservedSpecimen"),
    ]
    core = FileSchema.tab_file(
        row_type=term("dwc:Occurrence"),
        id_field=Field(ID_TERM, 0),
        fields={f.term: f for f in core_fields},
        locations=("occurrence.txt",),
        encoding="UTF-8",
        header_line_count=1,
    )
    ext = FileSchema.csv_file(
        row_type=term("gbif:Multimedia"),
        id_field=Field(ID_TERM, 0),
        fields={term("dc:identifier"): Field(term("dc:identifier"), 1)},
        locations=("media.csv",),
    )
    return Archive(core=core, extensions={ext.row_type: ext}, metadata_location="eml.xml")


def test_escape_backslash():
    assert escape_backslash("\t") == "\\t"
    assert escape_backslash("\r\n") == "\\r\\n"
    assert escape_backslash(",") == ","
    assert escape_backslash(None) == ""


def test_document_structure(archive):
    root = ET.fromstring(descriptor_string(archive))
    assert root.tag == f"{NS}archive"
    assert root.get("metadata") == "eml.xml"
    core = root.find(f"{NS}core")
    assert core.get("fieldsTerminatedBy") == "\\t"
    assert core.get("linesTerminatedBy") == "\\n"
    assert core.get("fieldsEnclosedBy") == ""
    assert core.get("ignoreHeaderLines") == "1"
    assert core.get("rowType") == "http://rs.tdwg.org/dwc/terms/Occurrence"
    assert core.find(f"{NS}files/{NS}location").text == "occurrence.txt"
    id_el = core.find(f"{NS}id")
    assert id_el.get("index") == "0"
    assert id_el.get("term") is None
    assert root.find(f"{NS}extension/{NS}coreid") is not None


def test_field_attributes(archive):
    root = ET.fromstring(descriptor_string(archive))
    fields = {f.get("term").rsplit("/", 1)[1]: f for f in root.iter(f"{NS}field")}
    assert fields["individualCount"].get("type") == "xs:integer"
    assert fields["scientificName"].get("type") is None
    assert fields["recordedBy"].get("delimitedBy") == "|"
    assert fields["basisOfRecord"].get("index") is None
    assert fields["basisOfRecord"].get("default") == "PreservedSpecimen"


def test_round_trip(archive, registry, term):
    """A generated document parses back into an equivalent model."""
    parsed = parse_descriptor_string(descriptor_string(archive), registry)
    assert parsed.metadata_location == "eml.xml"
    core = parsed.core
    assert core.row_type == term("dwc:Occurrence")
    assert core.field_delimiter == "\t"
    assert core.quote_char is None
    assert core.header_line_count == 1
    assert core.id_field.index == 0
    assert core.field_for(term("individualCount")).data_type is DataType.INTEGER
    assert core.field_for(term("recordedBy")).multi_value_delimiter == "|"
    assert core.field_for(term("basisOfRecord")).default_value == "PreservedSpecimen"
    ext = parsed.extension(term("gbif:Multimedia"))
    assert ext.field_delimiter == ","
    assert ext.quote_char == '"'
    assert ext.location == "media.csv"


def test_write_descriptor(archive, registry, tmp_path):
    path = write_descriptor(archive, tmp_path / "meta.xml")
    assert path.read_text(encoding="utf-8").startswith("<?xml")
    assert parse_descriptor(path, registry).core.location == "occurrence.txt"


def test_archive_without_core():
    with pytest.raises(UnsupportedArchiveError):
        descriptor_string(Archive())
