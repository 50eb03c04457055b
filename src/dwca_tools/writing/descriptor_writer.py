"""Generate the meta.xml descriptor of an archive model."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from dwca_tools.config import NS_DWCA
from dwca_tools.core.enums import DataType
from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.schemas import Archive, Field, FileSchema
from dwca_tools.core.terms import ID_TERM


logger = logging.getLogger(__name__)

_ESCAPES = {"\t": "\\t", "\n": "\\n", "\r": "\\r", "\f": "\\f"}


def escape_backslash(value: Optional[str]) -> str:
    r"""Inverse of the descriptor unescaping: control characters become ``\t``-style literals."""
    if not value:
        return ""
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def _field_element(tag: str, f: Field) -> ET.Element:
    el = ET.Element(tag)
    if f.index is not None:
        el.set("index", str(f.index))
    if f.term != ID_TERM:
        el.set("term", f.term.qualified_name)
    if f.default_value is not None:
        el.set("default", f.default_value)
    if f.multi_value_delimiter:
        el.set("delimitedBy", f.multi_value_delimiter)
    if f.vocabulary_ref:
        el.set("vocabulary", f.vocabulary_ref)
    if f.data_type is not DataType.STRING:
        el.set("type", f.data_type.value)
    return el


def _file_element(tag: str, schema: FileSchema) -> ET.Element:
    el = ET.Element(tag)
    el.set("encoding", schema.encoding or "")
    el.set("fieldsTerminatedBy", escape_backslash(schema.field_delimiter))
    el.set("linesTerminatedBy", escape_backslash(schema.line_terminator))
    el.set("fieldsEnclosedBy", escape_backslash(schema.quote_char))
    el.set("ignoreHeaderLines", str(schema.header_line_count))
    if schema.row_type is not None:
        el.set("rowType", schema.row_type.qualified_name)
    files = ET.SubElement(el, "files")
    for loc in schema.locations:
        ET.SubElement(files, "location").text = loc
    if schema.id_field is not None:
        el.append(_field_element("id" if tag == "core" else "coreid", schema.id_field))
    for f in schema.fields.values():
        el.append(_field_element("field", f))
    return el


def descriptor_element(archive: Archive) -> ET.Element:
    """Build the descriptor document of an archive model as an element tree."""
    if archive.core is None:
        raise UnsupportedArchiveError("Cannot describe an archive without core data file")
    root = ET.Element("archive", {"xmlns": NS_DWCA})
    if archive.metadata_location:
        root.set("metadata", archive.metadata_location)
    root.append(_file_element("core", archive.core))
    for ext in archive.extensions.values():
        root.append(_file_element("extension", ext))
    ET.indent(root)
    return root


def descriptor_string(archive: Archive) -> str:
    return ET.tostring(descriptor_element(archive), encoding="unicode")


def write_descriptor(archive: Archive, path: Path) -> Path:
    """Write the descriptor document of an archive model.

    Args:
        archive: Archive model with a core schema.
        path: Target file, usually ``<archive dir>/meta.xml``.

    Returns:
        The written path.
    """
    path = Path(path)
    tree = ET.ElementTree(descriptor_element(archive))
    tree.write(path, encoding="utf-8", xml_declaration=True)
    logger.debug("Wrote descriptor with %d extension(s) to %s", len(archive.extensions), path)
    return path


__all__ = ["write_descriptor", "descriptor_element", "descriptor_string", "escape_backslash"]
