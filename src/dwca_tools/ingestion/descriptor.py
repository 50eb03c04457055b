"""Descriptor document (meta.xml) parser.

The document is read as a stream of start/end element events. Events are fed
into ``DescriptorStateMachine`` which owns the schema under construction:

    IDLE --<core>--> BUILDING_CORE --</core>--> IDLE
    IDLE --<extension>--> BUILDING_EXTENSION --</extension>--> IDLE

Element and namespace handling:
- element names are matched case-insensitively on their local name, any
  namespace or prefix is ignored
- attributes are looked up without namespace first, then in the archive
  text namespace
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from io import BytesIO
from pathlib import Path
from typing import IO, Dict, Mapping, Optional, Union

from dwca_tools.config import NS_DWCA
from dwca_tools.core.enums import DataType, ParserState
from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.schemas import Archive, Field, FileSchema, FileSchemaBuilder
from dwca_tools.core.terms import ID_TERM, Term, TermRegistry
from dwca_tools.core.utils import normalize_whitespace, quote_char, unescape_backslash


logger = logging.getLogger(__name__)


def local_name(tag: str) -> str:
    """Lower-cased local part of an element tag, without ``{namespace}`` or prefix."""
    if tag.startswith("{"):
        tag = tag.split("}", 1)[1]
    if ":" in tag:
        tag = tag.split(":", 1)[1]
    return tag.lower()


def _attr_raw(attrs: Mapping[str, str], key: str) -> Optional[str]:
    val = attrs.get(key)
    if val is None:
        val = attrs.get(f"{{{NS_DWCA}}}{key}")
    return val


def _attr(attrs: Mapping[str, str], key: str) -> Optional[str]:
    val = _attr_raw(attrs, key)
    return val if val else None


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class DescriptorStateMachine:
    """Build an ``Archive`` from descriptor element events.

    The machine has no dependency on an XML library; tests and alternative
    front ends can drive it with plain ``start``/``end`` calls.

    Examples:
        >>> sm = DescriptorStateMachine(TermRegistry.default())
        >>> sm.start("core", {"rowType": "dwc:Taxon", "fieldsTerminatedBy": "\\\\t"})
        >>> sm.start("id", {"index": "0"})
        >>> sm.end("location", "taxa.txt")
        >>> sm.end("core")
        >>> sm.result().core.field_delimiter
        '\\t'
    """

    def __init__(self, registry: Optional[TermRegistry] = None) -> None:
        self.registry = registry or TermRegistry.default()
        self.state = ParserState.IDLE
        self.metadata_location: Optional[str] = None
        self.core: Optional[FileSchema] = None
        self.extensions: Dict[Term, FileSchema] = {}
        self._builder: Optional[FileSchemaBuilder] = None

    # ------------------------------------------------------------------
    # events
    # ------------------------------------------------------------------

    def start(self, name: str, attrs: Mapping[str, str]) -> None:
        """Handle an element start event."""
        name = name.lower()
        if name in ("archive", "stararchive"):
            self.metadata_location = _attr(attrs, "metadata")
        elif name in ("core", "extension"):
            if self.state is not ParserState.IDLE:
                raise UnsupportedArchiveError(f"Nested <{name}> element inside another data file element")
            self._builder = self._build_file(attrs)
            self.state = ParserState.BUILDING_CORE if name == "core" else ParserState.BUILDING_EXTENSION
        elif name in ("id", "coreid"):
            f = self._build_field(attrs, default_term=ID_TERM)
            if self._builder is None:
                logger.warning("%s field found outside of a data file element", name)
                return
            self._builder.id_field = f
        elif name == "field":
            f = self._build_field(attrs, default_term=ID_TERM)
            if self._builder is None:
                logger.warning("field found outside of a data file element")
                return
            self._builder.add_field(f)

    def end(self, name: str, text: Optional[str] = None) -> None:
        """Handle an element end event with the element's text content."""
        name = name.lower()
        if name == "location":
            if self._builder is None:
                logger.warning("location found outside of a data file element")
                return
            self._builder.add_location(normalize_whitespace(text))
        elif name == "core" and self.state is ParserState.BUILDING_CORE:
            if self.core is not None:
                logger.warning("Descriptor declares more than one core, keeping the last one")
            self.core = self._builder.build()
            self._reset()
        elif name == "extension" and self.state is ParserState.BUILDING_EXTENSION:
            self._commit_extension(self._builder.build())
            self._reset()

    def result(self) -> Archive:
        """Return the archive built from the events seen so far."""
        if self.state is not ParserState.IDLE:
            raise UnsupportedArchiveError("Descriptor ended inside a data file element")
        return Archive(
            core=self.core,
            extensions=dict(self.extensions),
            metadata_location=self.metadata_location,
        )

    # ------------------------------------------------------------------
    # builders
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._builder = None
        self.state = ParserState.IDLE

    def _commit_extension(self, schema: FileSchema) -> None:
        if schema.id_field is None or schema.id_field.index is None:
            logger.warning("Skipping extension [%s] with no index attribute", schema.row_type)
            return
        if schema.row_type is None:
            raise UnsupportedArchiveError(f"Extension »{schema.title}« requires a rowType")
        if schema.row_type in self.extensions:
            logger.warning("Extension row type %s declared more than once, keeping the last one", schema.row_type)
        self.extensions[schema.row_type] = schema

    def _build_file(self, attrs: Mapping[str, str]) -> FileSchemaBuilder:
        b = FileSchemaBuilder()
        encoding = _attr(attrs, "encoding")
        if encoding is not None:
            b.encoding = encoding
        delimiter = _attr(attrs, "fieldsTerminatedBy")
        if delimiter is not None:
            b.field_delimiter = unescape_backslash(delimiter)
        # absent keeps the default quote, present but empty disables quoting
        enclosed = _attr_raw(attrs, "fieldsEnclosedBy")
        if enclosed is not None:
            b.quote_char = quote_char(enclosed)
        terminator = _attr(attrs, "linesTerminatedBy")
        if terminator is not None:
            b.line_terminator = unescape_backslash(terminator)
        row_type = _attr(attrs, "rowType")
        if row_type is not None:
            b.row_type = self.registry.find(row_type, strict=True)
        header_lines = _parse_int(_attr(attrs, "ignoreHeaderLines"))
        if header_lines is not None:
            b.set_header_line_count(header_lines)
        return b

    def _build_field(self, attrs: Mapping[str, str], default_term: Term) -> Field:
        term = self.registry.find(_attr(attrs, "term")) or default_term
        index_str = _attr(attrs, "index")
        index: Optional[int] = None
        if index_str is not None:
            try:
                index = int(index_str.strip())
            except ValueError as e:
                raise UnsupportedArchiveError(f"Invalid index >>>{index_str}<<< for term {term}") from e
            if index < 0:
                raise UnsupportedArchiveError(f"Negative index >>>{index_str}<<< for term {term}")
        return Field(
            term=term,
            index=index,
            default_value=_attr(attrs, "default"),
            data_type=DataType.from_declared(_attr(attrs, "type")),
            multi_value_delimiter=_attr(attrs, "delimitedBy"),
            vocabulary_ref=_attr(attrs, "vocabulary"),
        )


def parse_descriptor(
    source: Union[str, Path, IO[bytes]],
    registry: Optional[TermRegistry] = None,
) -> Archive:
    """Parse a descriptor document into an archive model.

    Args:
        source: Path of the descriptor or a binary file object.
        registry: Term registry used to resolve terms and row types.

    Returns:
        The archive model. ``base_directory`` is left unset.

    Raises:
        UnsupportedArchiveError: If the document is not well-formed XML or
            describes an unsupported archive.
    """
    machine = DescriptorStateMachine(registry)
    try:
        for event, elem in ET.iterparse(source, events=("start", "end")):
            name = local_name(elem.tag)
            if event == "start":
                machine.start(name, elem.attrib)
            else:
                machine.end(name, elem.text)
    except ET.ParseError as e:
        raise UnsupportedArchiveError(f"Descriptor is not well-formed: {e}") from e
    return machine.result()


def parse_descriptor_string(text: str, registry: Optional[TermRegistry] = None) -> Archive:
    """Parse a descriptor held in memory."""
    return parse_descriptor(BytesIO(text.encode("utf-8")), registry)


__all__ = ["DescriptorStateMachine", "parse_descriptor", "parse_descriptor_string", "local_name"]
