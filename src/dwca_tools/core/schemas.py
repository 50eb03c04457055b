"""In-memory archive model.

This module defines the schema entities built by the descriptor parser (or
programmatically by the writer) and shared by readers:

- Field: one column mapped to a term
- FileSchema: one data file (core or extension) with its dialect and fields
- Archive: the core schema, the extension schemas and the metadata location

All entities are immutable once built. The mutable ``FileSchemaBuilder`` is
used while a schema is being assembled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from dwca_tools.config import (
    CONSTITUENT_DIR,
    DEFAULT_ENCODING,
    DEFAULT_FIELD_DELIMITER,
    DEFAULT_LINE_TERMINATOR,
    DEFAULT_QUOTE_CHAR,
)
from dwca_tools.core.enums import ArchiveLayout, DataType
from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.terms import ID_TERM, Term


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Field:
    """One column of a data file mapped to a term.

    Attributes:
        term: The term represented by this column.
        index: 0-based column position; None for fields that only carry a default.
        default_value: Value used when the cell is empty or the field has no index.
        data_type: Declared data type, STRING unless stated otherwise.
        multi_value_delimiter: Separator of multiple values inside one cell.
        vocabulary_ref: URL of a vocabulary the values are drawn from.
    """

    term: Term
    index: Optional[int] = None
    default_value: Optional[str] = None
    data_type: DataType = DataType.STRING
    multi_value_delimiter: Optional[str] = None
    vocabulary_ref: Optional[str] = None

    def __post_init__(self) -> None:
        if self.index is not None and self.index < 0:
            raise ValueError(f"Field index must be non-negative, got {self.index} for {self.term}")


def _sort_key(f: Field) -> Tuple[int, int, str]:
    # fields without index first, then by index, ties by qualified name
    if f.index is None:
        return (0, 0, "")
    return (1, f.index, f.term.qualified_name.lower())


def title_from_location(location: Optional[str]) -> Optional[str]:
    """Final path segment of a location, or the whole value without separator."""
    if location is None:
        return None
    cut = location.rfind("/")
    if cut > 0:
        return location[cut + 1 :]
    return location


@dataclass(frozen=True)
class FileSchema:
    """Schema of one delimited data file."""

    row_type: Optional[Term] = None
    id_field: Optional[Field] = None
    fields: Mapping[Term, Field] = field(default_factory=dict)
    locations: Tuple[str, ...] = ()
    encoding: Optional[str] = DEFAULT_ENCODING
    field_delimiter: Optional[str] = DEFAULT_FIELD_DELIMITER
    quote_char: Optional[str] = DEFAULT_QUOTE_CHAR
    line_terminator: Optional[str] = DEFAULT_LINE_TERMINATOR
    header_line_count: int = 0
    title: Optional[str] = None
    raw_fields: Tuple[Field, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "locations", tuple(self.locations))
        if self.title is None and self.locations:
            object.__setattr__(self, "title", title_from_location(self.locations[0]))
        if not self.raw_fields and self.fields:
            object.__setattr__(self, "raw_fields", tuple(self.fields.values()))

    @property
    def location(self) -> Optional[str]:
        """The canonical (first) location, or None."""
        return self.locations[0] if self.locations else None

    def location_path(self, base_directory: Optional[Path]) -> Path:
        """Resolve the canonical location against the archive directory."""
        if self.location is None:
            raise UnsupportedArchiveError(f"Data file »{self.title}« requires a location")
        path = Path(self.location)
        if path.is_absolute() or base_directory is None:
            return path
        return base_directory / path

    def field_for(self, term: Optional[Term]) -> Optional[Field]:
        if term is None:
            return None
        return self.fields.get(term)

    def has_term(self, term: Term) -> bool:
        return term in self.fields

    def terms(self) -> List[Term]:
        return list(self.fields.keys())

    def fields_sorted(self) -> List[Field]:
        """Fields without an index first, then by index, ties broken by qualified name."""
        return sorted(self.fields.values(), key=_sort_key)

    def header(self) -> List[List[Term]]:
        """Terms mapped to each physical column.

        The list is as long as the highest index used plus one. A column may
        hold no term or several terms; the id column carries ``ID_TERM``.
        """
        indexed = [f for f in self.fields_sorted() if f.index is not None]
        id_index = self.id_field.index if self.id_field is not None else None
        if not indexed and id_index is None:
            return []
        max_index = max([f.index for f in indexed] + ([id_index] if id_index is not None else []))
        columns: List[List[Term]] = [[] for _ in range(max_index + 1)]
        for f in indexed:
            columns[f.index].append(f.term)
        if id_index is not None:
            columns[id_index].append(ID_TERM)
        return columns

    def default_values(self) -> Dict[Term, str]:
        """Non-blank default values keyed by term."""
        return {
            t: f.default_value
            for t, f in self.fields.items()
            if f.default_value is not None and f.default_value.strip()
        }

    def with_locations(self, *locations: str) -> "FileSchema":
        """Copy of this schema reading from other locations, keeping the title."""
        return replace(self, locations=tuple(locations), title=self.title)

    def validate(self) -> None:
        """Check the schema can be read from disk; locations are checked by the archive."""
        if self.location is None:
            raise UnsupportedArchiveError(f"Data file »{self.title}« requires a location")
        if not self.encoding:
            raise UnsupportedArchiveError(f"Data file »{self.title}« requires a character encoding")
        if not self.field_delimiter:
            raise UnsupportedArchiveError(f"Data file »{self.title}« requires a field delimiter")

    @classmethod
    def tab_file(cls, **kwargs) -> "FileSchema":
        """Schema preset for tab delimited, unquoted files."""
        kwargs.setdefault("field_delimiter", "\t")
        kwargs.setdefault("quote_char", None)
        return cls(**kwargs)

    @classmethod
    def csv_file(cls, **kwargs) -> "FileSchema":
        """Schema preset for comma delimited files quoted with double quotes."""
        kwargs.setdefault("field_delimiter", ",")
        kwargs.setdefault("quote_char", '"')
        return cls(**kwargs)


class FileSchemaBuilder:
    """Mutable assembly area for a FileSchema."""

    def __init__(self) -> None:
        self.row_type: Optional[Term] = None
        self.id_field: Optional[Field] = None
        self.encoding: Optional[str] = DEFAULT_ENCODING
        self.field_delimiter: Optional[str] = DEFAULT_FIELD_DELIMITER
        self.quote_char: Optional[str] = DEFAULT_QUOTE_CHAR
        self.line_terminator: Optional[str] = DEFAULT_LINE_TERMINATOR
        self.header_line_count: int = 0
        self.title: Optional[str] = None
        self._fields: Dict[Term, Field] = {}
        self._raw_fields: List[Field] = []
        self._locations: List[str] = []

    def add_field(self, f: Field) -> None:
        if f.term in self._fields:
            logger.warning("Term %s is mapped more than once, keeping the last mapping", f.term)
        self._fields[f.term] = f
        self._raw_fields.append(f)

    def add_location(self, location: Optional[str]) -> None:
        if location is None:
            return
        if self.title is None:
            self.title = title_from_location(location)
        self._locations.append(location)

    def set_header_line_count(self, count: Optional[int]) -> None:
        self.header_line_count = count if count is not None and count > 0 else 0

    @property
    def fields(self) -> Mapping[Term, Field]:
        return MappingProxyType(self._fields)

    def build(self) -> FileSchema:
        return FileSchema(
            row_type=self.row_type,
            id_field=self.id_field,
            fields=dict(self._fields),
            locations=tuple(self._locations),
            encoding=self.encoding,
            field_delimiter=self.field_delimiter,
            quote_char=self.quote_char,
            line_terminator=self.line_terminator,
            header_line_count=self.header_line_count,
            title=self.title,
            raw_fields=tuple(self._raw_fields),
        )


@dataclass(frozen=True)
class Archive:
    """A package: one core schema plus extension schemas keyed by row type.

    Attributes:
        core: Schema of the core data file; None only for metadata-only packages.
        extensions: Extension schemas keyed by row type, in declaration order.
        metadata_location: Path of the metadata document relative to the package.
        base_directory: Directory that data file locations are relative to.
        layout: Whether the package was opened from a directory or a single file.
    """

    core: Optional[FileSchema] = None
    extensions: Mapping[Term, FileSchema] = field(default_factory=dict)
    metadata_location: Optional[str] = None
    base_directory: Optional[Path] = None
    layout: ArchiveLayout = ArchiveLayout.DIRECTORY_ROOT

    def __post_init__(self) -> None:
        object.__setattr__(self, "extensions", MappingProxyType(dict(self.extensions)))

    def extension(self, row_type: Term) -> Optional[FileSchema]:
        """Get an extension schema by row type, or None if not declared."""
        return self.extensions.get(row_type)

    def row_types(self) -> List[Term]:
        return list(self.extensions.keys())

    def data_file_path(self, schema: FileSchema) -> Path:
        return schema.location_path(self.base_directory)

    def metadata_path(self) -> Optional[Path]:
        if self.metadata_location is None:
            return None
        path = Path(self.metadata_location)
        if path.is_absolute() or self.base_directory is None:
            return path
        return self.base_directory / path

    def constituent_metadata(self) -> Dict[str, Path]:
        """Map constituent dataset ids to their metadata documents under ``dataset/``."""
        constituents: Dict[str, Path] = {}
        if self.base_directory is None:
            return constituents
        const_dir = self.base_directory / CONSTITUENT_DIR
        if const_dir.is_dir():
            for p in sorted(const_dir.glob("*.xml")):
                constituents[p.name.split(".")[0]] = p
        return constituents

    def with_schemas(self, core: FileSchema, extensions: Mapping[Term, FileSchema]) -> "Archive":
        return replace(self, core=core, extensions=dict(extensions))

    def validate(self) -> None:
        """Check the archive can be read.

        Raises:
            UnsupportedArchiveError: If the core is missing, an extension lacks
                an id column, or any data file lacks a readable location.
        """
        if self.core is None:
            raise UnsupportedArchiveError("Parts of the archive are missing: no core data file")
        if self.extensions and self.core.id_field is None:
            logger.warning(
                "Core data file »%s« is lacking an id column. No extensions allowed in this case",
                self.core.title,
            )
        self._validate_file(self.core)
        for ext in self.extensions.values():
            if ext.id_field is None:
                raise UnsupportedArchiveError(
                    f"Data file »{ext.title}« requires an id or foreign key to the core id"
                )
            self._validate_file(ext)
        logger.debug("Archive contains %d described extension files", len(self.extensions))
        logger.debug("Archive contains %d core properties", len(self.core.fields))

    def _validate_file(self, schema: FileSchema) -> None:
        schema.validate()
        if not self.data_file_path(schema).exists():
            raise UnsupportedArchiveError(f"Data file »{schema.title}« does not exist")


__all__ = ["Field", "FileSchema", "FileSchemaBuilder", "Archive", "title_from_location"]
