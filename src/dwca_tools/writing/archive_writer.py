"""Incremental archive writer.

Records are written one core row at a time:

    with ArchiveWriter(taxon, out_dir, use_headers=True) as w:
        w.start_core_record("1")
        w.set_core_value(scientific_name, "Abies alba")
        w.add_extension_record(vernacular, {vernacular_name: "Silver fir"})

The core row is buffered until the next ``start_core_record`` (or
``close``); extension rows are written immediately, keyed by the current
core id. Every row type gets its own tab delimited file named after the
lower-cased simple name of the row type. On close a ``meta.xml`` describing
all files is generated.

Header rows:
    With ``use_headers`` every file starts with a header row. Its columns are
    fixed once written, so new terms are rejected after the first core row
    has been flushed, or after the first row of an extension.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Union

from dwca_tools.config import (
    CONSTITUENT_DIR,
    DEFAULT_METADATA_FILENAME,
    DESCRIPTOR_FILENAME,
    WRITER_ENCODING,
    WRITER_LINE_TERMINATOR,
    get_id_column_name,
)
from dwca_tools.core.errors import IllegalStateError
from dwca_tools.core.schemas import Archive, Field, FileSchema
from dwca_tools.core.terms import ID_TERM, Term, TermRegistry
from dwca_tools.core.utils import data_file_name, trim_to_none
from .descriptor_writer import write_descriptor
from .tab_writer import TabWriter


logger = logging.getLogger(__name__)

TermLike = Union[Term, str]


def to_text(value: Any) -> Optional[str]:
    """Convert a value to the text written into a data file.

    Examples:
        >>> to_text(True)
        'true'
        >>> to_text(12)
        '12'
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.name.lower().replace("_", " ")
    return str(value)


class ArchiveWriter:
    """Write a new archive into a directory, record by record.

    Args:
        core_row_type: Row type of the core data file.
        directory: Output directory, created if missing.
        use_headers: Write a header row into every data file.
        core_id_term: Term also mapped to the id column of the core file.
        registry: Term registry used to resolve term names given as strings.

    Attributes:
        records_written: Number of core records started.
    """

    def __init__(
        self,
        core_row_type: TermLike,
        directory: Union[str, Path],
        use_headers: bool = False,
        core_id_term: Optional[TermLike] = None,
        registry: Optional[TermRegistry] = None,
    ) -> None:
        self.registry = registry or TermRegistry.default()
        self.directory = Path(directory)
        self.use_headers = use_headers
        self.core_row_type = self._term(core_row_type, strict=True)
        self.core_id_term = self._term(core_id_term) if core_id_term is not None else None
        self.records_written = 0
        self.metadata_location: Optional[str] = None

        self._core_id: Optional[str] = None
        self._core_row: Optional[Dict[Term, Optional[str]]] = None
        self._writers: Dict[Term, TabWriter] = {}
        self._data_files: Dict[Term, str] = {}
        self._terms: Dict[Term, List[Term]] = {}
        self._headers_out: Set[Term] = set()
        self._default_values: Dict[Term, Dict[Term, str]] = {}
        self._multi_value_delimiters: Dict[Term, Dict[Term, str]] = {}
        self._constituents: Dict[str, str] = {}
        self._closed = False

        self.directory.mkdir(parents=True, exist_ok=True)
        self._add_row_type(self.core_row_type)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _term(self, term: Optional[TermLike], strict: bool = False) -> Term:
        if isinstance(term, Term):
            return term
        resolved = self.registry.find(term, strict=strict)
        if resolved is None:
            raise ValueError("A term is required")
        return resolved

    def _check_open(self) -> None:
        if self._closed:
            raise IllegalStateError("The archive writer has been closed")

    def _add_row_type(self, row_type: Term) -> None:
        self._terms[row_type] = []
        name = data_file_name(row_type.simple_name)
        self._data_files[row_type] = name
        self._writers[row_type] = TabWriter(self.directory / name)

    def _write_header(self, row_type: Term) -> None:
        columns = self._terms[row_type]
        header = [get_id_column_name(self.core_row_type.simple_name)] + [t.simple_name for t in columns]
        self._writers[row_type].write(header)
        self._headers_out.add(row_type)

    def _write_row(self, values: Mapping[Term, Optional[str]], row_type: Term) -> None:
        if self.use_headers and row_type not in self._headers_out:
            self._write_header(row_type)
        if row_type != self.core_row_type and self._core_id is None:
            logger.warning("Adding an %s extension record to a core without an id, skipping the record", row_type)
            return
        columns = self._terms[row_type]
        row: List[Optional[str]] = [None] * (len(columns) + 1)
        row[0] = self._core_id
        for term, value in values.items():
            row[columns.index(term) + 1] = value
        self._writers[row_type].write(row)

    def _flush_core_record(self) -> None:
        if self._core_row is not None:
            self._write_row(self._core_row, self.core_row_type)

    # ------------------------------------------------------------------
    # records
    # ------------------------------------------------------------------

    def start_core_record(self, record_id: Optional[str]) -> None:
        """Flush the buffered core row and start a new one under the given id."""
        self._check_open()
        self._flush_core_record()
        self.records_written += 1
        self._core_id = trim_to_none(to_text(record_id))
        self._core_row = {}

    def set_core_value(self, term: TermLike, value: Any = None) -> None:
        """Set a value of the core row in progress.

        Raises:
            IllegalStateError: If no core record was started, the term is the
                core id term, or the term is new after the header was written.
        """
        self._check_open()
        term = self._term(term)
        if self.core_id_term is not None and term == self.core_id_term:
            raise IllegalStateError(f"Term {term} is the core id term and cannot be set as a value")
        if self._core_row is None:
            raise IllegalStateError("No core record has been started yet. Call start_core_record() first")
        core_terms = self._terms[self.core_row_type]
        if term not in core_terms:
            if self.use_headers and self.records_written > 1:
                raise IllegalStateError(
                    f"Cannot add new term {term} after the first row when headers are enabled"
                )
            core_terms.append(term)
        self._core_row[term] = to_text(value)

    def add_extension_record(self, row_type: TermLike, values: Mapping[TermLike, Any]) -> None:
        """Write one extension row linked to the current core record.

        Raises:
            IllegalStateError: If a term is new after the extension's first row
                and headers are enabled.
        """
        self._check_open()
        row_type = self._term(row_type, strict=True)
        if row_type not in self._terms:
            self._add_row_type(row_type)
        row = {self._term(t): to_text(v) for t, v in values.items()}
        known = self._terms[row_type]
        is_first = not known
        for term in row:
            if term not in known:
                if self.use_headers and not is_first:
                    raise IllegalStateError(
                        f"Cannot add new term {term} to extension {row_type.simple_name} "
                        "after the first row when headers are enabled"
                    )
                known.append(term)
        self._write_row(row, row_type)

    # ------------------------------------------------------------------
    # descriptor options
    # ------------------------------------------------------------------

    def add_default_value(self, row_type: TermLike, term: TermLike, default_value: str) -> None:
        """Declare a default value for a term of a row type.

        Terms that never receive a column are written as default-only fields.

        Raises:
            IllegalStateError: If a default is already defined for the term.
        """
        row_type, term = self._term(row_type, strict=True), self._term(term)
        defaults = self._default_values.setdefault(row_type, {})
        if term in defaults:
            raise IllegalStateError(f"The default value of term {term} is already defined")
        defaults[term] = default_value

    def add_core_default_value(self, term: TermLike, default_value: str) -> None:
        self.add_default_value(self.core_row_type, term, default_value)

    def add_multi_value_delimiter(self, row_type: TermLike, term: TermLike, delimiter: str) -> None:
        """Declare the separator of multiple values in one cell.

        Raises:
            IllegalStateError: If a delimiter is already defined for the term.
        """
        row_type, term = self._term(row_type, strict=True), self._term(term)
        delimiters = self._multi_value_delimiters.setdefault(row_type, {})
        if term in delimiters:
            raise IllegalStateError(f"The delimiter of term {term} is already defined")
        delimiters[term] = delimiter

    def add_core_multi_value_delimiter(self, term: TermLike, delimiter: str) -> None:
        self.add_multi_value_delimiter(self.core_row_type, term, delimiter)

    def set_metadata(self, metadata: str, location: str = DEFAULT_METADATA_FILENAME) -> Path:
        """Write the metadata document of the archive."""
        self._check_open()
        path = self.directory / location
        path.write_text(metadata, encoding="utf-8")
        self.metadata_location = location
        return path

    def add_constituent(self, dataset_id: str, metadata: str) -> None:
        """Add the metadata document of a constituent dataset, written on close."""
        self._check_open()
        self._constituents[dataset_id] = metadata

    # ------------------------------------------------------------------
    # introspection
    # ------------------------------------------------------------------

    def data_files(self) -> Dict[Term, str]:
        return dict(self._data_files)

    def row_types(self) -> List[Term]:
        return list(self._terms.keys())

    def terms_for(self, row_type: TermLike) -> List[Term]:
        return list(self._terms.get(self._term(row_type), []))

    # ------------------------------------------------------------------
    # closing
    # ------------------------------------------------------------------

    def build_archive(self) -> Archive:
        """Archive model describing the files written so far."""
        core = self._build_schema(self.core_row_type, self.core_id_term)
        extensions = {
            rt: self._build_schema(rt, None) for rt in self._terms if rt != self.core_row_type
        }
        return Archive(
            core=core,
            extensions=extensions,
            metadata_location=self.metadata_location,
            base_directory=self.directory,
        )

    def _build_schema(self, row_type: Term, id_term: Optional[Term]) -> FileSchema:
        defaults = self._default_values.get(row_type, {})
        delimiters = self._multi_value_delimiters.get(row_type, {})
        columns = self._terms[row_type]
        fields: Dict[Term, Field] = {}
        if id_term is not None:
            fields[id_term] = Field(term=id_term, index=0)
        for idx, term in enumerate(columns, start=1):
            default = defaults.get(term)
            fields[term] = Field(
                term=term,
                index=idx,
                default_value=default if default and default.strip() else None,
                multi_value_delimiter=delimiters.get(term) or None,
            )
        for term, default in defaults.items():
            if term not in columns:
                fields[term] = Field(term=term, default_value=default)
        return FileSchema.tab_file(
            row_type=row_type,
            id_field=Field(term=ID_TERM, index=0),
            fields=fields,
            locations=(self._data_files[row_type],),
            encoding=WRITER_ENCODING,
            line_terminator=WRITER_LINE_TERMINATOR,
            header_line_count=1 if self.use_headers else 0,
        )

    def _write_constituents(self) -> None:
        if not self._constituents:
            return
        const_dir = self.directory / CONSTITUENT_DIR
        const_dir.mkdir(parents=True, exist_ok=True)
        for dataset_id, metadata in self._constituents.items():
            (const_dir / f"{dataset_id}.xml").write_text(metadata, encoding="utf-8")

    def close(self) -> None:
        """Flush the last core row, close all data files and write the descriptor."""
        if self._closed:
            return
        try:
            self._flush_core_record()
        finally:
            for w in self._writers.values():
                w.close()
            self._closed = True
        self._write_constituents()
        write_descriptor(self.build_archive(), self.directory / DESCRIPTOR_FILENAME)
        logger.info(
            "Wrote archive with %d core record(s) and %d data file(s) to %s",
            self.records_written,
            len(self._data_files),
            self.directory,
        )

    def __enter__(self) -> "ArchiveWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ArchiveWriter", "to_text"]
