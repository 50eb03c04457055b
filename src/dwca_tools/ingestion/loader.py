"""Open a package location as an archive model.

Supported locations:
- a directory holding a ``meta.xml`` descriptor
- a directory without descriptor holding exactly one visible data file
- a single delimited data file (its schema is inferred from the header row)
- a single metadata document (metadata-only package)

The returned archive is validated before it is handed out, so descriptor
problems surface here and never while iterating records.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

from dwca_tools.config import DATA_FILE_SUFFIXES, DESCRIPTOR_FILENAME, METADATA_FILENAMES
from dwca_tools.core.enums import ArchiveLayout
from dwca_tools.core.schemas import Archive, Field, FileSchema, FileSchemaBuilder
from dwca_tools.core.terms import TermRegistry
from .descriptor import parse_descriptor
from .dialect import detect_dialect
from .reader import DelimitedReader


logger = logging.getLogger(__name__)

# Candidate id columns of a single data file, first match wins
_ID_TERM_NAMES = ("dwc:occurrenceID", "dwc:taxonID", "dwc:eventID", "dc:identifier")

# Row type inferred from the id column of a single data file
_ROW_TYPE_BY_ID_TERM = {
    "dwc:occurrenceID": "dwc:Occurrence",
    "dwc:taxonID": "dwc:Taxon",
    "dwc:eventID": "dwc:Event",
}


def discover_metadata_file(location: Path) -> Optional[str]:
    """Find a metadata document for a package location.

    Args:
        location: Package directory, or a file that may itself be the metadata.

    Returns:
        File name of the metadata document, or None.
    """
    if location.is_file():
        return location.name if location.name in METADATA_FILENAMES else None
    for name in METADATA_FILENAMES:
        if (location / name).is_file():
            return name
    return None


def possible_data_files(directory: Path) -> List[Path]:
    """Visible files in a directory with a known data file suffix."""
    files = []
    for p in sorted(directory.iterdir()):
        if p.is_file() and not p.name.startswith(".") and p.suffix.lower() in DATA_FILE_SUFFIXES:
            files.append(p)
    return files


def schema_from_data_file(path: Path, registry: TermRegistry) -> FileSchema:
    """Infer the schema of a data file from its dialect and header row.

    One header line is ignored. Every header cell longer than one character
    maps its column to a term. The id column is the first of occurrenceID,
    taxonID, eventID and identifier found in the header.

    Raises:
        UnknownCharsetError: If the encoding cannot be sniffed.
        UnknownDelimitersError: If no delimiter fits the file.
    """
    dialect = detect_dialect(path)
    with DelimitedReader(path, dialect.encoding, dialect.delimiter, dialect.quote, header_rows=1) as reader:
        header = reader.header or []

    b = FileSchemaBuilder()
    b.encoding = dialect.encoding
    b.field_delimiter = dialect.delimiter
    b.quote_char = dialect.quote
    b.set_header_line_count(1)
    for index, head in enumerate(header):
        if head is None:
            continue
        # term names never hold quotes
        head = head.strip().strip("\"'")
        if len(head) <= 1:
            continue
        b.add_field(Field(term=registry.find(head), index=index))

    for name in _ID_TERM_NAMES:
        id_term = registry.find(name)
        if b.fields.get(id_term) is not None:
            b.id_field = b.fields[id_term]
            row_type = _ROW_TYPE_BY_ID_TERM.get(name)
            if row_type is not None:
                b.row_type = registry.find(row_type)
            break
    else:
        logger.debug("No id column recognised in the header of %s", path.name)
    b.add_location(path.name)
    return b.build()


def _from_single_file(path: Path, registry: TermRegistry) -> Archive:
    metadata = discover_metadata_file(path)
    if metadata is not None:
        return Archive(metadata_location=metadata, base_directory=path.parent, layout=ArchiveLayout.FILE_ROOT)
    core = schema_from_data_file(path, registry)
    return Archive(
        core=core,
        metadata_location=discover_metadata_file(path.parent),
        base_directory=path.parent,
        layout=ArchiveLayout.FILE_ROOT,
    )


def _from_directory(directory: Path, registry: TermRegistry) -> Archive:
    descriptor = directory / DESCRIPTOR_FILENAME
    if descriptor.is_file():
        parsed = parse_descriptor(descriptor, registry)
        archive = Archive(
            core=parsed.core,
            extensions=parsed.extensions,
            metadata_location=parsed.metadata_location,
            base_directory=directory,
            layout=ArchiveLayout.DIRECTORY_ROOT,
        )
    else:
        data_files = possible_data_files(directory)
        if len(data_files) == 1:
            logger.debug("No descriptor found, reading single data file %s", data_files[0].name)
            archive = Archive(
                core=schema_from_data_file(data_files[0], registry),
                base_directory=directory,
                layout=ArchiveLayout.DIRECTORY_ROOT,
            )
        else:
            logger.debug("No descriptor and %d candidate data files in %s", len(data_files), directory)
            archive = Archive(base_directory=directory, layout=ArchiveLayout.DIRECTORY_ROOT)

    if archive.metadata_location is None:
        metadata = discover_metadata_file(directory)
        if metadata is not None:
            archive = Archive(
                core=archive.core,
                extensions=archive.extensions,
                metadata_location=metadata,
                base_directory=archive.base_directory,
                layout=archive.layout,
            )
    return archive


def open_archive(
    location: Union[str, Path],
    registry: Optional[TermRegistry] = None,
    validate: bool = True,
) -> Archive:
    """Open a package directory or a single file as an archive model.

    Args:
        location: Package directory, data file or metadata document.
        registry: Term registry; the built-in vocabulary when None.
        validate: Check that every declared data file can be read.

    Returns:
        The archive model with ``base_directory`` and ``layout`` set.

    Raises:
        FileNotFoundError: If the location does not exist.
        UnsupportedArchiveError: If the descriptor is invalid or the package
            holds no core data file.
        UnknownCharsetError: If a single data file's encoding cannot be sniffed.
        UnknownDelimitersError: If a single data file's delimiter cannot be detected.

    Examples:
        >>> archive = open_archive("path/to/dwca")  # doctest: +SKIP
        >>> archive.core.row_type.simple_name  # doctest: +SKIP
        'Taxon'
    """
    path = Path(location)
    if not path.exists():
        raise FileNotFoundError(f"Archive location does not exist: {path.absolute()}")
    registry = registry or TermRegistry.default()

    layout = ArchiveLayout.from_path(path)
    if layout is ArchiveLayout.FILE_ROOT:
        archive = _from_single_file(path, registry)
    else:
        archive = _from_directory(path, registry)
    logger.debug("Opened %s as %s", path, layout.name)

    if archive.core is None and archive.metadata_location is not None:
        logger.debug("Opened metadata-only package %s", path)
        return archive
    if validate:
        archive.validate()
    return archive


__all__ = [
    "open_archive",
    "discover_metadata_file",
    "possible_data_files",
    "schema_from_data_file",
]
