"""External sort of data files by their id column.

The star record join needs every data file ordered by id. This stage writes
a sorted companion next to each unsorted file (``<location>-sorted``) and
returns an archive model pointing at the companions:

1. Copy the declared header lines verbatim
2. Split the data lines into sorted runs of at most ``chunk_rows`` lines
3. Spill runs to temporary files and k-way merge them into the companion

Ids are compared as plain strings (code point order). Empty lines are
dropped. A companion newer than its source is reused as is.
"""

from __future__ import annotations

import heapq
import logging
import tempfile
from pathlib import Path
from typing import IO, Iterator, List, Optional, Tuple

from tqdm import tqdm

from dwca_tools.config import SORT_CHUNK_ROWS, SORTED_SUFFIX
from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.schemas import Archive, FileSchema
from .reader import DelimitedReader, reading_encoding
from .tokenizer import Tokenizer


logger = logging.getLogger(__name__)

_BAR_FORMAT = "{desc}{percentage:3.0f}%|{bar}| {n:>7} [{elapsed}, {rate_fmt}]"


def id_key(value: Optional[str]) -> str:
    """Sort key of a raw id cell; missing ids sort first."""
    return value or ""


def is_sorted(schema: FileSchema, base_directory: Optional[Path] = None) -> bool:
    """Check that the rows of a data file are ordered by id.

    Returns:
        True if ids never decrease. Files without an id column count as sorted.
    """
    if schema.id_field is None or schema.id_field.index is None:
        return True
    idx = schema.id_field.index
    previous = ""
    with DelimitedReader.for_schema(schema, base_directory) as reader:
        for row in reader:
            current = id_key(row[idx] if idx < len(row) else None)
            if current < previous:
                logger.debug("%s is not sorted at line %d", schema.title, reader.current_line_number)
                return False
            previous = current
    return True


def sorted_location(location: str) -> str:
    return f"{location}{SORTED_SUFFIX}"


def _spill(run: List[Tuple[str, str]], directory: Path, encoding: str) -> Path:
    run.sort(key=lambda kv: kv[0])
    with tempfile.NamedTemporaryFile(
        "w", encoding=encoding, newline="", dir=directory, suffix=".run", delete=False
    ) as f:
        for _, line in run:
            f.write(line)
            f.write("\n")
        return Path(f.name)


def _read_run(path: Path, encoding: str, key_of) -> Iterator[Tuple[str, str]]:
    with path.open("r", encoding=encoding, newline="") as f:
        for line in f:
            line = line.rstrip("\n")
            yield key_of(line), line


def sort_data_file(
    schema: FileSchema,
    base_directory: Optional[Path] = None,
    chunk_rows: int = SORT_CHUNK_ROWS,
    show_progress: bool = False,
) -> Path:
    """Write the sorted companion of a data file.

    Args:
        schema: Schema of the data file; must have an id column.
        base_directory: Directory the schema location is relative to.
        chunk_rows: Maximum number of lines held in memory per run.
        show_progress: Display a progress bar while splitting.

    Returns:
        Path of the sorted companion file.

    Raises:
        UnsupportedArchiveError: If the schema has no id column or the file
            cannot be decoded.
    """
    if schema.id_field is None or schema.id_field.index is None:
        raise UnsupportedArchiveError(f"Cannot sort data file »{schema.title}« without an id column")
    if chunk_rows < 1:
        raise ValueError(f"chunk_rows must be positive, got {chunk_rows}")

    source = schema.location_path(base_directory)
    target = source.with_name(source.name + SORTED_SUFFIX)
    if target.exists() and target.stat().st_mtime >= source.stat().st_mtime:
        logger.debug("Reusing sorted companion %s", target)
        return target

    idx = schema.id_field.index
    tokenizer = Tokenizer(schema.field_delimiter or ",", schema.quote_char)
    read_enc = reading_encoding(schema.encoding)
    # the companion is read back with the declared encoding, so no BOM is written
    write_enc = "utf-8" if read_enc == "utf-8-sig" else read_enc

    def key_of(line: str) -> str:
        tokens = tokenizer(line)
        return id_key(tokens[idx] if idx < len(tokens) else None)

    logger.info("Sorting %s by id column %d", source, idx)
    runs: List[Path] = []
    headers: List[str] = []
    total = 0
    with tempfile.TemporaryDirectory(prefix="dwca-sort-", dir=source.parent) as tmp:
        tmp_dir = Path(tmp)
        try:
            with source.open("r", encoding=read_enc) as f:
                pbar = tqdm(
                    desc=f"{'Sorting ' + source.name:<31}",
                    unit="rows",
                    bar_format=_BAR_FORMAT,
                    disable=not show_progress,
                )
                run: List[Tuple[str, str]] = []
                for line_no, line in enumerate(f):
                    line = line.rstrip("\r\n")
                    if line_no < schema.header_line_count:
                        headers.append(line)
                        continue
                    if not line:
                        continue
                    run.append((key_of(line), line))
                    total += 1
                    pbar.update(1)
                    if len(run) >= chunk_rows:
                        runs.append(_spill(run, tmp_dir, write_enc))
                        run = []
                if run:
                    runs.append(_spill(run, tmp_dir, write_enc))
                pbar.close()
        except UnicodeDecodeError as e:
            raise UnsupportedArchiveError(f"Cannot decode {source} as {schema.encoding}: {e}") from e

        streams = [_read_run(p, write_enc, key_of) for p in runs]
        with target.open("w", encoding=write_enc, newline="") as out:
            _write_lines(out, headers)
            for _, line in heapq.merge(*streams, key=lambda kv: kv[0]):
                out.write(line)
                out.write("\n")

    logger.info("Sorted %d rows of %s into %d run(s): %s", total, source.name, len(runs), target.name)
    return target


def _write_lines(out: IO[str], lines: List[str]) -> None:
    for line in lines:
        out.write(line)
        out.write("\n")


def prepare_sorted_archive(
    archive: Archive,
    chunk_rows: int = SORT_CHUNK_ROWS,
    show_progress: bool = False,
) -> Archive:
    """Return an archive whose data files are all ordered by id.

    Files that are already sorted keep their location; the others are
    replaced by their sorted companion. Archives without extensions are
    returned unchanged since no join takes place.
    """
    if not archive.extensions or archive.core is None or archive.core.id_field is None:
        return archive

    def ensure_sorted(schema: FileSchema) -> FileSchema:
        if is_sorted(schema, archive.base_directory):
            return schema
        sort_data_file(schema, archive.base_directory, chunk_rows, show_progress)
        return schema.with_locations(sorted_location(schema.location))

    core = ensure_sorted(archive.core)
    extensions = {rt: ensure_sorted(ext) for rt, ext in archive.extensions.items()}
    return archive.with_schemas(core, extensions)


__all__ = ["is_sorted", "sort_data_file", "prepare_sorted_archive", "sorted_location", "id_key"]
