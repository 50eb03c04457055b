"""Record and star record iteration.

``StarRecordIterator`` joins the core file with every extension file in one
pass. All files must be ordered by id; ``open_star_records`` runs the sort
stage first. One cursor per extension is kept on its next unconsumed row:

- extension id lower than the core id: orphan row, discarded
- extension id equal to the core id: attached to the star record
- extension id greater than the core id: left for a later core row

Rows left over once the core file is exhausted are orphans too.

A read error in any file ends the iteration of that file. The error is
reported on the result of the step it occurred in.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from dwca_tools.core.errors import UnsupportedArchiveError
from dwca_tools.core.schemas import Archive, FileSchema
from dwca_tools.core.terms import Term
from dwca_tools.core.utils import trim_to_none
from dwca_tools.ingestion.reader import DelimitedReader, RowError, RowResult
from dwca_tools.ingestion.sorting import prepare_sorted_archive
from .record import Record, StarRecord


logger = logging.getLogger(__name__)


class RecordIterator:
    """Iterate the records of one data file.

    The underlying file is opened on construction and released by ``close()``
    or by leaving a ``with`` block.
    """

    def __init__(
        self,
        schema: FileSchema,
        base_directory: Optional[Path] = None,
        replace_nulls: bool = True,
        replace_entities: bool = True,
    ) -> None:
        self.schema = schema
        self.replace_nulls = replace_nulls
        self.replace_entities = replace_entities
        self.reader = DelimitedReader.for_schema(schema, base_directory)

    def results(self) -> Iterator[RowResult[Record]]:
        """Yield one result per row; an error result is the last one."""
        for res in self.reader.results():
            if res.error is not None:
                yield RowResult(error=res.error, line_number=res.line_number)
                return
            rec = Record(self.schema, res.value, self.replace_nulls, self.replace_entities)
            yield RowResult(value=rec, line_number=res.line_number)

    def __iter__(self) -> Iterator[Record]:
        for res in self.results():
            if res.error is not None:
                logger.warning("Stopped reading %s: %s", self.schema.title, res.error.message)
                return
            yield res.value

    @property
    def empty_lines(self) -> List[int]:
        return self.reader.empty_lines

    def close(self) -> None:
        self.reader.close()

    def __enter__(self) -> "RecordIterator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class _ExtensionCursor:
    """Peeking cursor over the records of one extension file."""

    def __init__(self, records: RecordIterator) -> None:
        self.records = records
        self.orphans = 0
        self.exhausted = False
        self._results = records.results()
        self._head: Optional[RowResult[Record]] = None

    def _peek(self) -> Optional[RowResult[Record]]:
        if self._head is None and not self.exhausted:
            self._head = next(self._results, None)
            if self._head is None:
                self.exhausted = True
        return self._head

    def _consume(self) -> None:
        self._head = None

    def take(self, core_id: str) -> Tuple[List[Record], Optional[RowError]]:
        """Consume all rows with the given id, discarding lower ids on the way."""
        matched: List[Record] = []
        while True:
            head = self._peek()
            if head is None:
                return matched, None
            if head.error is not None:
                self._consume()
                self.exhausted = True
                return matched, head.error
            rec = head.value
            ext_id = rec.id
            if trim_to_none(ext_id) is None:
                logger.debug("Skipping %s row without core id at line %d", self.records.schema.title, head.line_number)
                self._consume()
                continue
            if ext_id < core_id:
                self.orphans += 1
                logger.debug("Orphaned %s row with id %s", self.records.schema.title, ext_id)
                self._consume()
                continue
            if ext_id == core_id:
                matched.append(rec)
                self._consume()
                continue
            return matched, None

    def drain(self) -> None:
        """Discard the rows left after the last core id, counting them as orphans."""
        while True:
            head = self._peek()
            if head is None:
                return
            self._consume()
            if head.error is not None:
                logger.debug("Stopped draining %s: %s", self.records.schema.title, head.error.message)
                self.exhausted = True
                return
            if trim_to_none(head.value.id) is not None:
                self.orphans += 1
                logger.debug("Orphaned %s row with id %s", self.records.schema.title, head.value.id)


class StarRecordIterator:
    """Join the core file of an archive with its extension files.

    The archive files must already be ordered by id. Use
    ``open_star_records`` to have unsorted files sorted first.

    Attributes:
        records_read: Star records produced so far.
    """

    def __init__(
        self,
        archive: Archive,
        replace_nulls: bool = True,
        replace_entities: bool = True,
    ) -> None:
        if archive.core is None:
            raise UnsupportedArchiveError("Archive has no core data file")
        self.archive = archive
        self.records_read = 0
        self.core = RecordIterator(archive.core, archive.base_directory, replace_nulls, replace_entities)
        self._cursors: Dict[Term, _ExtensionCursor] = {}
        try:
            for row_type, schema in archive.extensions.items():
                ext = RecordIterator(schema, archive.base_directory, replace_nulls, replace_entities)
                self._cursors[row_type] = _ExtensionCursor(ext)
        except Exception:
            self.close()
            raise

    def results(self) -> Iterator[RowResult[StarRecord]]:
        """Yield one result per core row.

        A result may carry both a star record and the error of an extension
        that stopped at this step. A core read error yields a result without
        value and ends the iteration.
        """
        for core_res in self.core.results():
            if core_res.error is not None:
                yield RowResult(error=core_res.error, line_number=core_res.line_number)
                return
            core = core_res.value
            core_id = core.id
            extensions: Dict[Term, List[Record]] = {rt: [] for rt in self._cursors}
            error: Optional[RowError] = None
            if core_id is not None:
                for row_type, cursor in self._cursors.items():
                    if cursor.exhausted:
                        continue
                    matched, err = cursor.take(core_id)
                    extensions[row_type] = matched
                    if err is not None:
                        logger.warning("Stopped reading extension %s: %s", row_type.simple_name, err.message)
                        error = error or err
            self.records_read += 1
            yield RowResult(value=StarRecord(core, extensions), error=error, line_number=core_res.line_number)
        for cursor in self._cursors.values():
            cursor.drain()

    def __iter__(self) -> Iterator[StarRecord]:
        for res in self.results():
            if res.value is None:
                logger.warning("Stopped reading core %s: %s", self.archive.core.title, res.error.message)
                return
            yield res.value

    def orphans(self) -> Dict[Term, int]:
        """Extension rows discarded so far for lacking a matching core row."""
        return {rt: cursor.orphans for rt, cursor in self._cursors.items()}

    def close(self) -> None:
        self.core.close()
        for cursor in self._cursors.values():
            cursor.records.close()

    def __enter__(self) -> "StarRecordIterator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_records(archive: Archive, row_type: Optional[Term] = None, **kwargs) -> RecordIterator:
    """Iterate the records of the core file, or of the extension with the given row type.

    Raises:
        UnsupportedArchiveError: If the archive has no such data file.
    """
    if row_type is None or (archive.core is not None and archive.core.row_type == row_type):
        schema = archive.core
    else:
        schema = archive.extension(row_type)
    if schema is None:
        raise UnsupportedArchiveError(f"Archive has no data file for row type {row_type}")
    return RecordIterator(schema, archive.base_directory, **kwargs)


def open_star_records(
    archive: Archive,
    sort: bool = True,
    replace_nulls: bool = True,
    replace_entities: bool = True,
    show_progress: bool = False,
) -> StarRecordIterator:
    """Open a star record iterator over an archive.

    Args:
        archive: An opened archive.
        sort: Sort unsorted data files into companions before joining.
        replace_nulls: Collapse literal null values to None.
        replace_entities: Unescape HTML and XML entities in values.
        show_progress: Display a progress bar while sorting.

    Examples:
        >>> with open_star_records(open_archive("dwca")) as it:  # doctest: +SKIP
        ...     for star in it:
        ...         print(star.core.id, star.size())
    """
    if sort:
        archive = prepare_sorted_archive(archive, show_progress=show_progress)
    return StarRecordIterator(archive, replace_nulls, replace_entities)


__all__ = ["RecordIterator", "StarRecordIterator", "open_records", "open_star_records"]
