"""dwca-tools: read and write star-schema text archives.

An archive is a directory holding one core data file, any number of
extension data files related to the core through a shared id column, a
``meta.xml`` descriptor mapping columns to terms and an optional metadata
document. The public entry points are re-exported here:

- ``open_archive``: build an ``Archive`` from a directory or single data file
- ``open_star_records``: iterate core rows joined with their extension rows
- ``ArchiveWriter``: write a new archive record by record
"""

__all__ = [
    "__version__",
    "Archive",
    "ArchiveWriter",
    "Field",
    "FileSchema",
    "Term",
    "TermRegistry",
    "open_archive",
    "open_star_records",
]

__version__ = "0.1.0"

from dwca_tools.core.schemas import Archive, Field, FileSchema  # noqa: E402
from dwca_tools.core.terms import Term, TermRegistry  # noqa: E402
from dwca_tools.ingestion.loader import open_archive  # noqa: E402
from dwca_tools.records.iterators import open_star_records  # noqa: E402
from dwca_tools.writing.archive_writer import ArchiveWriter  # noqa: E402
