"""Writing side of archives.

Public API:
 - ArchiveWriter
 - TabWriter
 - write_descriptor
"""

from .archive_writer import ArchiveWriter, to_text
from .descriptor_writer import descriptor_string, write_descriptor
from .tab_writer import TabWriter, tab_row

__all__ = [
    "ArchiveWriter",
    "to_text",
    "TabWriter",
    "tab_row",
    "write_descriptor",
    "descriptor_string",
]
