"""Record views and iterators over archive data files.

Public API:
 - Record, StarRecord
 - RecordIterator, StarRecordIterator
 - open_records, open_star_records
 - read_frame
"""

from .frames import read_frame
from .iterators import RecordIterator, StarRecordIterator, open_records, open_star_records
from .record import Record, StarRecord

__all__ = [
    "Record",
    "StarRecord",
    "RecordIterator",
    "StarRecordIterator",
    "open_records",
    "open_star_records",
    "read_frame",
]
