"""Reading side of archives: tokenizing, dialect detection, descriptors and sorting.

Public API:
 - open_archive
 - parse_descriptor, DescriptorStateMachine
 - detect_dialect, Dialect
 - DelimitedReader, RowResult, RowError
 - tokenize
 - prepare_sorted_archive, sort_data_file, is_sorted
"""

from .descriptor import DescriptorStateMachine, parse_descriptor, parse_descriptor_string
from .dialect import Dialect, detect_dialect
from .loader import open_archive
from .reader import DelimitedReader, RowError, RowResult
from .sorting import is_sorted, prepare_sorted_archive, sort_data_file
from .tokenizer import tokenize

__all__ = [
    "open_archive",
    # descriptor
    "DescriptorStateMachine",
    "parse_descriptor",
    "parse_descriptor_string",
    # data files
    "Dialect",
    "detect_dialect",
    "DelimitedReader",
    "RowError",
    "RowResult",
    "tokenize",
    # sort stage
    "is_sorted",
    "prepare_sorted_archive",
    "sort_data_file",
]
