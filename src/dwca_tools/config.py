"""Archive reading and writing configuration constants.

This module centralizes the tunables of the dialect detector, the descriptor
parser, the sort stage and the archive writer. Adjust these constants to tune
behavior for unusual inputs.

File names:
    - "meta.xml": the descriptor document
    - "eml.xml" / "metadata.xml": metadata documents picked up by discovery
    - "dataset/": folder of constituent metadata documents
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# ============================================================================
# DIALECT DETECTION
# ============================================================================

# Rows sampled when scoring a delimiter/quote combination
ROWS_TO_INSPECT = 10

# Bytes handed to the charset sniffer
ENCODING_SAMPLE_BYTES = 16384

# Sniffer guesses below this confidence are rejected
MIN_ENCODING_CONFIDENCE = 0.2

# Order matters: on equal scores the first candidate wins
CANDIDATE_DELIMITERS = (",", "\t", ";", "|")

# Sniffer answers that are promoted to a superset encoding for reading
ENCODING_ALIASES = {
    "ascii": "utf-8",
}


# ============================================================================
# DESCRIPTOR DOCUMENT
# ============================================================================

NS_DWCA = "http://rs.tdwg.org/dwc/text/"

DESCRIPTOR_FILENAME = "meta.xml"

DEFAULT_METADATA_FILENAME = "eml.xml"

# Checked in order during metadata discovery
METADATA_FILENAMES = ("eml.xml", "metadata.xml")

CONSTITUENT_DIR = "dataset"

# Suffixes of files accepted as the single data file of a package without descriptor
DATA_FILE_SUFFIXES = (".csv", ".txt", ".tsv", ".tab", ".text", ".data", ".dwca")


# ============================================================================
# FILE SCHEMA DEFAULTS
# ============================================================================

DEFAULT_ENCODING = "utf8"
DEFAULT_FIELD_DELIMITER = ","
DEFAULT_QUOTE_CHAR = '"'
DEFAULT_LINE_TERMINATOR = "\n"


# ============================================================================
# SORT STAGE
# ============================================================================

SORTED_SUFFIX = "-sorted"

# Rows held in memory per sorted run before spilling to a temporary file
SORT_CHUNK_ROWS = 100_000


# ============================================================================
# ARCHIVE WRITER
# ============================================================================

WRITER_ENCODING = "utf-8"
WRITER_FIELD_DELIMITER = "\t"
WRITER_LINE_TERMINATOR = "\n"

# Header name of the id column, keyed by the simple name of the core row type
ID_COLUMN_BY_ROW_TYPE = {
    "Taxon": "taxonID",
    "Occurrence": "occurrenceID",
    "Identification": "identificationID",
    "Event": "eventID",
}
DEFAULT_ID_COLUMN = "identifier"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def get_id_column_name(core_row_type_name: Optional[str]) -> str:
    """Get the header name of the id column for a core row type.

    Args:
        core_row_type_name: Simple name of the core row type (e.g. "Taxon").

    Returns:
        Display name used in the header row of every data file.

    Examples:
        >>> get_id_column_name("Taxon")
        'taxonID'
        >>> get_id_column_name("MeasurementOrFact")
        'identifier'
    """
    if core_row_type_name is None:
        return DEFAULT_ID_COLUMN
    return ID_COLUMN_BY_ROW_TYPE.get(core_row_type_name, DEFAULT_ID_COLUMN)


def load_yaml_config(path: Path) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data
