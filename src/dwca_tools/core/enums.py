"""Core enumerations used across the package."""

from __future__ import annotations

from enum import Enum, auto
from pathlib import Path
from typing import Optional


class DataType(str, Enum):
    """Closed set of field data types declared in a descriptor.

    Values are the XML schema type names used in ``type`` attributes.
    """

    STRING = "xs:string"
    BOOLEAN = "xs:boolean"
    INTEGER = "xs:integer"
    DECIMAL = "xs:decimal"
    DATE = "xs:dateTime"
    URI = "xs:URI"

    @classmethod
    def from_declared(cls, declared: Optional[str]) -> "DataType":
        """Map a declared type string to a data type, defaulting to STRING.

        Accepts XML schema names (``xs:integer``) as well as bare names
        (``integer``, ``int``, ``bool``), case-insensitively.

        Examples:
            >>> DataType.from_declared("xs:decimal")
            <DataType.DECIMAL: 'xs:decimal'>
            >>> DataType.from_declared("nonsense")
            <DataType.STRING: 'xs:string'>
        """
        if not declared:
            return cls.STRING
        key = declared.strip().lower()
        for dt in cls:
            if dt.value.lower() == key:
                return dt
        if ":" in key:
            key = key.split(":", 1)[1]
        return _BARE_TYPE_NAMES.get(key, cls.STRING)


_BARE_TYPE_NAMES = {
    "string": DataType.STRING,
    "boolean": DataType.BOOLEAN,
    "bool": DataType.BOOLEAN,
    "integer": DataType.INTEGER,
    "int": DataType.INTEGER,
    "decimal": DataType.DECIMAL,
    "date": DataType.DATE,
    "datetime": DataType.DATE,
    "uri": DataType.URI,
}


class ArchiveLayout(Enum):
    """How an archive location was given.

    - DIRECTORY_ROOT: the location is the package directory
    - FILE_ROOT: the location is a single data (or metadata) file
    """

    DIRECTORY_ROOT = auto()
    FILE_ROOT = auto()

    @classmethod
    def from_path(cls, root: Path) -> "ArchiveLayout":
        return cls.DIRECTORY_ROOT if root.is_dir() else cls.FILE_ROOT


class ParserState(Enum):
    """
    State machine states for reading a descriptor document:
    - IDLE: outside of any data file element
    - BUILDING_CORE: inside the core element
    - BUILDING_EXTENSION: inside an extension element
    """

    IDLE = auto()
    BUILDING_CORE = auto()
    BUILDING_EXTENSION = auto()


__all__ = ["DataType", "ArchiveLayout", "ParserState"]
