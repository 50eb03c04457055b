"""Record views over raw rows.

A ``Record`` maps one tokenized row onto the fields of a file schema.
A ``StarRecord`` groups one core record with the records of every declared
extension that share its id.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from dwca_tools.core.schemas import Field, FileSchema
from dwca_tools.core.terms import Term
from dwca_tools.core.utils import clean_value, trim_to_none


class Record:
    """One row of a data file read against its schema.

    Args:
        schema: Schema of the data file the row belongs to.
        row: Tokenized cells of the row; empty cells are None.
        replace_nulls: Collapse literal nulls (``NULL``, ``\\N``, blanks) to None.
        replace_entities: Replace HTML and XML entities by their characters.

    Examples:
        >>> from dwca_tools.core.terms import Term
        >>> name = Term("http://rs.tdwg.org/dwc/terms/scientificName")
        >>> schema = FileSchema(fields={name: Field(name, index=1)}, id_field=Field(name, index=0))
        >>> Record(schema, ["1", "Abies alba"]).value(name)
        'Abies alba'
    """

    __slots__ = ("schema", "row", "replace_nulls", "replace_entities")

    def __init__(
        self,
        schema: FileSchema,
        row: Sequence[Optional[str]],
        replace_nulls: bool = True,
        replace_entities: bool = True,
    ) -> None:
        self.schema = schema
        self.row: Tuple[Optional[str], ...] = tuple(row)
        self.replace_nulls = replace_nulls
        self.replace_entities = replace_entities

    @property
    def row_type(self) -> Optional[Term]:
        return self.schema.row_type

    @property
    def id(self) -> Optional[str]:
        """Raw value of the id column, or None when the schema has no id."""
        id_field = self.schema.id_field
        if id_field is None or id_field.index is None:
            return None
        return self.column(id_field.index)

    def column(self, index: int) -> Optional[str]:
        """Raw cell at a column position, None beyond the end of the row."""
        if 0 <= index < len(self.row):
            return self.row[index]
        return None

    def _value(self, f: Field) -> Optional[str]:
        if f.index is None:
            return f.default_value
        raw = self.column(f.index)
        if trim_to_none(raw) is None:
            return f.default_value
        val = clean_value(raw, nulls=self.replace_nulls, entities=self.replace_entities)
        # a literal null counts as an empty cell
        return f.default_value if val is None else val

    def value(self, term: Optional[Term]) -> Optional[str]:
        """Cleaned value of a term, falling back to the field's default value.

        Returns:
            The value, the default for an empty cell or an unindexed field,
            or None if the term is not mapped by the schema.
        """
        f = self.schema.field_for(term)
        if f is None:
            return None
        return self._value(f)

    def terms(self) -> List[Term]:
        return self.schema.terms()

    def values(self) -> Dict[Term, Optional[str]]:
        """Values of all mapped terms, in column order."""
        return {f.term: self._value(f) for f in self.schema.fields_sorted()}

    def __repr__(self) -> str:
        cells = "|".join("" if c is None else c for c in self.row)
        return f"Record{{{self.id}}}[{cells}]"


class StarRecord:
    """A core record joined with its extension records.

    The extension row types are fixed at construction; every declared row
    type is present, possibly with an empty list.
    """

    __slots__ = ("core", "_extensions")

    def __init__(self, core: Record, extensions: Mapping[Term, List[Record]]) -> None:
        self.core = core
        self._extensions: Dict[Term, List[Record]] = {rt: list(recs) for rt, recs in extensions.items()}

    @property
    def id(self) -> Optional[str]:
        return self.core.id

    @property
    def extensions(self) -> Mapping[Term, List[Record]]:
        """Extension records keyed by declared row type."""
        return MappingProxyType(self._extensions)

    def extension(self, row_type: Term) -> List[Record]:
        """Records of one extension attached to this core record.

        Raises:
            KeyError: If the row type is not declared by the archive.
        """
        if row_type not in self._extensions:
            raise KeyError(f"Extension {row_type} is not declared by this archive")
        return self._extensions[row_type]

    def has_extension(self, row_type: Term) -> bool:
        """True if the row type is declared and has at least one record."""
        return bool(self._extensions.get(row_type))

    def row_types(self) -> List[Term]:
        return list(self._extensions.keys())

    def size(self) -> int:
        """Total number of extension records attached."""
        return sum(len(recs) for recs in self._extensions.values())

    def __iter__(self) -> Iterator[Record]:
        for recs in self._extensions.values():
            yield from recs

    def __repr__(self) -> str:
        counts = ", ".join(f"{rt.simple_name}={len(recs)}" for rt, recs in self._extensions.items())
        return f"StarRecord({self.core!r}, {counts})"


__all__ = ["Record", "StarRecord"]
