"""Tabular export of archive data files to pandas."""

from __future__ import annotations

import logging
from itertools import islice
from typing import List, Optional

import pandas as pd

from dwca_tools.core.schemas import Archive
from dwca_tools.core.terms import Term
from .iterators import open_records


logger = logging.getLogger(__name__)


def column_names(terms: List[Term]) -> List[str]:
    """Simple names of terms, prefixed where two terms share a simple name."""
    seen = {}
    for t in terms:
        seen[t.simple_name] = seen.get(t.simple_name, 0) + 1
    return [t.prefixed_name if seen[t.simple_name] > 1 else t.simple_name for t in terms]


def read_frame(archive: Archive, row_type: Optional[Term] = None, limit: Optional[int] = None) -> pd.DataFrame:
    """Load one data file of an archive into a DataFrame.

    Values go through the record layer, so defaults, null literals and
    entities are handled the same way as when iterating records.

    Args:
        archive: An opened archive.
        row_type: Extension row type to load; the core when None.
        limit: Maximum number of rows to load.

    Returns:
        DataFrame with an ``id`` column followed by one column per term, in
        column order. All values are strings or None.
    """
    with open_records(archive, row_type) as records:
        schema = records.schema
        terms = [f.term for f in schema.fields_sorted()]
        col_order = ["id"] + column_names(terms)
        rows = []
        for rec in islice(records, limit):
            values = rec.values()
            rows.append([rec.id] + [values[t] for t in terms])
    logger.debug("Loaded %d rows of %s into a frame", len(rows), schema.title)
    return pd.DataFrame(rows, columns=col_order, dtype=object)


__all__ = ["read_frame", "column_names"]
