"""Tests for loading data files into pandas DataFrames."""

import pandas as pd

from dwca_tools.core.terms import Term
from dwca_tools.ingestion.loader import open_archive
from dwca_tools.records.frames import column_names, read_frame


def test_core_frame(star_archive_dir):
    df = read_frame(open_archive(star_archive_dir))
    assert list(df.columns) == ["id", "kingdom", "scientificName", "taxonRank"]
    assert list(df["id"]) == ["1", "2", "3"]
    assert set(df["kingdom"]) == {"Plantae"}
    assert df.loc[1, "scientificName"] == "Pinus"


def test_extension_frame(star_archive_dir, term):
    df = read_frame(open_archive(star_archive_dir), term("gbif:VernacularName"))
    assert list(df.columns) == ["id", "vernacularName", "language"]
    assert len(df) == 3
    assert list(df["language"]) == ["en", "de", "en"]


def test_limit(star_archive_dir):
    df = read_frame(open_archive(star_archive_dir), limit=2)
    assert len(df) == 2


def test_missing_values_are_none(make_archive):
    root = make_archive(taxa=["taxonID\tscientificName\ttaxonRank", "1\tAbies alba"])
    df = read_frame(open_archive(root))
    assert df.loc[0, "taxonRank"] is None
    assert df["taxonRank"].dtype == object


def test_empty_file_keeps_columns(make_archive):
    root = make_archive(taxa=["taxonID\tscientificName\ttaxonRank"])
    df = read_frame(open_archive(root))
    assert df.empty
    assert list(df.columns) == ["id", "kingdom", "scientificName", "taxonRank"]
    assert isinstance(df, pd.DataFrame)


def test_column_names_disambiguate_shared_simple_names():
    a = Term("http://example.org/a/name", simple_name="name", prefix="a")
    b = Term("http://example.org/b/name", simple_name="name", prefix="b")
    c = Term("http://example.org/a/colour", simple_name="colour", prefix="a")
    assert column_names([a, b, c]) == ["a:name", "b:name", "colour"]
