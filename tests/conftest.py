"""Shared pytest fixtures building small archives in temporary directories."""

from pathlib import Path
from typing import Callable, List

import pytest

from dwca_tools.core.terms import Term, TermRegistry


TAXON_META = r"""<?xml version="1.0" encoding="UTF-8"?>
<archive xmlns="http://rs.tdwg.org/dwc/text/" metadata="eml.xml">
  <core encoding="UTF-8" fieldsTerminatedBy="\t" linesTerminatedBy="\n" fieldsEnclosedBy=""
        ignoreHeaderLines="1" rowType="http://rs.tdwg.org/dwc/terms/Taxon">
    <files>
      <location>taxa.txt</location>
    </files>
    <id index="0"/>
    <field index="1" term="http://rs.tdwg.org/dwc/terms/scientificName"/>
    <field index="2" term="http://rs.tdwg.org/dwc/terms/taxonRank"/>
    <field term="http://rs.tdwg.org/dwc/terms/kingdom" default="Plantae"/>
  </core>
  <extension encoding="UTF-8" fieldsTerminatedBy="\t" linesTerminatedBy="\n" fieldsEnclosedBy=""
             ignoreHeaderLines="1" rowType="http://rs.gbif.org/terms/1.0/VernacularName">
    <files>
      <location>vernacular.txt</location>
    </files>
    <coreid index="0"/>
    <field index="1" term="http://rs.tdwg.org/dwc/terms/vernacularName"/>
    <field index="2" term="http://purl.org/dc/terms/language"/>
  </extension>
</archive>
"""

TAXA_ROWS = [
    "taxonID\tscientificName\ttaxonRank",
    "1\tAbies alba\tspecies",
    "2\tPinus\tgenus",
    "3\tPicea abies\tspecies",
]

VERNACULAR_ROWS = [
    "taxonID\tvernacularName\tlanguage",
    "1\tSilver fir\ten",
    "1\tWeißtanne\tde",
    "3\tNorway spruce\ten",
]


def write_lines(path: Path, lines: List[str], encoding: str = "utf-8") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding=encoding)
    return path


@pytest.fixture(scope="session")
def registry() -> TermRegistry:
    return TermRegistry.default()


@pytest.fixture
def term(registry) -> Callable[[str], Term]:
    """Resolve a term name against the built-in vocabulary."""

    def _find(name: str) -> Term:
        return registry.find(name)

    return _find


@pytest.fixture
def make_archive(tmp_path) -> Callable[..., Path]:
    """Build a taxon archive with a vernacular name extension.

    Rows default to ids 1, 2, 3 in the core and 1, 1, 3 in the extension.
    """

    def _make(
        taxa: List[str] = None,
        vernacular: List[str] = None,
        meta: str = TAXON_META,
        name: str = "dwca",
    ) -> Path:
        root = tmp_path / name
        root.mkdir()
        (root / "meta.xml").write_text(meta, encoding="utf-8")
        write_lines(root / "taxa.txt", taxa if taxa is not None else TAXA_ROWS)
        write_lines(root / "vernacular.txt", vernacular if vernacular is not None else VERNACULAR_ROWS)
        (root / "eml.xml").write_text("<eml><dataset><title>Trees</title></dataset></eml>", encoding="utf-8")
        return root

    return _make


@pytest.fixture
def star_archive_dir(make_archive) -> Path:
    return make_archive()
