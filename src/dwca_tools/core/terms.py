"""Terms and the term registry.

A term is a namespace-qualified column identifier such as
``http://rs.tdwg.org/dwc/terms/scientificName``. The registry resolves the
many spellings found in descriptors and header rows (qualified URI,
``dwc:scientificName``, bare ``scientificName``) to one canonical ``Term``.

Registries are immutable lookup tables. They are built from YAML vocabularies
and passed explicitly to the parser, loader and writer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

import yaml

from dwca_tools.config import load_yaml_config
from dwca_tools.core.errors import UnsupportedArchiveError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Term:
    """A namespace-qualified field identifier.

    Attributes:
        qualified_name: Full identifier, compared for equality and hashing.
        simple_name: Local name, used for file names and header rows.
        prefix: Short namespace prefix (e.g. "dwc") when known.
        namespace: Namespace URI when known.
    """

    qualified_name: str
    simple_name: str = field(default="", compare=False)
    prefix: Optional[str] = field(default=None, compare=False)
    namespace: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.qualified_name:
            raise ValueError("A term requires a qualified name")
        if not self.simple_name:
            object.__setattr__(self, "simple_name", _split_uri(self.qualified_name)[1])

    @property
    def prefixed_name(self) -> str:
        if self.prefix:
            return f"{self.prefix}:{self.simple_name}"
        return self.simple_name

    @classmethod
    def from_uri(cls, uri: str) -> "Term":
        """Build an ad-hoc term from a URI, splitting at the last ``/`` or ``#``."""
        namespace, simple = _split_uri(uri)
        return cls(qualified_name=uri, simple_name=simple, namespace=namespace or None)

    def __str__(self) -> str:
        return self.qualified_name


# Column identifier used when an id element does not name a term
ID_TERM = Term(qualified_name="ARCHIVE_RECORD_ID", simple_name="id")


def _split_uri(uri: str) -> tuple[str, str]:
    cut = max(uri.rfind("/"), uri.rfind("#"))
    if cut < 0 or cut == len(uri) - 1:
        return "", uri
    return uri[: cut + 1], uri[cut + 1 :]


def _is_uri(value: str) -> bool:
    return "://" in value or value.lower().startswith("urn:")


class TermRegistry:
    """Immutable lookup table from term spellings to canonical terms."""

    def __init__(self, terms: Iterable[Term], prefixes: Optional[Mapping[str, str]] = None) -> None:
        """Build a registry from terms and a prefix → namespace URI mapping."""
        by_qualified: Dict[str, Term] = {}
        by_simple: Dict[str, Term] = {}
        by_simple_ci: Dict[str, Term] = {}
        for term in terms:
            if term.qualified_name in by_qualified:
                continue
            by_qualified[term.qualified_name] = term
            by_simple.setdefault(term.simple_name, term)
            by_simple_ci.setdefault(term.simple_name.lower(), term)
        self._by_qualified = MappingProxyType(by_qualified)
        self._by_simple = MappingProxyType(by_simple)
        self._by_simple_ci = MappingProxyType(by_simple_ci)
        self._prefixes = MappingProxyType({k.lower(): v for k, v in (prefixes or {}).items()})

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, data: Mapping[str, Any]) -> "TermRegistry":
        """Build a registry from a parsed vocabulary document.

        The document holds a ``namespaces`` list; each entry names a
        ``prefix``, optional ``aliases``, the namespace ``uri`` and its
        ``terms`` (simple names).
        """
        terms: List[Term] = []
        prefixes: Dict[str, str] = {}
        for ns in data.get("namespaces", []) or []:
            uri = str(ns.get("uri", ""))
            prefix = ns.get("prefix")
            if not uri:
                logger.warning("Skipping vocabulary namespace without uri: %s", prefix)
                continue
            if prefix:
                prefixes[str(prefix)] = uri
            for alias in ns.get("aliases", []) or []:
                prefixes[str(alias)] = uri
            for simple in ns.get("terms", []) or []:
                simple = str(simple)
                terms.append(
                    Term(
                        qualified_name=uri + simple,
                        simple_name=simple,
                        prefix=str(prefix) if prefix else None,
                        namespace=uri,
                    )
                )
        return cls(terms, prefixes)

    @classmethod
    def from_yaml(cls, path: Path, base: Optional["TermRegistry"] = None) -> "TermRegistry":
        """Load a vocabulary YAML file, optionally layered over a base registry.

        Terms of the base registry take precedence over same-named new ones.
        """
        loaded = cls.from_config(load_yaml_config(path))
        if base is None:
            return loaded
        return base.merged(loaded)

    @classmethod
    def default(cls) -> "TermRegistry":
        """Return the registry of the built-in vocabulary shipped with the package."""
        text = resources.files("dwca_tools").joinpath("data/terms.yaml").read_text(encoding="utf-8")
        return cls.from_config(yaml.safe_load(text) or {})

    def merged(self, other: "TermRegistry") -> "TermRegistry":
        prefixes = dict(other._prefixes)
        prefixes.update(self._prefixes)
        return TermRegistry(list(self) + list(other), prefixes)

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------

    def find(self, name: Optional[str], strict: bool = False) -> Optional[Term]:
        """Resolve a term spelling to a canonical term.

        Args:
            name: Qualified name, ``prefix:simple`` name or bare simple name.
            strict: If True, a bare name unknown to the registry is an error
                instead of becoming an unqualified ad-hoc term.

        Returns:
            The resolved term, or None for blank input when not strict.

        Raises:
            UnsupportedArchiveError: If strict and the name cannot be resolved.

        Examples:
            >>> reg = TermRegistry.default()
            >>> reg.find("dwc:scientificName").qualified_name
            'http://rs.tdwg.org/dwc/terms/scientificName'
            >>> reg.find("scientificname").simple_name
            'scientificName'
        """
        value = (name or "").strip()
        if not value:
            if strict:
                raise UnsupportedArchiveError("Cannot resolve a blank term name")
            return None

        term = self._by_qualified.get(value)
        if term is not None:
            return term

        if _is_uri(value):
            return Term.from_uri(value)

        if ":" in value:
            prefix, simple = value.split(":", 1)
            uri = self._prefixes.get(prefix.lower())
            if uri is not None:
                known = self._by_qualified.get(uri + simple)
                if known is not None:
                    return known
                return Term(qualified_name=uri + simple, simple_name=simple, prefix=prefix, namespace=uri)

        term = self._by_simple.get(value) or self._by_simple_ci.get(value.lower())
        if term is not None:
            return term

        if strict:
            raise UnsupportedArchiveError(f"Unknown term >>>{value}<<<")
        return Term(qualified_name=value, simple_name=value)

    def __contains__(self, qualified_name: object) -> bool:
        return qualified_name in self._by_qualified

    def __iter__(self) -> Iterator[Term]:
        return iter(self._by_qualified.values())

    def __len__(self) -> int:
        return len(self._by_qualified)

    @property
    def prefixes(self) -> Mapping[str, str]:
        return self._prefixes


__all__ = ["Term", "TermRegistry", "ID_TERM"]
