"""Crate dependency descriptors and the dependency manifest.

A `CrateDep` names one external library that the code generated for a node
requires. Its textual form mirrors a single manifest entry::

    name = source

where `source` is an uninterpreted TOML value such as `"0.10"` or
`{ git = "https://github.com/foo/bar", branch = "main" }`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Self

import tomlkit
from pydantic import BaseModel, ConfigDict
from tomlkit import TOMLDocument
from tomlkit.container import OutOfOrderTableProxy
from tomlkit.exceptions import ParseError
from tomlkit.items import Item, Table

from ._errors import ManifestError, ParseCrateDepError

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_TABLE = "dependencies"


class CrateDep(BaseModel):
    """Describes a library dependency required by a node's generated code.

    Attributes:
        name: The name of the library, i.e. the left-hand side of a manifest
            entry (e.g. ``"foo"``).
        source: The source of the library, i.e. the right-hand side of a
            manifest entry. This is kept as opaque text (e.g. ``"0.10"`` or
            ``{ git = "https://github.com/foo/bar" }``).

    """

    model_config = ConfigDict(frozen=True)

    name: str
    source: str

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parse a ``name = source`` string.

        The text is split on the first ``=``. Both sides are stripped of
        surrounding whitespace; the source is not validated further.

        Raises:
            ParseCrateDepError: If there is no ``=`` or the name is empty.

        Example:
            >>> CrateDep.parse("  bar   =   { x = 1 } ")
            CrateDep(name='bar', source='{ x = 1 }')

        """
        name, sep, source = text.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ParseCrateDepError
        return cls(name=name, source=source.strip())

    def __str__(self) -> str:
        return f"{self.name} = {self.source}"


def collect_crate_deps(dep_lists: Iterable[Iterable[CrateDep]]) -> frozenset[CrateDep]:
    """Aggregate dependency lists into a set, collapsing duplicates."""
    collected: set[CrateDep] = set()
    for deps in dep_lists:
        collected.update(deps)
    logger.debug("Collected %d unique crate dependencies", len(collected))
    return frozenset(collected)


def _source_item(dep: CrateDep) -> Item:
    """Parse the raw source text of a dependency into a TOML item."""
    try:
        parsed = tomlkit.parse(f"value = {dep.source}\n")
    except ParseError as e:
        msg = f"Source of dependency '{dep.name}' is not a TOML value: {dep.source!r}"
        raise ManifestError(msg) from e
    if list(parsed.keys()) != ["value"]:
        msg = f"Source of dependency '{dep.name}' is not a single TOML value: {dep.source!r}"
        raise ManifestError(msg)
    return parsed.item("value")


def _ensure_table(doc: TOMLDocument, keys: list[str]) -> TOMLDocument | Table | OutOfOrderTableProxy:
    """Navigate to the table at `keys`, creating tables as needed."""
    current: TOMLDocument | Table | OutOfOrderTableProxy = doc
    for i, key in enumerate(keys):
        if key not in current:
            is_last = i == len(keys) - 1
            current[key] = tomlkit.table(is_super_table=not is_last)
        next_val = current[key]
        if not isinstance(next_val, (Table, OutOfOrderTableProxy)):
            msg = f"Expected a table at '{'.'.join(keys[: i + 1])}', got {type(next_val).__name__}"
            raise ManifestError(msg)
        current = next_val
    return current


def render_manifest(
    deps: Iterable[CrateDep],
    doc: TOMLDocument | None = None,
    table: str = DEFAULT_MANIFEST_TABLE,
) -> TOMLDocument:
    r"""Write dependencies into a manifest document.

    Existing entries with the same name are replaced in place, and every other
    part of `doc` (including comments) is left unchanged. New entries are added
    in name order.

    Args:
        deps: The dependencies to write. Equal duplicates are ignored.
        doc: An existing document to update. A new one is created if None.
        table: Dotted path of the table holding the dependencies.

    Returns:
        The updated document (the same object as `doc` when given).

    Raises:
        ManifestError: If a source is not a TOML value, two dependencies share
            a name but not a source, or the table path is occupied by a value.

    Example:
        >>> doc = render_manifest([CrateDep.parse('foo = "0.10"')])
        >>> tomlkit.dumps(doc)
        '[dependencies]\nfoo = "0.10"\n'

    """
    if doc is None:
        doc = tomlkit.document()

    sources: dict[str, CrateDep] = {}
    for dep in sorted(set(deps), key=lambda d: (d.name, d.source)):
        existing = sources.get(dep.name)
        if existing is not None:
            msg = f"Conflicting sources for dependency '{dep.name}': {existing.source!r} and {dep.source!r}"
            raise ManifestError(msg)
        sources[dep.name] = dep

    container = _ensure_table(doc, table.split("."))
    for name, dep in sources.items():
        container[name] = _source_item(dep)
    logger.debug("Rendered %d dependencies into [%s]", len(sources), table)
    return doc
