"""Tests for crate dependency descriptors and the dependency manifest."""

import pytest
import tomlkit
from pydantic import ValidationError

from nodeweave import CrateDep, ManifestError, ParseCrateDepError, collect_crate_deps, render_manifest

# =============================================================================
# Tests for CrateDep.parse
# =============================================================================


def test_parse_version() -> None:
    dep = CrateDep.parse("foo = 0.10")
    assert dep == CrateDep(name="foo", source="0.10")


def test_parse_trims_and_keeps_nested_equals() -> None:
    dep = CrateDep.parse("  bar   =   { x = 1 } ")
    assert dep.name == "bar"
    assert dep.source == "{ x = 1 }"


def test_parse_git_source() -> None:
    dep = CrateDep.parse('baz = { git = "https://github.com/foo/baz", branch = "main" }')
    assert dep.name == "baz"
    assert dep.source == '{ git = "https://github.com/foo/baz", branch = "main" }'


def test_parse_without_equals_fails() -> None:
    with pytest.raises(ParseCrateDepError):
        CrateDep.parse("nouture")


def test_parse_without_name_fails() -> None:
    with pytest.raises(ParseCrateDepError):
        CrateDep.parse("   = 0.10")


def test_parse_empty_source_is_not_validated() -> None:
    assert CrateDep.parse("foo =") == CrateDep(name="foo", source="")


def test_parse_error_is_a_value_error() -> None:
    assert issubclass(ParseCrateDepError, ValueError)


def test_str_is_manifest_entry() -> None:
    dep = CrateDep(name="foo", source='"0.10"')
    assert str(dep) == 'foo = "0.10"'
    assert CrateDep.parse(str(dep)) == dep


def test_crate_dep_is_frozen_and_hashable() -> None:
    dep = CrateDep(name="foo", source="1")
    with pytest.raises(ValidationError):
        dep.name = "bar"  # type: ignore[misc]
    assert hash(dep) == hash(CrateDep(name="foo", source="1"))


def test_crate_dep_serializes() -> None:
    dep = CrateDep(name="foo", source="1")
    assert CrateDep.model_validate_json(dep.model_dump_json()) == dep


# =============================================================================
# Tests for collect_crate_deps
# =============================================================================


def test_collect_collapses_duplicates() -> None:
    a1 = CrateDep(name="a", source="1")
    b2 = CrateDep(name="b", source="2")
    result = collect_crate_deps([[a1, b2, CrateDep(name="a", source="1")], [a1]])
    assert result == frozenset({a1, b2})


def test_collect_is_idempotent() -> None:
    deps = [CrateDep(name="a", source="1")]
    once = collect_crate_deps([deps])
    assert collect_crate_deps([once, once]) == once


def test_collect_empty() -> None:
    assert collect_crate_deps([]) == frozenset()


def test_collect_keeps_same_name_with_different_sources() -> None:
    result = collect_crate_deps([[CrateDep(name="a", source="1"), CrateDep(name="a", source="2")]])
    assert len(result) == 2


# =============================================================================
# Tests for render_manifest
# =============================================================================


class TestRenderManifest:
    """Tests for render_manifest function."""

    def test_new_document(self) -> None:
        deps = [CrateDep.parse('foo = "0.10"'), CrateDep.parse("bar = { version = \"1\" }")]
        doc = render_manifest(deps)
        data = doc.unwrap()
        assert data == {"dependencies": {"bar": {"version": "1"}, "foo": "0.10"}}

    def test_entries_sorted_by_name(self) -> None:
        deps = [CrateDep.parse('zeta = "1"'), CrateDep.parse('alpha = "2"')]
        result = tomlkit.dumps(render_manifest(deps))
        assert result.index("alpha") < result.index("zeta")

    def test_source_text_is_kept_verbatim(self) -> None:
        doc = render_manifest([CrateDep.parse("foo = '0.10'")])
        assert "foo = '0.10'" in tomlkit.dumps(doc)

    def test_structured_source(self) -> None:
        doc = render_manifest([CrateDep.parse('foo = { git = "https://example.com/foo", branch = "main" }')])
        assert doc.unwrap()["dependencies"]["foo"] == {"git": "https://example.com/foo", "branch": "main"}

    def test_duplicates_collapse(self) -> None:
        dep = CrateDep.parse('foo = "1"')
        doc = render_manifest([dep, dep])
        assert doc.unwrap() == {"dependencies": {"foo": "1"}}

    def test_conflicting_sources_rejected(self) -> None:
        deps = [CrateDep.parse('foo = "1"'), CrateDep.parse('foo = "2"')]
        with pytest.raises(ManifestError, match="Conflicting"):
            render_manifest(deps)

    def test_invalid_source_rejected(self) -> None:
        with pytest.raises(ManifestError, match="not a TOML value"):
            render_manifest([CrateDep.parse("foo = { x = ")])

    def test_multiple_values_in_source_rejected(self) -> None:
        with pytest.raises(ManifestError):
            render_manifest([CrateDep(name="foo", source='"1"\nbar = "2"')])

    def test_preserves_existing_comments(self) -> None:
        original = """\
# Generated program manifest
[project]
name = "generated"

[dependencies]
# pinned for reproducibility
numpy = "1.26"
"""
        doc = tomlkit.parse(original)
        render_manifest([CrateDep.parse('foo = "0.10"')], doc)
        result = tomlkit.dumps(doc)

        assert "# Generated program manifest" in result
        assert "# pinned for reproducibility" in result
        assert doc.unwrap()["dependencies"] == {"numpy": "1.26", "foo": "0.10"}

    def test_replaces_existing_entry(self) -> None:
        doc = tomlkit.parse('[dependencies]\nfoo = "0.9"\n')
        render_manifest([CrateDep.parse('foo = "0.10"')], doc)
        assert doc.unwrap() == {"dependencies": {"foo": "0.10"}}

    def test_nested_table(self) -> None:
        doc = render_manifest([CrateDep.parse('foo = "^1.0"')], table="tool.poetry.dependencies")
        assert doc.unwrap() == {"tool": {"poetry": {"dependencies": {"foo": "^1.0"}}}}

    def test_table_path_occupied_by_value(self) -> None:
        doc = tomlkit.parse('dependencies = "none"\n')
        with pytest.raises(ManifestError, match="Expected a table"):
            render_manifest([CrateDep.parse('foo = "1"')], doc)
