"""Tests for dotstrap.resolver: dependency closure and cycle detection."""

from __future__ import annotations

import pytest

from dotstrap.errors import CircularDependencyError, UnknownComponentError
from dotstrap.resolver import resolve


@pytest.fixture
def chain(make_catalog):
    return make_catalog({"A": {"dependencies": [], "conflicts": []}, "B": {"dependencies": ["A"]}, "C": {"dependencies": ["B"]}})


def _before(order, first, second):
    return order.index(first) < order.index(second)


class TestResolve:
    def test_transitive_chain(self, chain):
        result = resolve(chain, ["C"])

        assert result.resolved_set == {"A", "B", "C"}
        assert set(result.added) == {"A", "B"}
        assert result.was_selected("C")
        assert not result.was_selected("A")
        assert _before(result.resolved, "A", "B")
        assert _before(result.resolved, "B", "C")

    def test_selected_dependency_is_not_reported_as_added(self, chain):
        result = resolve(chain, ["C", "A"])
        assert result.added == ("B",)

    def test_duplicate_selection(self, chain):
        result = resolve(chain, ["A", "A"])
        assert result.resolved == ("A",)
        assert result.selected == ("A",)

    def test_empty_selection(self, chain):
        result = resolve(chain, [])
        assert result.resolved == ()
        assert result.added == ()

    def test_diamond_resolves_shared_dependency_once(self, make_catalog):
        catalog = make_catalog(
            {
                "base": {},
                "left": {"dependencies": ["base"]},
                "right": {"dependencies": ["base"]},
                "top": {"dependencies": ["left", "right"]},
            }
        )
        result = resolve(catalog, ["top"])

        assert sorted(result.resolved) == ["base", "left", "right", "top"]
        assert result.resolved.count("base") == 1
        assert result.resolved[-1] == "top"

    def test_idempotent(self, desktop_catalog):
        first = resolve(desktop_catalog, ["kitty", "zsh"])
        second = resolve(desktop_catalog, list(first.resolved))

        assert second.resolved_set == first.resolved_set
        assert second.added == ()


class TestResolveErrors:
    def test_mutual_cycle(self, make_catalog):
        catalog = make_catalog({"X": {"dependencies": ["Y"]}, "Y": {"dependencies": ["X"]}})

        with pytest.raises(CircularDependencyError) as exc:
            resolve(catalog, ["X"])

        assert exc.value.name == "X"
        assert exc.value.path == ["X", "Y"]
        assert "X -> Y -> X" in str(exc.value)

    def test_self_cycle(self, make_catalog):
        catalog = make_catalog({"S": {"dependencies": ["S"]}})
        with pytest.raises(CircularDependencyError):
            resolve(catalog, ["S"])

    def test_cycle_below_selection(self, make_catalog):
        catalog = make_catalog(
            {"app": {"dependencies": ["lib"]}, "lib": {"dependencies": ["util"]}, "util": {"dependencies": ["lib"]}}
        )
        with pytest.raises(CircularDependencyError) as exc:
            resolve(catalog, ["app"])
        assert exc.value.path == ["lib", "util"]

    def test_unknown_selected_component(self, chain):
        with pytest.raises(UnknownComponentError) as exc:
            resolve(chain, ["Z"])
        assert exc.value.name == "Z"
        assert exc.value.required_by is None

    def test_unknown_dependency(self, make_catalog):
        catalog = make_catalog({"A": {"dependencies": ["missing"]}})
        with pytest.raises(UnknownComponentError) as exc:
            resolve(catalog, ["A"])
        assert exc.value.name == "missing"
        assert exc.value.required_by == "A"
        assert "referenced by 'A'" in str(exc.value)

    def test_unknown_conflict_reference(self, make_catalog):
        catalog = make_catalog({"A": {"conflicts": ["ghost"]}})
        with pytest.raises(UnknownComponentError) as exc:
            resolve(catalog, ["A"])
        assert exc.value.name == "ghost"
