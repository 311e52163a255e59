"""Tests for dotstrap.catalog: loading and querying the component catalog."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dotstrap.catalog import catalog_from_dict, load_catalog
from dotstrap.conflicts import validate_catalog
from dotstrap.errors import (
    MetadataMalformed,
    MetadataUnreadable,
    UnknownComponentError,
    UnknownPresetError,
)

SHIPPED_CATALOG = Path(__file__).resolve().parents[1] / "manifests" / "components.yaml"


class TestLoadCatalog:
    def test_yaml_document(self, tmp_path):
        p = tmp_path / "components.yaml"
        p.write_text(
            "categories:\n"
            "  terminal: {mutually_exclusive: true}\n"
            "components:\n"
            "  kitty:\n"
            "    name: Kitty\n"
            "    description: GPU terminal\n"
            "    category: terminal\n"
            "    dependencies: [fonts]\n"
            "    options: [default, minimal]\n"
            "    packages: {arch: [kitty]}\n"
            "  fonts: {}\n",
            encoding="utf-8",
        )
        catalog = load_catalog(p)

        assert len(catalog) == 2
        kitty = catalog.get("kitty")
        assert kitty.display_name == "Kitty"
        assert kitty.dependencies == ("fonts",)
        assert kitty.options == ("default", "minimal")
        assert kitty.packages_for("arch") == ["kitty"]
        assert kitty.packages_for("ubuntu") == []
        assert catalog.is_exclusive("terminal")
        assert catalog.source == str(p)

    def test_json_document(self, tmp_path):
        p = tmp_path / "components.json"
        p.write_text(json.dumps({"components": {"zsh": {"description": "shell"}}}), encoding="utf-8")
        assert load_catalog(p).names() == ["zsh"]

    def test_unknown_suffix_is_read_as_json(self, tmp_path):
        p = tmp_path / "components.catalog"
        p.write_text(json.dumps({"zsh": {}}), encoding="utf-8")
        assert "zsh" in load_catalog(p)

    def test_missing_file_is_unreadable(self, tmp_path):
        with pytest.raises(MetadataUnreadable):
            load_catalog(tmp_path / "nope.yaml")

    def test_invalid_yaml_is_malformed(self, tmp_path):
        p = tmp_path / "bad.yaml"
        p.write_text("components: [unclosed\n", encoding="utf-8")
        with pytest.raises(MetadataMalformed):
            load_catalog(p)

    def test_invalid_json_is_malformed(self, tmp_path):
        p = tmp_path / "bad.json"
        p.write_text("{not json", encoding="utf-8")
        with pytest.raises(MetadataMalformed):
            load_catalog(p)

    def test_invalid_utf8_is_malformed(self, tmp_path):
        p = tmp_path / "bad.json"
        p.write_bytes(b'{"a": {"description": "\xff\xfe"}}')
        with pytest.raises(MetadataMalformed, match="not valid UTF-8"):
            load_catalog(p)

    def test_shipped_catalog_is_valid(self):
        catalog = load_catalog(SHIPPED_CATALOG)
        report = validate_catalog(catalog)

        assert report.ok, report.errors
        assert "kitty" in catalog
        for preset in catalog.presets:
            assert catalog.preset_components(preset)


class TestCatalogFromDict:
    def test_bare_mapping_without_components_key(self):
        catalog = catalog_from_dict({"a": {}, "b": {"dependencies": ["a"]}, "categories": {}})
        assert catalog.names() == ["a", "b"]

    def test_defaults(self):
        comp = catalog_from_dict({"components": {"a": None}}).get("a")
        assert comp.description == "No description available"
        assert comp.display_name == "a"
        assert comp.dependencies == ()
        assert comp.category is None

    def test_duplicate_list_entries_are_dropped(self):
        comp = catalog_from_dict({"a": {"dependencies": ["b", "b", "c"]}}).get("a")
        assert comp.dependencies == ("b", "c")

    def test_dangling_references_are_not_rejected_at_load(self):
        catalog = catalog_from_dict({"a": {"dependencies": ["ghost"], "conflicts": ["phantom"]}})
        assert catalog.get("a").dependencies == ("ghost",)

    @pytest.mark.parametrize(
        "doc",
        [
            ["not", "a", "mapping"],
            {"components": ["a", "b"]},
            {"a": {"dependencies": "b"}},
            {"a": {"packages": ["kitty"]}},
            {"a": "just a string"},
            {"components": {}, "presets": {"p": {"components": "a"}}},
        ],
    )
    def test_malformed_documents(self, doc):
        with pytest.raises(MetadataMalformed):
            catalog_from_dict(doc)


class TestCatalogQueries:
    def test_get_unknown(self, desktop_catalog):
        with pytest.raises(UnknownComponentError) as exc:
            desktop_catalog.get("emacs")
        assert exc.value.name == "emacs"

    def test_iteration_yields_components(self, desktop_catalog):
        assert {c.name for c in desktop_catalog} == set(desktop_catalog.names())

    def test_non_exclusive_and_missing_categories(self, desktop_catalog):
        assert not desktop_catalog.is_exclusive("shell")
        assert not desktop_catalog.is_exclusive("undeclared")
        assert not desktop_catalog.is_exclusive(None)

    def test_presets(self, desktop_catalog):
        assert desktop_catalog.preset_components("minimal") == ["zsh", "kitty"]
        with pytest.raises(UnknownPresetError):
            desktop_catalog.preset_components("maximal")
