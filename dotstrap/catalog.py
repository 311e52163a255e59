"""Component catalog: the read-only metadata store.

The catalog document (JSON or YAML) looks like::

    components:
      kitty:
        description: GPU terminal
        dependencies: [fonts]
        conflicts: [alacritty]
        category: terminal
        options: [default, minimal]
        packages: {arch: [kitty], ubuntu: [kitty]}
        services: []
    categories:
      terminal: {mutually_exclusive: true}
    presets:
      minimal: {name: Minimal, description: ..., components: [kitty, zsh]}

A bare mapping of component name -> definition (no ``components`` key) is also
accepted. Dangling dependency/conflict references are not rejected here; the
resolver and validate_catalog() report them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import MetadataMalformed, MetadataUnreadable, UnknownComponentError, UnknownPresetError
from .state_store import detect_format

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Component:
    name: str
    description: str = ""
    display_name: str = ""
    dependencies: Tuple[str, ...] = ()
    conflicts: Tuple[str, ...] = ()
    category: Optional[str] = None
    options: Tuple[str, ...] = ()
    packages: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    services: Tuple[str, ...] = ()

    def packages_for(self, distro: str) -> List[str]:
        return list(self.packages.get(distro, ()))


@dataclass(frozen=True)
class Category:
    name: str
    mutually_exclusive: bool = False
    description: str = ""


@dataclass(frozen=True)
class Preset:
    name: str
    display_name: str = ""
    description: str = ""
    components: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Catalog:
    components: Mapping[str, Component]
    categories: Mapping[str, Category] = field(default_factory=dict)
    presets: Mapping[str, Preset] = field(default_factory=dict)
    source: Optional[str] = None

    def __contains__(self, name: object) -> bool:
        return name in self.components

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components.values())

    def __len__(self) -> int:
        return len(self.components)

    def names(self) -> List[str]:
        return sorted(self.components)

    def get(self, name: str) -> Component:
        try:
            return self.components[name]
        except KeyError:
            raise UnknownComponentError(name) from None

    def is_exclusive(self, category: Optional[str]) -> bool:
        if not category:
            return False
        cat = self.categories.get(category)
        return bool(cat and cat.mutually_exclusive)

    def preset_components(self, preset: str) -> List[str]:
        try:
            return list(self.presets[preset].components)
        except KeyError:
            raise UnknownPresetError(preset) from None


def _str_list(value: Any, *, where: str, source: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise MetadataMalformed(source, f"{where} must be a list of strings")
    out: List[str] = []
    for item in value:
        s = str(item).strip()
        if s and s not in out:
            out.append(s)
    return tuple(out)


def _parse_component(name: str, raw: Any, *, source: str) -> Component:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise MetadataMalformed(source, f"component '{name}' must be a mapping")

    packages_raw = raw.get("packages") or {}
    if not isinstance(packages_raw, dict):
        raise MetadataMalformed(source, f"component '{name}': packages must map distro -> list")
    packages = {
        str(distro): _str_list(pkgs, where=f"component '{name}' packages.{distro}", source=source)
        for distro, pkgs in packages_raw.items()
    }

    category = raw.get("category")
    return Component(
        name=name,
        description=str(raw.get("description") or "No description available"),
        display_name=str(raw.get("name") or name),
        dependencies=_str_list(raw.get("dependencies"), where=f"component '{name}' dependencies", source=source),
        conflicts=_str_list(raw.get("conflicts"), where=f"component '{name}' conflicts", source=source),
        category=str(category).strip() or None if category is not None else None,
        options=_str_list(raw.get("options"), where=f"component '{name}' options", source=source),
        packages=packages,
        services=_str_list(raw.get("services"), where=f"component '{name}' services", source=source),
    )


def catalog_from_dict(data: Any, *, source: str = "<memory>") -> Catalog:
    """Build a Catalog from an already-parsed document."""

    if not isinstance(data, dict):
        raise MetadataMalformed(source, "document must be a mapping/dict")

    if "components" in data:
        comps_raw = data.get("components") or {}
    else:
        comps_raw = {k: v for k, v in data.items() if k not in {"categories", "presets"}}
    if not isinstance(comps_raw, dict):
        raise MetadataMalformed(source, "components must be a mapping")

    components = {str(n): _parse_component(str(n), raw, source=source) for n, raw in comps_raw.items()}

    cats_raw = data.get("categories") or {}
    if not isinstance(cats_raw, dict):
        raise MetadataMalformed(source, "categories must be a mapping")
    categories: Dict[str, Category] = {}
    for cname, craw in cats_raw.items():
        craw = craw or {}
        if not isinstance(craw, dict):
            raise MetadataMalformed(source, f"category '{cname}' must be a mapping")
        categories[str(cname)] = Category(
            name=str(cname),
            mutually_exclusive=bool(craw.get("mutually_exclusive", False)),
            description=str(craw.get("description") or ""),
        )

    presets_raw = data.get("presets") or {}
    if not isinstance(presets_raw, dict):
        raise MetadataMalformed(source, "presets must be a mapping")
    presets: Dict[str, Preset] = {}
    for pname, praw in presets_raw.items():
        praw = praw or {}
        if not isinstance(praw, dict):
            raise MetadataMalformed(source, f"preset '{pname}' must be a mapping")
        presets[str(pname)] = Preset(
            name=str(pname),
            display_name=str(praw.get("name") or pname),
            description=str(praw.get("description") or ""),
            components=_str_list(praw.get("components"), where=f"preset '{pname}' components", source=source),
        )

    return Catalog(components=components, categories=categories, presets=presets, source=source)


def load_catalog(path: str | Path) -> Catalog:
    """Load the component catalog from a JSON or YAML file."""

    p = Path(path)
    source = str(p)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise MetadataUnreadable(source, e.strerror or str(e)) from e
    except UnicodeDecodeError as e:
        raise MetadataMalformed(source, f"not valid UTF-8: {e}") from e

    fmt = detect_format(p)
    if fmt in {"yaml", "yml"}:
        import yaml

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MetadataMalformed(source, f"invalid YAML: {e}") from e
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MetadataMalformed(source, f"invalid JSON: {e}") from e

    catalog = catalog_from_dict(data, source=source)
    logger.info("Loaded %d components from %s", len(catalog), source)
    return catalog
