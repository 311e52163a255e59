from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Set, Tuple

from .catalog import Catalog
from .errors import CircularDependencyError, UnknownComponentError
from .resolver import resolve

logger = logging.getLogger(__name__)


class ConflictReason(str, Enum):
    DECLARED = "declared-conflict"
    CATEGORY = "category-exclusion"


@dataclass(frozen=True)
class Conflict:
    first: str
    second: str
    reason: ConflictReason
    category: str | None = None

    def describe(self) -> str:
        if self.reason is ConflictReason.CATEGORY:
            return f"{self.first} <-> {self.second} (category: {self.category})"
        return f"{self.first} <-> {self.second}"


@dataclass(frozen=True)
class ConflictReport:
    conflicts: Tuple[Conflict, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.conflicts)

    def __len__(self) -> int:
        return len(self.conflicts)

    def __iter__(self):
        return iter(self.conflicts)

    def involving(self, name: str) -> List[Conflict]:
        return [c for c in self.conflicts if name in (c.first, c.second)]


def detect_conflicts(catalog: Catalog, components: Iterable[str]) -> ConflictReport:
    """Find declared and category-exclusion conflicts inside a component set.

    Declared conflicts are checked in both directions, so a conflict listed on
    only one side is still reported. Each unordered pair is reported at most
    once per reason. Names absent from the catalog are ignored.
    """

    members = [n for n in dict.fromkeys(components) if n in catalog]
    member_set = set(members)
    seen: Set[Tuple[frozenset, ConflictReason]] = set()
    found: List[Conflict] = []

    def _record(a: str, b: str, reason: ConflictReason, category: str | None = None) -> None:
        key = (frozenset((a, b)), reason)
        if key in seen:
            return
        seen.add(key)
        found.append(Conflict(a, b, reason, category))
        if reason is ConflictReason.CATEGORY:
            logger.warning(
                "Category conflict: %s and %s are both in mutually exclusive category '%s'", a, b, category
            )
        else:
            logger.warning("Conflict detected: %s conflicts with %s", a, b)

    for name in members:
        for other in catalog.get(name).conflicts:
            if other != name and other in member_set:
                _record(name, other, ConflictReason.DECLARED)

    by_category: Dict[str, List[str]] = {}
    for name in members:
        category = catalog.get(name).category
        if catalog.is_exclusive(category):
            by_category.setdefault(str(category), []).append(name)
    for category, names in by_category.items():
        for i, a in enumerate(names):
            for b in names[i + 1:]:
                _record(a, b, ConflictReason.CATEGORY, category)

    if found:
        logger.warning("Found %d conflict(s)", len(found))
    else:
        logger.info("No conflicts detected")
    return ConflictReport(conflicts=tuple(found))


@dataclass
class ValidationReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_catalog(catalog: Catalog) -> ValidationReport:
    """Static checks over the whole catalog (used by ``dotstrap validate``)."""

    report = ValidationReport()

    for comp in catalog:
        for dep in comp.dependencies:
            if dep not in catalog:
                report.errors.append(f"Component '{comp.name}' has invalid dependency: '{dep}'")
        for other in comp.conflicts:
            if other not in catalog:
                report.errors.append(f"Component '{comp.name}' has invalid conflict: '{other}'")
            elif comp.name not in catalog.get(other).conflicts:
                report.warnings.append(
                    f"Component '{comp.name}' conflicts with '{other}', "
                    f"but '{other}' doesn't list '{comp.name}' as a conflict"
                )
        if comp.category and comp.category not in catalog.categories:
            report.warnings.append(f"Component '{comp.name}' uses undeclared category '{comp.category}'")

    for preset in catalog.presets.values():
        for name in preset.components:
            if name not in catalog:
                report.errors.append(f"Preset '{preset.name}' references unknown component: '{name}'")

    cycles: Set[frozenset] = set()
    for comp in catalog:
        try:
            resolve(catalog, [comp.name])
        except CircularDependencyError as e:
            key = frozenset(e.path or [e.name])
            if key not in cycles:
                cycles.add(key)
                report.errors.append(str(e))
        except UnknownComponentError:
            # Already reported above.
            continue

    for msg in report.warnings:
        logger.warning(msg)
    for msg in report.errors:
        logger.error(msg)
    return report
