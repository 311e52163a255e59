from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .catalog import Catalog
from .errors import CircularDependencyError, UnknownComponentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of a successful dependency resolution.

    ``resolved`` lists every component to install, dependencies before their
    dependents. ``added`` is the subset pulled in only as a dependency; it is
    kept for reporting and carries no other meaning.
    """

    selected: Tuple[str, ...]
    resolved: Tuple[str, ...]
    added: Tuple[str, ...]

    @property
    def resolved_set(self) -> frozenset:
        return frozenset(self.resolved)

    def was_selected(self, name: str) -> bool:
        return name in self.selected


def _dedup(names: Iterable[str]) -> List[str]:
    out: List[str] = []
    for n in names:
        if n not in out:
            out.append(n)
    return out


def _resolve_one(
    catalog: Catalog,
    name: str,
    resolved: List[str],
    in_progress: List[str],
    required_by: Optional[str],
) -> None:
    if name in resolved:
        return
    if name in in_progress:
        idx = in_progress.index(name)
        raise CircularDependencyError(name, in_progress[idx:])
    if name not in catalog:
        raise UnknownComponentError(name, required_by=required_by)

    component = catalog.get(name)
    for other in component.conflicts:
        if other not in catalog:
            raise UnknownComponentError(other, required_by=name)

    in_progress.append(name)
    for dep in component.dependencies:
        _resolve_one(catalog, dep, resolved, in_progress, name)
    in_progress.pop()
    resolved.append(name)


def resolve(catalog: Catalog, selected: Sequence[str]) -> ResolutionResult:
    """Compute the dependency closure of ``selected``.

    Raises CircularDependencyError or UnknownComponentError; nothing partial is
    returned on failure.
    """

    user_selected = _dedup(selected)
    logger.info("Resolving dependencies for components: %s", " ".join(user_selected) or "(none)")

    resolved: List[str] = []
    queue = deque(user_selected)
    while queue:
        name = queue.popleft()
        if name in resolved:
            continue
        _resolve_one(catalog, name, resolved, [], None)

    added = tuple(n for n in resolved if n not in user_selected)
    for dep in added:
        logger.info("Added dependency: %s", dep)

    logger.info("Dependency resolution complete. Final component list: %s", " ".join(resolved))
    return ResolutionResult(selected=tuple(user_selected), resolved=tuple(resolved), added=added)
