from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List

from .errors import ComponentDirectoryMissing

logger = logging.getLogger(__name__)

# Entries in the dotfiles root that are never components.
_NON_COMPONENT_NAMES = {"install.sh", "update.sh", "README.md", "TODO.txt"}


@dataclass(frozen=True)
class ConfigMapping:
    component: str
    source: Path
    target: Path


def target_for(relative: str | PurePosixPath, home: Path) -> Path:
    """Deployment target for a file at ``relative`` inside a component tree.

    ``.config/...`` and any other dotfile path land at the same relative path
    under ``home``; everything else lands under ``home/.config``.
    """

    rel = PurePosixPath(relative)
    if rel.parts and rel.parts[0].startswith("."):
        return Path(home, *rel.parts)
    return Path(home, ".config", *rel.parts)


def discover(component: str, component_root: str | Path, home: str | Path) -> List[ConfigMapping]:
    """List a mapping for every regular file below ``component_root``."""

    root = Path(os.path.abspath(component_root))
    if not root.is_dir():
        raise ComponentDirectoryMissing(component, str(root))

    home_path = Path(home)
    out: List[ConfigMapping] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for fname in sorted(filenames):
            src = Path(dirpath) / fname
            if src.is_symlink() or not src.is_file():
                continue
            rel = PurePosixPath(src.relative_to(root).as_posix())
            out.append(ConfigMapping(component=component, source=src, target=target_for(rel, home_path)))

    logger.debug("Component %s: %d configuration files", component, len(out))
    return out


def discover_components(dotfiles_dir: str | Path) -> List[str]:
    """Names of the component directories present in the dotfiles tree."""

    d = Path(dotfiles_dir)
    if not d.is_dir():
        raise ComponentDirectoryMissing("", str(d))
    names: List[str] = []
    for child in sorted(d.iterdir(), key=lambda c: c.name):
        if not child.is_dir() or child.name.startswith("."):
            continue
        if child.name in _NON_COMPONENT_NAMES or child.name.startswith("pkglist-"):
            continue
        names.append(child.name)
    return names


def component_dir(dotfiles_dir: str | Path, component: str) -> Path:
    return Path(dotfiles_dir) / component
