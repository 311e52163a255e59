"""Shared test fixtures for dotstrap tests."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

from dotstrap.backup import BackupManager
from dotstrap.catalog import Catalog, catalog_from_dict
from dotstrap.executor import FilesystemExecutor

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0)


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Create ``files`` (relative path -> content) below ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def home(tmp_path) -> Path:
    """An empty home directory."""
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def make_catalog() -> Callable[[Dict[str, Any]], Catalog]:
    """Build a Catalog from a plain dict document."""

    def _make(data: Dict[str, Any]) -> Catalog:
        return catalog_from_dict(data, source="<test>")

    return _make


@pytest.fixture
def desktop_catalog(make_catalog) -> Catalog:
    """Small catalog with a dependency chain, a declared conflict and an exclusive category."""
    return make_catalog(
        {
            "categories": {
                "terminal": {"mutually_exclusive": True},
                "shell": {"mutually_exclusive": False},
            },
            "components": {
                "fonts": {"description": "Fonts"},
                "kitty": {
                    "description": "Kitty terminal",
                    "category": "terminal",
                    "dependencies": ["fonts"],
                    "conflicts": ["alacritty"],
                    "packages": {"arch": ["kitty"], "ubuntu": ["kitty"]},
                },
                "alacritty": {
                    "description": "Alacritty terminal",
                    "category": "terminal",
                    "dependencies": ["fonts"],
                },
                "zsh": {
                    "description": "Z shell",
                    "category": "shell",
                    "packages": {"arch": ["zsh", "zsh-completions"], "ubuntu": ["zsh"]},
                },
                "docker": {
                    "description": "Container runtime",
                    "services": ["docker.service"],
                    "packages": {"arch": ["docker"], "arch_aur": ["lazydocker"]},
                },
            },
            "presets": {"minimal": {"name": "Minimal", "components": ["zsh", "kitty"]}},
        }
    )


@pytest.fixture
def dotfiles(tmp_path) -> Path:
    """Dotfiles tree with one directory per component."""
    root = tmp_path / "dotfiles"
    write_tree(
        root,
        {
            "kitty/.config/kitty/kitty.conf": "font_size 11\n",
            "zsh/.zshrc": "export EDITOR=nvim\n",
            "fonts/fontconfig/fonts.conf": "<fontconfig/>\n",
        },
    )
    (root / "alacritty").mkdir()
    return root


@pytest.fixture
def backups(home) -> BackupManager:
    """BackupManager writing to the real filesystem with a fixed clock."""
    return BackupManager(
        home / ".config" / "install-backups",
        home,
        FilesystemExecutor(),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def tree() -> Callable[[Path, Dict[str, str]], Path]:
    return write_tree
