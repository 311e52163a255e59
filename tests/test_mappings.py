"""Tests for dotstrap.mappings: source file discovery and target paths."""

from __future__ import annotations

import os

import pytest

from dotstrap.errors import ComponentDirectoryMissing
from dotstrap.mappings import discover, discover_components, target_for


class TestTargetFor:
    @pytest.mark.parametrize(
        "relative, expected",
        [
            (".config/kitty/kitty.conf", ".config/kitty/kitty.conf"),
            (".zshrc", ".zshrc"),
            (".local/bin/tool", ".local/bin/tool"),
            ("readme.txt", ".config/readme.txt"),
            ("hypr/hyprland.conf", ".config/hypr/hyprland.conf"),
        ],
    )
    def test_convention(self, home, relative, expected):
        assert target_for(relative, home) == home / expected


class TestDiscover:
    def test_term_component(self, tmp_path, home, tree):
        root = tree(
            tmp_path / "dotfiles" / "term",
            {".config/kitty/kitty.conf": "a", ".zshrc": "b", "readme.txt": "c"},
        )
        mappings = discover("term", root, home)
        targets = {m.source.relative_to(root).as_posix(): m.target for m in mappings}

        assert targets == {
            ".config/kitty/kitty.conf": home / ".config" / "kitty" / "kitty.conf",
            ".zshrc": home / ".zshrc",
            "readme.txt": home / ".config" / "readme.txt",
        }
        assert all(m.component == "term" for m in mappings)
        assert all(m.source.is_absolute() for m in mappings)

    def test_empty_component(self, tmp_path, home):
        root = tmp_path / "empty"
        (root / "nested" / "dir").mkdir(parents=True)
        assert discover("empty", root, home) == []

    def test_missing_directory(self, tmp_path, home):
        with pytest.raises(ComponentDirectoryMissing) as exc:
            discover("ghost", tmp_path / "ghost", home)
        assert exc.value.component == "ghost"

    def test_symlinks_in_source_are_not_mapped(self, tmp_path, home, tree):
        root = tree(tmp_path / "comp", {"real.conf": "x"})
        os.symlink(root / "real.conf", root / "alias.conf")

        mappings = discover("comp", root, home)
        assert [m.source.name for m in mappings] == ["real.conf"]

    def test_order_is_stable(self, tmp_path, home, tree):
        root = tree(tmp_path / "comp", {"b.conf": "", "a.conf": "", "sub/c.conf": ""})
        names = [m.source.relative_to(root).as_posix() for m in discover("comp", root, home)]
        assert names == ["a.conf", "b.conf", "sub/c.conf"]


class TestDiscoverComponents:
    def test_skips_hidden_and_helper_entries(self, tmp_path, tree):
        root = tmp_path / "dotfiles"
        for name in ["kitty", "zsh", ".git", "pkglist-arch", "install.sh"]:
            (root / name).mkdir(parents=True)
        tree(root, {"README.md": "docs"})

        assert discover_components(root) == ["kitty", "zsh"]

    def test_missing_dotfiles_dir(self, tmp_path):
        with pytest.raises(ComponentDirectoryMissing):
            discover_components(tmp_path / "nothing")
