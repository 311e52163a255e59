"""Tests for dotstrap.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from dotstrap.config import Config, env_overrides, load_config
from dotstrap.errors import ConfigError


class TestConfigDefaults:
    def test_paths_derive_from_home(self, home):
        cfg = Config({"home": str(home)})

        assert cfg.home == home
        assert cfg.backup_root == home / ".config" / "install-backups"
        assert cfg.state_path == home / ".local" / "state" / "dotstrap" / "state.json"
        assert cfg.log_path == home / ".local" / "state" / "dotstrap" / "dotstrap.log"
        assert cfg.catalog_path.name == "components.yaml"
        assert cfg.dotfiles_dir.name == "dotfiles"

    def test_flags(self):
        cfg = Config()
        assert cfg.default_policy == "backup"
        assert cfg.dry_run is False
        assert cfg.distro is None

    @pytest.mark.parametrize("value, expected", [("1", True), ("yes", True), ("off", False), (True, True)])
    def test_dry_run_parsing(self, value, expected):
        assert Config({"dry_run": value}).dry_run is expected

    def test_invalid_policy(self):
        with pytest.raises(ConfigError):
            Config({"default_policy": "yolo"}).default_policy

    def test_with_overrides_ignores_none(self, home):
        cfg = Config({"home": str(home), "distro": "arch"}).with_overrides(distro=None, dry_run=True)
        assert cfg.distro == "arch"
        assert cfg.dry_run is True


class TestLoadConfig:
    def test_no_file(self):
        assert load_config(None, environ={}).raw == {}

    def test_yaml_file_and_environment(self, tmp_path):
        p = tmp_path / "dotstrap.yaml"
        p.write_text("default_policy: skip\ndistro: ubuntu\nhome: /from/file\n", encoding="utf-8")

        cfg = load_config(str(p), environ={"DOTSTRAP_HOME": "/from/env", "DOTSTRAP_DRY_RUN": "true"})

        assert cfg.default_policy == "skip"
        assert cfg.distro == "ubuntu"
        assert cfg.home == Path("/from/env")
        assert cfg.dry_run is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "nope.yaml"), environ={})

    def test_wrong_suffix(self, tmp_path):
        p = tmp_path / "dotstrap.json"
        p.write_text("{}", encoding="utf-8")
        with pytest.raises(ConfigError, match="YAML"):
            load_config(str(p), environ={})

    @pytest.mark.parametrize("text", ["- a\n- b\n", "key: [unclosed\n"])
    def test_bad_content(self, tmp_path, text):
        p = tmp_path / "dotstrap.yml"
        p.write_text(text, encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(p), environ={})

    def test_env_overrides_skip_empty(self):
        assert env_overrides({"DOTSTRAP_CATALOG": "", "DOTSTRAP_DOTFILES": "/d", "OTHER": "x"}) == {
            "dotfiles_dir": "/d"
        }
