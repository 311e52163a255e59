from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError

_TRUE = {"1", "true", "yes", "on"}

# Environment variable -> config key.
ENV_OVERRIDES = {
    "DOTSTRAP_HOME": "home",
    "DOTSTRAP_DOTFILES": "dotfiles_dir",
    "DOTSTRAP_CATALOG": "catalog_path",
    "DOTSTRAP_BACKUP_ROOT": "backup_root",
    "DOTSTRAP_DRY_RUN": "dry_run",
}

POLICIES = ("backup", "skip", "overwrite", "ask")


def _repo_root() -> Path:
    # dotstrap/config.py -> dotstrap -> repo root
    return Path(__file__).resolve().parents[1]


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE
    return bool(value)


@dataclass(frozen=True)
class Config:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _path(self, key: str, default: Path) -> Path:
        value = self.raw.get(key)
        return Path(str(value)).expanduser() if value else default

    @property
    def home(self) -> Path:
        value = self.raw.get("home")
        return Path(str(value)).expanduser() if value else Path.home()

    @property
    def dotfiles_dir(self) -> Path:
        return self._path("dotfiles_dir", _repo_root() / "dotfiles")

    @property
    def catalog_path(self) -> Path:
        return self._path("catalog_path", _repo_root() / "manifests" / "components.yaml")

    @property
    def backup_root(self) -> Path:
        return self._path("backup_root", self.home / ".config" / "install-backups")

    @property
    def state_path(self) -> Path:
        return self._path("state_path", self.home / ".local" / "state" / "dotstrap" / "state.json")

    @property
    def log_path(self) -> Path:
        return self._path("log_path", self.home / ".local" / "state" / "dotstrap" / "dotstrap.log")

    @property
    def default_policy(self) -> str:
        policy = str(self.raw.get("default_policy") or "backup").lower()
        if policy not in POLICIES:
            raise ConfigError(f"default_policy must be one of {', '.join(POLICIES)}, got {policy!r}")
        return policy

    @property
    def dry_run(self) -> bool:
        return _as_bool(self.raw.get("dry_run", False))

    @property
    def distro(self) -> Optional[str]:
        value = self.raw.get("distro")
        return str(value) if value else None

    def with_overrides(self, **overrides: Any) -> "Config":
        """New Config with every non-None override applied."""
        raw = dict(self.raw)
        raw.update({k: v for k, v in overrides.items() if v is not None})
        return Config(raw=raw)


def env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    return {key: environ[var] for var, key in ENV_OVERRIDES.items() if environ.get(var)}


def load_config(path: Optional[str] = None, *, environ: Optional[Mapping[str, str]] = None) -> Config:
    """Load YAML config (if given) and apply DOTSTRAP_* environment overrides."""

    raw: Dict[str, Any] = {}
    if path:
        p = Path(path).expanduser()
        if not p.exists():
            raise ConfigError(f"Config file not found: {path}")
        if p.suffix.lower() not in {".yaml", ".yml"}:
            raise ConfigError("config file must be YAML")

        import yaml

        try:
            loaded = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"{path} must contain a mapping/object")
        raw.update(loaded)

    raw.update(env_overrides(os.environ if environ is None else environ))
    return Config(raw=raw)
