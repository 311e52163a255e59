from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


def detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    if detect_format(p) in {"yaml", "yml"}:
        import yaml

        try:
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in state file {p}: {e}") from e
    else:
        data = json.loads(p.read_text(encoding="utf-8"))

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def save_state(path: str | Path, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if detect_format(p) in {"yaml", "yml"}:
        import yaml

        p.write_text(yaml.safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True, default=str) + "\n", encoding="utf-8")


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with defaults (without overriding existing values)."""

    state.setdefault("version", 1)
    state.setdefault("config", {})
    state.setdefault("selection", {})
    state.setdefault("execution", {})

    cfg = state["config"]
    cfg.setdefault("dry_run", False)
    cfg.setdefault("policy", "backup")
    cfg.setdefault("strict", False)
    cfg.setdefault("install_packages", False)
    cfg.setdefault("enable_services", False)

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])
    exe.setdefault("warnings", [])

    return state


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def record_applied(state: Dict[str, Any], components: Dict[str, Dict[str, int]]) -> None:
    """Merge per-component deploy counts into the persistent history."""

    applied = state.setdefault("applied", {})
    for name, counts in components.items():
        applied[name] = dict(counts)
