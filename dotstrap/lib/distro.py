from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")

_FAMILY = {
    "arch": "arch",
    "manjaro": "arch",
    "endeavouros": "arch",
    "ubuntu": "ubuntu",
    "pop": "ubuntu",
    "linuxmint": "ubuntu",
    "debian": "debian",
}


def parse_os_release(text: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        out[key.strip()] = value.strip().strip('"').strip("'")
    return out


def current_distro(os_release: Path = OS_RELEASE) -> Optional[str]:
    """Distro identifier used to pick package lists (arch, ubuntu, debian, ...)."""

    try:
        info = parse_os_release(os_release.read_text(encoding="utf-8", errors="ignore"))
    except OSError:
        logger.warning("Cannot read %s; distribution unknown", os_release)
        return None

    ident = info.get("ID", "").lower()
    if ident in _FAMILY:
        return _FAMILY[ident]
    for like in info.get("ID_LIKE", "").lower().split():
        if like in _FAMILY:
            return _FAMILY[like]
    return ident or None
