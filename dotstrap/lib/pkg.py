from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from ..catalog import Component
from ..errors import ConfigError
from ..executor import Executor

logger = logging.getLogger(__name__)

_INSTALL_ARGV: Dict[str, List[str]] = {
    "arch": ["sudo", "pacman", "-S", "--needed", "--noconfirm"],
    "ubuntu": ["sudo", "apt-get", "install", "-y"],
    "debian": ["sudo", "apt-get", "install", "-y"],
}

# AUR packages are listed under "<distro>_aur" and go through the AUR helper.
_AUR_ARGV = ["yay", "-S", "--needed", "--noconfirm"]


def install_argv(packages: Sequence[str], distro: str) -> List[str]:
    if distro.endswith("_aur"):
        return [*_AUR_ARGV, *packages]
    try:
        base = _INSTALL_ARGV[distro]
    except KeyError:
        raise ConfigError(f"Unsupported distribution for package installation: {distro}") from None
    return [*base, *packages]


def install_packages(executor: Executor, packages: Sequence[str], distro: str) -> None:
    if not packages:
        return
    logger.info("Installing %d package(s) for %s: %s", len(packages), distro, " ".join(packages))
    executor.run(install_argv(packages, distro))


def component_package_sets(components: Sequence[Component], distro: str) -> Dict[str, List[str]]:
    """Collect de-duplicated package names per install channel (distro, distro_aur)."""

    sets: Dict[str, List[str]] = {}
    for channel in (distro, f"{distro}_aur"):
        pkgs: List[str] = []
        for comp in components:
            for p in comp.packages_for(channel):
                if p not in pkgs:
                    pkgs.append(p)
        if pkgs:
            sets[channel] = pkgs
    return sets
