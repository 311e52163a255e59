from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import ConfigError
from ..lib.distro import current_distro
from ..lib.pkg import component_package_sets, install_packages
from ..pipeline import ApplyContext

logger = logging.getLogger(__name__)


class InstallPackagesStep:
    step_id = "30_install_packages"

    def __init__(self, ctx: ApplyContext) -> None:
        self.ctx = ctx

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        if not cfg.get("install_packages", False):
            logger.debug("Package installation not requested")
            return state

        distro = self.ctx.distro or current_distro()
        if not distro:
            raise ConfigError("Cannot determine distribution; pass --distro")

        resolved = (state.get("selection") or {}).get("resolved") or []
        components = [self.ctx.catalog.get(n) for n in resolved]
        package_sets = component_package_sets(components, distro)
        if not package_sets:
            logger.info("No packages to install for %s", distro)

        for channel, packages in package_sets.items():
            install_packages(self.ctx.executor, packages, channel)

        state.setdefault("execution", {}).setdefault("plan", {})["packages"] = package_sets
        state["execution"]["plan"]["distro"] = distro
        return state
