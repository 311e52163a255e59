from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..errors import CommandFailed
from ..lib.services import enable_service
from ..pipeline import ApplyContext

logger = logging.getLogger(__name__)


class EnableServicesStep:
    step_id = "50_enable_services"

    def __init__(self, ctx: ApplyContext) -> None:
        self.ctx = ctx

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        if not cfg.get("enable_services", False):
            logger.debug("Service enablement not requested")
            return state

        enabled: List[str] = []
        resolved = (state.get("selection") or {}).get("resolved") or []
        for name in resolved:
            for service in self.ctx.catalog.get(name).services:
                try:
                    enable_service(self.ctx.executor, service)
                    enabled.append(service)
                except CommandFailed as e:
                    # Keep going; the remaining services are independent.
                    logger.warning("Non-fatal: failed to enable %s: %s", service, e)
                    state.setdefault("execution", {}).setdefault("warnings", []).append(
                        {"service": service, "error": str(e)}
                    )

        state.setdefault("execution", {})["services_enabled"] = enabled
        return state
