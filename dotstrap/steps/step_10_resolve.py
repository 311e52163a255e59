from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import ResolutionError
from ..pipeline import ApplyContext
from ..resolver import resolve

logger = logging.getLogger(__name__)


class ResolveComponentsStep:
    step_id = "10_resolve"

    def __init__(self, ctx: ApplyContext) -> None:
        self.ctx = ctx

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        selection = state.setdefault("selection", {})
        requested = list(selection.get("requested") or [])
        if not requested:
            raise ResolutionError("No components specified")

        result = resolve(self.ctx.catalog, requested)
        selection["resolved"] = list(result.resolved)
        selection["added"] = list(result.added)

        logger.info("Selected by you:")
        for name in result.resolved:
            if result.was_selected(name):
                logger.info("  + %s - %s", name, self.ctx.catalog.get(name).description)
        if result.added:
            logger.info("Added as dependencies:")
            for name in result.added:
                logger.info("  + %s - %s (dependency)", name, self.ctx.catalog.get(name).description)
        logger.info("Total components: %d", len(result.resolved))
        return state
