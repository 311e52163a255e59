from __future__ import annotations

import logging
from typing import Any, Dict

from ..conflicts import detect_conflicts
from ..errors import ApplyAborted
from ..pipeline import ApplyContext
from ..policy import decide_on_conflicts

logger = logging.getLogger(__name__)


class DetectConflictsStep:
    step_id = "20_conflicts"

    def __init__(self, ctx: ApplyContext) -> None:
        self.ctx = ctx

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        resolved = (state.get("selection") or {}).get("resolved") or []
        report = detect_conflicts(self.ctx.catalog, resolved)

        state.setdefault("execution", {})["conflicts"] = [
            {"a": c.first, "b": c.second, "reason": c.reason.value, "category": c.category} for c in report
        ]
        if report and not decide_on_conflicts(report, self.ctx.prompter):
            raise ApplyAborted(f"Aborted: {len(report)} conflict(s) between selected components")
        if report:
            state["execution"].setdefault("warnings", []).append({"conflicts_ignored": len(report)})
        return state
