from __future__ import annotations

import logging
from typing import Any, Dict

from ..deployer import ComponentReport, conflicting_targets
from ..mappings import component_dir, discover
from ..pipeline import ApplyContext
from ..policy import choose_policy
from ..state_store import record_applied

logger = logging.getLogger(__name__)


class DeployConfigsStep:
    step_id = "40_deploy_configs"

    def __init__(self, ctx: ApplyContext) -> None:
        self.ctx = ctx

    def _deploy_one(self, name: str, requested_policy: str, strict: bool) -> ComponentReport:
        root = component_dir(self.ctx.dotfiles_dir, name)
        if not root.is_dir():
            logger.info("No configurations found for component: %s", name)
            return ComponentReport(component=name, skipped_reason="no configuration directory")

        mappings = discover(name, root, self.ctx.home)
        conflicted = conflicting_targets(mappings) if requested_policy == "ask" else []
        policy = choose_policy(requested_policy, conflicted, self.ctx.prompter, component=name)
        if policy is None:
            return ComponentReport(component=name, skipped_reason="cancelled by user", cancelled=True)

        return self.ctx.deployer.deploy_component(name, mappings, policy, strict=strict)

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        requested_policy = str(cfg.get("policy") or "backup")
        strict = bool(cfg.get("strict", False))
        resolved = (state.get("selection") or {}).get("resolved") or []
        report = self.ctx.report

        # Resolution order: dependencies before dependents.
        for name in resolved:
            comp_report = self._deploy_one(name, requested_policy, strict)
            report.components.append(comp_report)
            if strict and not comp_report.ok:
                logger.error("Strict mode: skipping remaining components after %s", name)
                report.aborted = True
                break

        session = self.ctx.backups.session
        exe = state.setdefault("execution", {})
        exe["deployment"] = report.summary()
        exe["backup_session"] = session.id if session else None
        record_applied(state, report.summary())

        logger.info("Configured %d component(s): %d link(s) ok, %d failed",
                    len(report.components), report.successes, report.failures)
        return state
