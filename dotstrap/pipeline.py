from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .backup import BackupManager
from .catalog import Catalog
from .deployer import DeploymentReport, SymlinkDeployer
from .executor import Executor
from .lib.prompts import Prompter
from .state_store import mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single step of an apply run."""

    step_id: str

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass
class ApplyContext:
    """Collaborators shared by the apply steps.

    The JSON-able plan lives in the state dict; objects that cannot be
    persisted (catalog, executor, live reports) live here.
    """

    catalog: Catalog
    dotfiles_dir: Path
    home: Path
    executor: Executor
    prompter: Prompter
    backups: BackupManager
    distro: Optional[str] = None
    report: DeploymentReport = field(default_factory=DeploymentReport)

    @property
    def deployer(self) -> SymlinkDeployer:
        return SymlinkDeployer(self.executor, self.backups)


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order; a step that raises ends the run."""

    ran: List[str] = []
    skipped: List[str] = []
    stopped = False

    for step in steps:
        if stopped:
            skipped.append(step.step_id)
            continue

        state.setdefault("execution", {})["current_step"] = step.step_id
        logger.debug("Running step %s", step.step_id)
        state = step.run(state)
        mark_step_completed(state, step.step_id)
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            stopped = True

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
