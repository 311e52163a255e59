"""Turning conflict findings into decisions.

The functions here only map answers to policies; the actual questions are
asked through a Prompter, so they can be driven without a terminal.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from .conflicts import ConflictReport
from .deployer import Policy
from .lib.prompts import Prompter

logger = logging.getLogger(__name__)

ASK = "ask"

CHOICE_BACKUP = "Backup and replace"
CHOICE_SKIP = "Skip conflicts"
CHOICE_OVERWRITE = "Overwrite without backup"
CHOICE_CANCEL = "Cancel"

POLICY_CHOICES = [CHOICE_BACKUP, CHOICE_SKIP, CHOICE_OVERWRITE, CHOICE_CANCEL]

_CHOICE_TO_POLICY = {
    CHOICE_BACKUP: Policy.BACKUP,
    CHOICE_SKIP: Policy.SKIP,
    CHOICE_OVERWRITE: Policy.OVERWRITE,
}


def policy_from_choice(choice: str, *, overwrite_confirmed: bool = False) -> Optional[Policy]:
    """Map a menu answer to a policy; None means cancel."""

    policy = _CHOICE_TO_POLICY.get(choice)
    if policy is Policy.OVERWRITE and not overwrite_confirmed:
        return None
    return policy


def choose_policy(
    requested: Policy | str,
    conflicted_targets: Sequence[Path],
    prompter: Prompter,
    *,
    component: str = "",
) -> Optional[Policy]:
    """Decide the deployment policy for one component.

    A concrete requested policy is returned unchanged. ``ask`` prompts only if
    some target is already occupied, and falls back to backup otherwise.
    """

    if requested != ASK:
        return Policy(requested)
    if not conflicted_targets:
        return Policy.BACKUP

    choice = prompter.ask_choice(
        f"Configuration conflicts detected for component: {component}. Select resolution strategy",
        POLICY_CHOICES,
    )
    confirmed = False
    if choice == CHOICE_OVERWRITE:
        confirmed = prompter.ask_yes_no(
            "Are you sure? This will permanently delete existing configurations!", False
        )
    policy = policy_from_choice(choice, overwrite_confirmed=confirmed)
    if policy is None:
        logger.info("Installation cancelled for component: %s", component)
    return policy


def decide_on_conflicts(report: ConflictReport, prompter: Prompter) -> bool:
    """Return True to proceed despite component conflicts."""

    if not report:
        return True
    for c in report:
        logger.warning("  - %s", c.describe())
    return prompter.ask_yes_no("Conflicting components selected. Continue anyway?", False)
