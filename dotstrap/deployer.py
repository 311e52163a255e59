from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .backup import BackupManager
from .errors import BackupError, TargetResolvesToSource
from .executor import Executor
from .mappings import ConfigMapping

logger = logging.getLogger(__name__)


class Policy(str, Enum):
    SKIP = "skip"
    OVERWRITE = "overwrite"
    BACKUP = "backup"


class Outcome(str, Enum):
    CREATED = "created"
    ALREADY_CORRECT = "already-correct"
    SKIPPED = "skipped"
    BACKED_UP = "backed-up-and-replaced"
    OVERWRITTEN = "overwritten"
    REMOVED = "removed"
    NOT_LINKED = "not-linked"
    FAILED = "failed"


class MappingStatus(str, Enum):
    NEW = "NEW"
    LINKED = "LINKED"
    CONFLICT_SYMLINK = "CONFLICT (symlink)"
    CONFLICT_FILE = "CONFLICT (file)"


@dataclass(frozen=True)
class MappingResult:
    mapping: ConfigMapping
    outcome: Outcome
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED


@dataclass
class ComponentReport:
    component: str
    results: List[MappingResult] = field(default_factory=list)
    skipped_reason: Optional[str] = None
    cancelled: bool = False

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def failures(self) -> int:
        return self.count(Outcome.FAILED)

    @property
    def successes(self) -> int:
        return len(self.results) - self.failures

    @property
    def ok(self) -> bool:
        return self.failures == 0 and not self.cancelled


@dataclass
class DeploymentReport:
    components: List[ComponentReport] = field(default_factory=list)
    aborted: bool = False

    @property
    def successes(self) -> int:
        return sum(c.successes for c in self.components)

    @property
    def failures(self) -> int:
        return sum(c.failures for c in self.components)

    @property
    def ok(self) -> bool:
        return self.failures == 0 and not self.aborted and all(c.ok for c in self.components)

    def summary(self) -> Dict[str, Dict[str, int]]:
        return {c.component: {"ok": c.successes, "failed": c.failures} for c in self.components}


def is_link_to(target: Path, source: Path) -> bool:
    return target.is_symlink() and os.readlink(target) == str(source)


def resolves_to(target: Path, source: Path) -> bool:
    """True when ``target`` reaches ``source`` itself, e.g. through a symlinked parent."""
    return os.path.realpath(target) == os.path.realpath(source)


def inspect_mapping(mapping: ConfigMapping) -> MappingStatus:
    target = mapping.target
    if not os.path.lexists(target):
        return MappingStatus.NEW
    if target.is_symlink():
        if is_link_to(target, mapping.source):
            return MappingStatus.LINKED
        return MappingStatus.CONFLICT_SYMLINK
    return MappingStatus.CONFLICT_FILE


def conflicting_targets(mappings: Iterable[ConfigMapping]) -> List[Path]:
    out = []
    for m in mappings:
        status = inspect_mapping(m)
        if status in (MappingStatus.CONFLICT_SYMLINK, MappingStatus.CONFLICT_FILE):
            logger.warning("  - %s (%s)", m.target, status.value)
            out.append(m.target)
    return out


class SymlinkDeployer:
    """Creates the managed symlinks for config mappings.

    Each call touches only the one target path it is given (plus its missing
    parent directories and, for the backup policy, the backup session).
    """

    def __init__(self, executor: Executor, backups: Optional[BackupManager] = None) -> None:
        self.executor = executor
        self.backups = backups

    def deploy(self, mapping: ConfigMapping, policy: Policy | str = Policy.BACKUP) -> MappingResult:
        policy = Policy(policy)
        source, target = mapping.source, mapping.target

        try:
            if not source.exists():
                raise FileNotFoundError(2, "Source file does not exist", str(source))

            if not os.path.lexists(target):
                if not target.parent.is_dir():
                    self.executor.make_dirs(target.parent)
                self.executor.symlink(source, target)
                return MappingResult(mapping, Outcome.CREATED)

            if is_link_to(target, source):
                logger.debug("Symlink already exists and is correct: %s", target)
                return MappingResult(mapping, Outcome.ALREADY_CORRECT)

            # Removing the target here would delete the source.
            if resolves_to(target, source):
                raise TargetResolvesToSource(str(target), str(source))

            if policy is Policy.SKIP:
                logger.info("Skipping conflicting file: %s", target)
                return MappingResult(mapping, Outcome.SKIPPED)

            if policy is Policy.BACKUP:
                if self.backups is None:
                    raise BackupError(f"No backup manager available for {target}")
                self.backups.backup_path(target, component=mapping.component)
                logger.info("Backed up existing file: %s", target)
                outcome = Outcome.BACKED_UP
            else:
                logger.warning("Overwriting existing file: %s", target)
                outcome = Outcome.OVERWRITTEN

            self.executor.remove(target)
            self.executor.symlink(source, target)
            return MappingResult(mapping, outcome)
        except (OSError, BackupError, TargetResolvesToSource) as e:
            logger.error("Failed to link %s -> %s: %s", target, source, e)
            return MappingResult(mapping, Outcome.FAILED, e)

    def deploy_component(
        self,
        component: str,
        mappings: Sequence[ConfigMapping],
        policy: Policy | str = Policy.BACKUP,
        *,
        strict: bool = False,
    ) -> ComponentReport:
        report = ComponentReport(component=component)
        if not mappings:
            logger.info("No configurations found for component: %s", component)
            return report

        logger.info("Applying configurations: %s", component)
        for m in mappings:
            result = self.deploy(m, policy)
            report.results.append(result)
            if strict and result.failed:
                logger.error("Strict mode: stopping %s after first failure", component)
                break

        if report.successes:
            logger.info("Applied %d configurations for component: %s", report.successes, component)
        if report.failures:
            logger.error("Failed to apply %d configurations for component: %s", report.failures, component)
        return report

    def remove_links(self, component: str, mappings: Sequence[ConfigMapping]) -> ComponentReport:
        """Remove the symlinks this tool created; anything else is left alone."""

        report = ComponentReport(component=component)
        logger.info("Removing symlinks for component: %s", component)
        for m in mappings:
            if not is_link_to(m.target, m.source):
                report.results.append(MappingResult(m, Outcome.NOT_LINKED))
                continue
            try:
                self.executor.remove(m.target)
                report.results.append(MappingResult(m, Outcome.REMOVED))
            except OSError as e:
                logger.error("Failed to remove symlink %s: %s", m.target, e)
                report.results.append(MappingResult(m, Outcome.FAILED, e))

        removed = report.count(Outcome.REMOVED)
        if removed:
            logger.info("Removed %d symlinks for component: %s", removed, component)
        else:
            logger.info("No symlinks found to remove for component: %s", component)
        return report
