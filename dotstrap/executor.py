"""Filesystem/command side effects behind one interface.

Everything that mutates the machine goes through an Executor. The real
implementation performs the operation; the recording implementation logs it
as a dry run and keeps a list of what would have happened.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Protocol, Sequence, Tuple

from .errors import CommandFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class Executor(Protocol):
    dry_run: bool

    def make_dirs(self, path: Path) -> None:
        ...

    def symlink(self, source: Path, target: Path) -> None:
        ...

    def remove(self, path: Path) -> None:
        ...

    def copy_file(self, src: Path, dst: Path) -> None:
        ...

    def copy_tree(self, src: Path, dst: Path, *, merge: bool = False) -> None:
        ...

    def copy_link(self, src: Path, dst: Path) -> None:
        ...

    def write_text(self, path: Path, content: str) -> None:
        ...

    def run(self, argv: Sequence[str], *, check: bool = True) -> CmdResult:
        ...


class FilesystemExecutor:
    dry_run = False

    def make_dirs(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def symlink(self, source: Path, target: Path) -> None:
        os.symlink(str(source), str(target))
        logger.info("Created symlink: %s -> %s", target, source)

    def remove(self, path: Path) -> None:
        p = Path(path)
        if p.is_symlink() or not p.is_dir():
            p.unlink()
        else:
            shutil.rmtree(p)
        logger.debug("Removed %s", p)

    def copy_file(self, src: Path, dst: Path) -> None:
        Path(dst).parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)

    def copy_tree(self, src: Path, dst: Path, *, merge: bool = False) -> None:
        Path(dst).parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=merge)

    def copy_link(self, src: Path, dst: Path) -> None:
        """Recreate the symlink ``src`` at ``dst`` with the same link text."""
        link_target = os.readlink(src)
        Path(dst).parent.mkdir(parents=True, exist_ok=True)
        os.symlink(link_target, str(dst))

    def write_text(self, path: Path, content: str) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")

    def run(self, argv: Sequence[str], *, check: bool = True) -> CmdResult:
        """Run an external command, capturing its output into the log."""
        argv_list = [str(a) for a in argv]
        logger.info("CMD %s", fmt_argv(argv_list))
        try:
            p = subprocess.run(argv_list, text=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as e:
            # Missing binary or not executable.
            raise CommandFailed(argv_list, 127, str(e)) from e

        if p.stdout:
            logger.debug("STDOUT %s", p.stdout.strip())
        if p.stderr:
            logger.debug("STDERR %s", p.stderr.strip())
        if check and p.returncode != 0:
            raise CommandFailed(argv_list, p.returncode, p.stderr or "")
        return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout or "", stderr=p.stderr or "")


@dataclass(frozen=True)
class PlannedAction:
    op: str
    args: Tuple[str, ...]

    def __str__(self) -> str:
        return f"{self.op} {' '.join(self.args)}"


@dataclass
class RecordingExecutor:
    """Dry-run executor: logs and records, never touches the system."""

    actions: List[PlannedAction] = field(default_factory=list)
    dry_run: bool = True

    def _record(self, op: str, *args: object) -> None:
        action = PlannedAction(op, tuple(str(a) for a in args))
        self.actions.append(action)
        logger.info("[DRY RUN] Would %s", action)

    def ops(self) -> List[str]:
        return [a.op for a in self.actions]

    def make_dirs(self, path: Path) -> None:
        self._record("mkdir", path)

    def symlink(self, source: Path, target: Path) -> None:
        self._record("symlink", target, source)

    def remove(self, path: Path) -> None:
        self._record("remove", path)

    def copy_file(self, src: Path, dst: Path) -> None:
        self._record("copy", src, dst)

    def copy_tree(self, src: Path, dst: Path, *, merge: bool = False) -> None:
        self._record("merge-tree" if merge else "copy-tree", src, dst)

    def copy_link(self, src: Path, dst: Path) -> None:
        self._record("copy-link", src, dst)

    def write_text(self, path: Path, content: str) -> None:
        self._record("write", path)

    def run(self, argv: Sequence[str], *, check: bool = True) -> CmdResult:
        self._record("run", fmt_argv(argv))
        return CmdResult(argv=[str(a) for a in argv], returncode=0)


def make_executor(dry_run: bool) -> Executor:
    return RecordingExecutor() if dry_run else FilesystemExecutor()
