"""Timestamped backup sessions and restore.

Layout under the backup root::

    dotfiles_20240101_120000/
        session.json          # id, created_at, created_by, entries
        home/<path relative to $HOME>
        root/<absolute path without the leading slash>

A session is created lazily, at most once per BackupManager, the first time
something needs backing up. Files, directories and symlinks are stored as
such; a symlink is recreated with its original link text rather than copied
through.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import (
    BackupError,
    BackupPathMissing,
    CopyFailed,
    SessionCreateFailed,
    SessionNotFound,
    SourceMissing,
)
from .executor import Executor

logger = logging.getLogger(__name__)

SESSION_PREFIX = "dotfiles_"
SESSION_METADATA = "session.json"
_TIMESTAMP_FMT = "%Y%m%d_%H%M%S"


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class Origin(str, Enum):
    HOME = "home"
    ROOT = "root"


def kind_of(path: Path) -> EntryKind:
    if path.is_symlink():
        return EntryKind.SYMLINK
    if path.is_dir():
        return EntryKind.DIRECTORY
    return EntryKind.FILE


@dataclass(frozen=True)
class BackupEntry:
    original: str
    relative: str
    kind: EntryKind
    origin: Origin
    component: Optional[str] = None
    link_target: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original": self.original,
            "relative": self.relative,
            "kind": self.kind.value,
            "origin": self.origin.value,
            "component": self.component,
            "link_target": self.link_target,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BackupEntry":
        return cls(
            original=str(raw["original"]),
            relative=str(raw["relative"]),
            kind=EntryKind(raw.get("kind", "file")),
            origin=Origin(raw.get("origin", "home")),
            component=raw.get("component"),
            link_target=raw.get("link_target"),
        )


@dataclass
class BackupSession:
    id: str
    directory: Path
    created_at: str = ""
    created_by: str = ""
    entries: List[BackupEntry] = field(default_factory=list)

    @property
    def metadata_path(self) -> Path:
        return self.directory / SESSION_METADATA

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "created_by": self.created_by,
            "entries": [e.to_dict() for e in self.entries],
        }

    def find(self, original: str) -> Optional[BackupEntry]:
        for e in self.entries:
            if e.original == original:
                return e
        return None


class RestorePolicy(str, Enum):
    REPLACE = "replace"
    SKIP = "skip"
    MERGE = "merge"


class RestoreOutcome(str, Enum):
    RESTORED = "restored"
    MERGED = "merged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RestoreScope:
    kind: str = "all"
    value: Optional[str] = None

    @classmethod
    def all(cls) -> "RestoreScope":
        return cls("all")

    @classmethod
    def path(cls, rel: str) -> "RestoreScope":
        return cls("path", rel)

    @classmethod
    def origin(cls, origin: str | Origin) -> "RestoreScope":
        return cls("origin", Origin(origin).value)

    @classmethod
    def component(cls, name: str) -> "RestoreScope":
        return cls("component", name)


@dataclass(frozen=True)
class RestoreResult:
    entry: BackupEntry
    outcome: RestoreOutcome
    error: Optional[str] = None


@dataclass
class RestoreReport:
    session: str
    results: List[RestoreResult] = field(default_factory=list)
    # Session holding the files this restore replaced, if any were.
    pre_restore_session: Optional[BackupSession] = None

    def count(self, outcome: RestoreOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def ok(self) -> bool:
        return self.count(RestoreOutcome.FAILED) == 0


def _creator() -> str:
    user = os.environ.get("USER") or os.environ.get("LOGNAME") or "unknown"
    return f"{user}@{platform.node() or 'localhost'}"


def _is_within(path: str, parent: str) -> bool:
    return path == parent or path.startswith(parent.rstrip("/") + "/")


class BackupManager:
    def __init__(
        self,
        backup_root: str | Path,
        home: str | Path,
        executor: Executor,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.backup_root = Path(backup_root)
        self.home = Path(os.path.abspath(home))
        self.executor = executor
        self._clock = clock
        self._session: Optional[BackupSession] = None

    @property
    def session(self) -> Optional[BackupSession]:
        """The session created during this run, if any."""
        return self._session

    # Session lifecycle

    def ensure_session(self) -> BackupSession:
        if self._session is not None:
            return self._session

        now = self._clock()
        base_id = now.strftime(_TIMESTAMP_FMT)
        session_id = base_id
        n = 1
        while (self.backup_root / f"{SESSION_PREFIX}{session_id}").exists():
            session_id = f"{base_id}_{n}"
            n += 1

        directory = self.backup_root / f"{SESSION_PREFIX}{session_id}"
        session = BackupSession(
            id=session_id,
            directory=directory,
            created_at=now.isoformat(timespec="seconds"),
            created_by=_creator(),
        )
        try:
            self.executor.make_dirs(directory)
            self._write_metadata(session)
        except OSError as e:
            raise SessionCreateFailed(str(directory), e.strerror or str(e)) from e

        self._session = session
        logger.info("Initialized backup session: %s", directory)
        return session

    def _write_metadata(self, session: BackupSession) -> None:
        self.executor.write_text(session.metadata_path, json.dumps(session.to_dict(), indent=2) + "\n")

    def relative_location(self, path: str | Path) -> Tuple[Origin, str]:
        """Where ``path`` lives inside a session directory."""
        p = os.path.abspath(path)
        home = str(self.home)
        if _is_within(p, home) and p != home:
            return Origin.HOME, f"home/{os.path.relpath(p, home)}"
        return Origin.ROOT, f"root/{p.lstrip('/')}"

    # Backup

    def backup_path(
        self,
        path: str | Path,
        *,
        component: Optional[str] = None,
        session: Optional[BackupSession] = None,
    ) -> BackupEntry:
        """Copy ``path`` into the active session (created on first use)."""

        src = Path(os.path.abspath(path))
        if not os.path.lexists(src):
            raise SourceMissing(str(src))

        session = session or self.ensure_session()
        existing = session.find(str(src))
        if existing is not None:
            # The first copy in a session holds the pre-run state.
            logger.debug("Already backed up in this session: %s", src)
            return existing

        origin, relative = self.relative_location(src)
        dest = session.directory / relative
        kind = kind_of(src)
        link_target = os.readlink(src) if kind is EntryKind.SYMLINK else None

        try:
            self.executor.make_dirs(dest.parent)
            if kind is EntryKind.SYMLINK:
                self.executor.copy_link(src, dest)
            elif kind is EntryKind.DIRECTORY:
                self.executor.copy_tree(src, dest)
            else:
                self.executor.copy_file(src, dest)
        except OSError as e:
            raise CopyFailed(str(src), e.strerror or str(e)) from e

        entry = BackupEntry(
            original=str(src),
            relative=relative,
            kind=kind,
            origin=origin,
            component=component,
            link_target=link_target,
        )
        session.entries.append(entry)
        try:
            self._write_metadata(session)
        except OSError as e:
            raise CopyFailed(str(src), f"cannot update session metadata: {e}") from e

        logger.debug("Created backup: %s -> %s", src, dest)
        return entry

    # Listing

    def list_sessions(self) -> List[BackupSession]:
        if not self.backup_root.is_dir():
            logger.info("No backup sessions found")
            return []
        sessions = []
        for d in sorted(self.backup_root.iterdir(), key=lambda p: p.name):
            if d.is_dir() and d.name.startswith(SESSION_PREFIX):
                sessions.append(self._load_session(d))
        return sessions

    def _load_session(self, directory: Path) -> BackupSession:
        session_id = directory.name[len(SESSION_PREFIX):]
        meta = directory / SESSION_METADATA
        if meta.is_file():
            try:
                raw = json.loads(meta.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable session metadata %s: %s", meta, e)
                raw = {}
            if isinstance(raw, dict):
                return BackupSession(
                    id=str(raw.get("id") or session_id),
                    directory=directory,
                    created_at=str(raw.get("created_at") or ""),
                    created_by=str(raw.get("created_by") or ""),
                    entries=[BackupEntry.from_dict(e) for e in raw.get("entries") or []],
                )
        return BackupSession(id=session_id, directory=directory, entries=self._scan_entries(directory))

    def _scan_entries(self, directory: Path) -> List[BackupEntry]:
        """Entries for a session without metadata: every leaf under home/ and root/."""
        entries: List[BackupEntry] = []
        for origin in Origin:
            base = directory / origin.value
            if not base.is_dir():
                continue
            for dirpath, dirnames, filenames in os.walk(base):
                dirnames.sort()
                leaves = sorted(filenames) + [d for d in dirnames if (Path(dirpath) / d).is_symlink()]
                for name in leaves:
                    copy = Path(dirpath) / name
                    rel_inside = copy.relative_to(base).as_posix()
                    original = str(self.home / rel_inside) if origin is Origin.HOME else "/" + rel_inside
                    kind = kind_of(copy)
                    entries.append(
                        BackupEntry(
                            original=original,
                            relative=f"{origin.value}/{rel_inside}",
                            kind=kind,
                            origin=origin,
                            link_target=os.readlink(copy) if kind is EntryKind.SYMLINK else None,
                        )
                    )
        return entries

    def open_session(self, ref: str | Path) -> BackupSession:
        """Find a session by id, directory name or path."""
        candidates = [Path(ref), self.backup_root / str(ref), self.backup_root / f"{SESSION_PREFIX}{ref}"]
        for c in candidates:
            if c.is_dir() and c.name.startswith(SESSION_PREFIX):
                return self._load_session(c)
        raise SessionNotFound(str(ref))

    # Restore

    def _select(self, session: BackupSession, scope: RestoreScope) -> List[BackupEntry]:
        if scope.kind == "all":
            return list(session.entries)
        if scope.kind == "origin":
            return [e for e in session.entries if e.origin.value == scope.value]
        if scope.kind == "component":
            return [e for e in session.entries if e.component == scope.value]
        if scope.kind == "path":
            return self._select_path(session, str(scope.value or ""))
        raise ValueError(f"Unknown restore scope: {scope.kind}")

    def _select_path(self, session: BackupSession, raw: str) -> List[BackupEntry]:
        if raw.startswith("~"):
            wanted = str(self.home / raw.lstrip("~").lstrip("/"))
        elif os.path.isabs(raw):
            wanted = os.path.abspath(raw)
        elif raw.startswith(("home/", "root/")):
            prefix, _, rest = raw.partition("/")
            wanted = str(self.home / rest) if prefix == "home" else "/" + rest
        else:
            wanted = str(self.home / raw)
        wanted = os.path.normpath(wanted)

        matches = [e for e in session.entries if _is_within(e.original, wanted)]
        if matches:
            return matches

        # A single path inside a backed-up directory.
        for e in session.entries:
            if e.kind is EntryKind.DIRECTORY and _is_within(wanted, e.original):
                sub = os.path.relpath(wanted, e.original)
                copy = session.directory / e.relative / sub
                if os.path.lexists(copy):
                    kind = kind_of(copy)
                    return [
                        BackupEntry(
                            original=wanted,
                            relative=f"{e.relative}/{sub}",
                            kind=kind,
                            origin=e.origin,
                            component=e.component,
                            link_target=os.readlink(copy) if kind is EntryKind.SYMLINK else None,
                        )
                    ]
        raise BackupPathMissing(session.id, raw)

    def _put_back(self, copy: Path, entry: BackupEntry, target: Path) -> None:
        self.executor.make_dirs(target.parent)
        if entry.kind is EntryKind.SYMLINK:
            self.executor.copy_link(copy, target)
        elif entry.kind is EntryKind.DIRECTORY:
            self.executor.copy_tree(copy, target)
        else:
            self.executor.copy_file(copy, target)

    def restore_entry(
        self,
        session: BackupSession,
        entry: BackupEntry,
        policy: RestorePolicy,
        *,
        keep_current: Optional["BackupManager"] = None,
    ) -> RestoreResult:
        """Put one entry back. With ``keep_current``, whatever is at the target is backed up first."""
        copy = session.directory / entry.relative
        target = Path(entry.original)
        if not os.path.lexists(copy):
            logger.error("Backup copy missing: %s", copy)
            return RestoreResult(entry, RestoreOutcome.FAILED, f"backup copy missing: {copy}")

        try:
            if os.path.lexists(target):
                if policy is RestorePolicy.SKIP:
                    logger.info("Skipping existing path: %s", target)
                    return RestoreResult(entry, RestoreOutcome.SKIPPED)
                if keep_current is not None:
                    keep_current.backup_path(target, component=entry.component)
                if policy is RestorePolicy.MERGE and entry.kind is EntryKind.DIRECTORY:
                    if target.is_dir() and not target.is_symlink():
                        self.executor.copy_tree(copy, target, merge=True)
                        logger.info("Merged: %s", target)
                        return RestoreResult(entry, RestoreOutcome.MERGED)
                    logger.warning("Cannot merge directory backup onto non-directory %s; replacing it", target)
                self.executor.remove(target)
            self._put_back(copy, entry, target)
        except (OSError, BackupError) as e:
            logger.error("Failed to restore %s: %s", target, e)
            return RestoreResult(entry, RestoreOutcome.FAILED, str(e))

        logger.info("Restored: %s", target)
        return RestoreResult(entry, RestoreOutcome.RESTORED)

    def restore_session(
        self,
        session: BackupSession | str,
        scope: Optional[RestoreScope] = None,
        *,
        policy: RestorePolicy = RestorePolicy.REPLACE,
        backup_current: bool = True,
    ) -> RestoreReport:
        """Restore the entries of ``session`` selected by ``scope``.

        Unless ``backup_current`` is false, files about to be replaced or merged
        over are first saved in a new session so the restore can be undone.
        """
        if not isinstance(session, BackupSession):
            session = self.open_session(session)
        scope = scope or RestoreScope.all()

        logger.info("Restoring from backup session: %s (%s)", session.directory, scope.kind)
        entries = self._select(session, scope)
        report = RestoreReport(session=session.id)
        keep_current = (
            BackupManager(self.backup_root, self.home, self.executor, clock=self._clock) if backup_current else None
        )
        # Parents before children so nested entries land inside restored dirs.
        for entry in sorted(entries, key=lambda e: e.original):
            report.results.append(self.restore_entry(session, entry, policy, keep_current=keep_current))

        if keep_current is not None and keep_current.session is not None:
            report.pre_restore_session = keep_current.session
            logger.info("Saved the replaced files in backup session: %s", keep_current.session.directory)

        logger.info(
            "Restore finished: %d restored, %d merged, %d skipped, %d failed",
            report.count(RestoreOutcome.RESTORED),
            report.count(RestoreOutcome.MERGED),
            report.count(RestoreOutcome.SKIPPED),
            report.count(RestoreOutcome.FAILED),
        )
        return report
