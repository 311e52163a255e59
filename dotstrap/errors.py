from __future__ import annotations

from typing import Optional, Sequence


class DotstrapError(Exception):
    """Base class for errors that abort a dotstrap command."""


class ConfigError(DotstrapError, ValueError):
    pass


# Metadata


class MetadataError(DotstrapError):
    pass


class MetadataUnreadable(MetadataError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read component metadata {path}: {reason}")
        self.path = path
        self.reason = reason


class MetadataMalformed(MetadataError, ValueError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Malformed component metadata {path}: {reason}")
        self.path = path
        self.reason = reason


# Resolution


class ResolutionError(DotstrapError):
    pass


class UnknownComponentError(ResolutionError):
    def __init__(self, name: str, required_by: Optional[str] = None) -> None:
        msg = f"Component '{name}' not found in catalog"
        if required_by:
            msg += f" (referenced by '{required_by}')"
        super().__init__(msg)
        self.name = name
        self.required_by = required_by


class UnknownPresetError(ResolutionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Preset '{name}' not found in catalog")
        self.name = name


class CircularDependencyError(ResolutionError):
    def __init__(self, name: str, path: Sequence[str] = ()) -> None:
        self.name = name
        self.path = list(path)
        chain = " -> ".join([*self.path, name]) if self.path else name
        super().__init__(f"Circular dependency detected: {chain}")


# Deployment


class ComponentDirectoryMissing(DotstrapError):
    def __init__(self, component: str, path: str) -> None:
        super().__init__(f"Component directory not found: {path}")
        self.component = component
        self.path = path


class TargetResolvesToSource(DotstrapError):
    def __init__(self, target: str, source: str) -> None:
        super().__init__(
            f"Target {target} resolves to the source file {source} through a linked parent directory; "
            "replacing it would destroy the source"
        )
        self.target = target
        self.source = source


# Backups


class BackupError(DotstrapError):
    pass


class SessionCreateFailed(BackupError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to create backup session {path}: {reason}")
        self.path = path


class SourceMissing(BackupError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Nothing to back up, path does not exist: {path}")
        self.path = path


class CopyFailed(BackupError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to back up {path}: {reason}")
        self.path = path
        self.reason = reason


# Restore


class RestoreError(DotstrapError):
    pass


class SessionNotFound(RestoreError):
    def __init__(self, session: str) -> None:
        super().__init__(f"Backup session not found: {session}")
        self.session = session


class BackupPathMissing(RestoreError):
    def __init__(self, session: str, path: str) -> None:
        super().__init__(f"Path {path} is not part of backup session {session}")
        self.session = session
        self.path = path


# External commands


class CommandFailed(DotstrapError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"Command failed ({returncode}): {' '.join(self.argv)}{detail}")


class ApplyAborted(DotstrapError):
    """The user (or a non-interactive default) declined to continue."""
