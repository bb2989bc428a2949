"""Errors raised by the cleanup engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class CleanupError(Exception):
    """Base class for cleanup engine errors."""


class AlreadyRunningError(CleanupError):
    """Another cleanup run holds the lock."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"Another cleanup operation is running (PID: {pid})")
        self.pid = pid


class PrivilegeRequiredError(CleanupError):
    """System-level cleanup was requested without elevated privilege."""

    def __init__(self) -> None:
        super().__init__("System-level cleanup requires admin privileges")


class SnapshotError(CleanupError):
    """The snapshot subsystem failed to list or delete a snapshot."""


class LockFileError(CleanupError):
    """The lock file could not be created or taken over."""

    def __init__(self, path: Path, error: OSError) -> None:
        super().__init__(f"Cannot write lock file {path}: {error.strerror or error}")
        self.path = path
