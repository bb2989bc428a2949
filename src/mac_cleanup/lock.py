"""Single-instance lock so only one cleanup run proceeds per host."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import TracebackType

import psutil

from .errors import AlreadyRunningError, LockFileError


class SingleInstanceGuard:
    """PID lock file guarding a cleanup run.

    The check-then-overwrite of a stale lock is not atomic against a
    concurrent acquire; only the creation of a fresh lock file is.
    """

    def __init__(self, lock_file: Path, logger: logging.Logger) -> None:
        self.lock_file = lock_file
        self.logger = logger

    def _read_owner(self) -> int | None:
        """PID recorded in the lock file, or None if absent or unreadable."""
        try:
            content = self.lock_file.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        try:
            return int(content)
        except ValueError:
            return None

    @staticmethod
    def _is_alive(pid: int | None) -> bool:
        return pid is not None and pid > 0 and psutil.pid_exists(pid)

    def acquire(self) -> None:
        """Take the lock, clearing it first if its owner is dead.

        Raises:
            AlreadyRunningError: If a live process holds the lock.
            LockFileError: If the lock file cannot be written.

        """
        pid = os.getpid()

        if self.lock_file.exists():
            owner = self._read_owner()
            if self._is_alive(owner):
                raise AlreadyRunningError(owner)
            self.logger.warning("Removing stale lock (PID: %s): %s", owner, self.lock_file)
            try:
                self.lock_file.write_text(f"{pid}\n", encoding="utf-8")
            except OSError as e:
                raise LockFileError(self.lock_file, e) from e
            return

        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LockFileError(self.lock_file, e) from e

        try:
            with self.lock_file.open("x", encoding="utf-8") as f:
                f.write(f"{pid}\n")
        except FileExistsError:
            owner = self._read_owner()
            raise AlreadyRunningError(owner if owner is not None else -1) from None
        except OSError as e:
            raise LockFileError(self.lock_file, e) from e

        self.logger.debug("Acquired lock: %s", self.lock_file)

    def release(self) -> None:
        """Remove the lock file."""
        self.lock_file.unlink(missing_ok=True)
        self.logger.debug("Released lock: %s", self.lock_file)

    def __enter__(self) -> SingleInstanceGuard:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
