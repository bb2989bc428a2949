"""Remove (or simulate removing) a single cleanup candidate."""

from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import SnapshotError
from .models import Candidate, CategoryKind, OutcomeStatus, RemovalMode, RemovalOutcome
from .probes import format_bytes, probe_size
from .resolver import is_whitelisted
from .snapshots import SnapshotManager

if TYPE_CHECKING:
    from .config import CleanupPaths


class RemovalExecutor:
    """Measures and disposes of candidates according to the removal mode."""

    def __init__(
        self,
        paths: CleanupPaths,
        logger: logging.Logger,
        snapshots: SnapshotManager | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            paths: Configured filesystem locations, including the trash.
            logger: Logger instance.
            snapshots: Snapshot subsystem wrapper.

        """
        self.paths = paths
        self.logger = logger
        self.snapshots = snapshots or SnapshotManager()

    def execute(self, candidate: Candidate, mode: RemovalMode) -> RemovalOutcome:
        """Remove a candidate, or simulate it in dry-run mode.

        Failures never raise; they come back as skipped outcomes.

        Args:
            candidate: Candidate produced by the resolver.
            mode: Removal mode for this run.

        Returns:
            RemovalOutcome describing what happened.

        """
        if candidate.category is CategoryKind.SNAPSHOTS:
            outcome = self._execute_snapshot(candidate, mode)
        else:
            outcome = self._execute_path(candidate, mode)

        self.logger.debug(
            "%s: %s (%s)",
            outcome.status.value,
            outcome.path,
            format_bytes(outcome.size_bytes),
            extra={
                "event": "candidate_outcome",
                "category": outcome.category.value,
                "path": str(outcome.path),
                "size_bytes": outcome.size_bytes,
                "status": outcome.status.value,
                "reason": outcome.reason,
            },
        )
        return outcome

    def _execute_path(self, candidate: Candidate, mode: RemovalMode) -> RemovalOutcome:
        path = candidate.path

        if not is_whitelisted(path, candidate.category, self.paths):
            self.logger.error("Refusing to touch path outside whitelist: %s", path)
            return self._skipped(candidate, 0, "Outside whitelisted roots")

        if not os.path.lexists(path):
            return self._skipped(candidate, 0, "No longer exists")

        size = probe_size(path)

        if mode is RemovalMode.DRY_RUN:
            self.logger.info("[DRY-RUN] Would remove: %s (%s)", path, format_bytes(size))
            return RemovalOutcome(
                path=path,
                category=candidate.category,
                size_bytes=size,
                status=OutcomeStatus.SIMULATED,
            )

        try:
            if mode is RemovalMode.TRASH_BACKUP:
                destination = self._move_to_trash(path)
                self.logger.info("Moved to Trash: %s -> %s", path, destination)
            else:
                self._delete(path)
                self.logger.info("Deleted: %s (%s)", path, format_bytes(size))
        except FileNotFoundError:
            return self._skipped(candidate, size, "No longer exists")
        except PermissionError as e:
            self.logger.error("Permission denied removing %s: %s", path, e)
            return self._skipped(candidate, size, f"Permission denied: {e}")
        except OSError as e:
            self.logger.error("Error removing %s: %s", path, e)
            return self._skipped(candidate, size, str(e))

        return RemovalOutcome(
            path=path,
            category=candidate.category,
            size_bytes=size,
            status=OutcomeStatus.REMOVED,
        )

    def _execute_snapshot(self, candidate: Candidate, mode: RemovalMode) -> RemovalOutcome:
        identifier = candidate.snapshot_id or candidate.path.name

        if mode is RemovalMode.DRY_RUN:
            self.logger.info("[DRY-RUN] Would delete snapshot: %s", identifier)
            return RemovalOutcome(
                path=candidate.path,
                category=candidate.category,
                size_bytes=0,
                status=OutcomeStatus.SIMULATED,
            )

        try:
            self.snapshots.delete_snapshot(identifier)
        except SnapshotError as e:
            self.logger.warning("Failed to delete snapshot %s: %s", identifier, e)
            return self._skipped(candidate, 0, str(e))

        self.logger.info("Deleted snapshot: %s", identifier)
        return RemovalOutcome(
            path=candidate.path,
            category=candidate.category,
            size_bytes=0,
            status=OutcomeStatus.REMOVED,
        )

    @staticmethod
    def _skipped(candidate: Candidate, size: int, reason: str) -> RemovalOutcome:
        return RemovalOutcome(
            path=candidate.path,
            category=candidate.category,
            size_bytes=size,
            status=OutcomeStatus.SKIPPED,
            reason=reason,
        )

    @staticmethod
    def _delete(path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()

    def _move_to_trash(self, path: Path) -> Path:
        """Move a path into the trash, renaming on collision like Finder does.

        Returns:
            Final location inside the trash.

        """
        self.paths.trash.mkdir(parents=True, exist_ok=True)
        destination = self._trash_destination(path)
        shutil.move(str(path), str(destination))
        return destination

    def _trash_destination(self, path: Path) -> Path:
        destination = self.paths.trash / path.name
        if not os.path.lexists(destination):
            return destination

        # Directory names keep their dots: "com.apple.foo 12.00.00"
        if path.is_dir() and not path.is_symlink():
            stem, suffix = path.name, ""
        else:
            stem, suffix = path.stem, path.suffix

        stamp = datetime.now().strftime("%H.%M.%S")
        destination = self.paths.trash / f"{stem} {stamp}{suffix}"
        counter = 2
        while os.path.lexists(destination):
            destination = self.paths.trash / f"{stem} {stamp} {counter}{suffix}"
            counter += 1
        return destination
