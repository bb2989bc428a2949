"""Top-level cleanup engine."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from .errors import PrivilegeRequiredError
from .executor import RemovalExecutor
from .lock import SingleInstanceGuard
from .models import CategoryKind, CleanupReport, OutcomeStatus
from .probes import format_bytes, free_disk_space
from .resolver import TargetResolver
from .snapshots import SnapshotManager

if TYPE_CHECKING:
    from .config import CleanupConfig


class CleanupOrchestrator:
    """Runs every enabled category through resolution and removal."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        resolver: TargetResolver | None = None,
        snapshots: SnapshotManager | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            logger: Sink for run events. Defaults to the ``mac-cleanup`` logger.
            resolver: Candidate resolver.
            snapshots: Snapshot subsystem wrapper shared by resolver and executor.

        """
        self.logger = logger or logging.getLogger("mac-cleanup")
        self.snapshots = snapshots or SnapshotManager()
        self.resolver = resolver or TargetResolver(snapshots=self.snapshots)

    def run(self, config: CleanupConfig) -> CleanupReport:
        """Run one cleanup pass.

        Args:
            config: Fully resolved configuration.

        Returns:
            Report of every attempted candidate.

        Raises:
            PrivilegeRequiredError: System caches enabled without elevated privilege.
            AlreadyRunningError: Another run holds the lock.

        """
        if config.is_enabled(CategoryKind.SYSTEM_CACHES) and not config.require_elevated_privilege:
            raise PrivilegeRequiredError

        executor = RemovalExecutor(config.paths, self.logger, self.snapshots)

        with SingleInstanceGuard(config.paths.lock_file, self.logger):
            report = CleanupReport(
                started_at=datetime.now(),
                free_space_before=free_disk_space(config.paths.volume),
            )
            self.logger.info(
                "Cleanup started (mode=%s, free=%s)",
                config.mode.value,
                format_bytes(report.free_space_before),
                extra={"event": "run_started", "mode": config.mode.value},
            )

            for category in CategoryKind:
                if config.is_enabled(category):
                    self._run_category(category, config, executor, report)

            report.finalize(free_disk_space(config.paths.volume))
            self.logger.info(
                "Cleanup finished: %d removed, %d skipped, %d simulated, %s freed",
                len(report.removed),
                len(report.skipped),
                len(report.simulated),
                format_bytes(report.total_bytes_freed),
                extra={"event": "run_finished", "total_bytes_freed": report.total_bytes_freed},
            )

        return report

    def _run_category(
        self,
        category: CategoryKind,
        config: CleanupConfig,
        executor: RemovalExecutor,
        report: CleanupReport,
    ) -> None:
        """Resolve and execute every candidate of one category."""
        self.logger.info(
            "Cleaning %s",
            category.label.lower(),
            extra={"event": "category_started", "category": category.value},
        )

        count = 0
        category_bytes = 0
        for candidate in self.resolver.resolve(category, config):
            outcome = executor.execute(candidate, config.mode)
            report.add(outcome)
            count += 1
            if outcome.status is not OutcomeStatus.SKIPPED:
                category_bytes += outcome.size_bytes

        self.logger.info(
            "%s: %d candidates (%s)",
            category.label,
            count,
            format_bytes(category_bytes),
            extra={
                "event": "category_finished",
                "category": category.value,
                "candidates": count,
                "size_bytes": category_bytes,
            },
        )
