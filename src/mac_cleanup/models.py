"""Core data types for the cleanup engine."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class RemovalMode(Enum):
    """How the executor disposes of a candidate."""

    DRY_RUN = "dry_run"
    TRASH_BACKUP = "trash_backup"
    PERMANENT_DELETE = "permanent_delete"


class CategoryKind(Enum):
    """Whitelisted cleanup categories, declared in processing order."""

    USER_CACHES = "user_caches"
    BROWSER_CACHES = "browser_caches"
    TEMP_FILES = "temp_files"
    DOWNLOADS = "downloads"
    SYSTEM_CACHES = "system_caches"
    SNAPSHOTS = "snapshots"

    @property
    def label(self) -> str:
        """Human-readable category name."""
        return _LABELS[self]


_LABELS: dict[CategoryKind, str] = {
    CategoryKind.USER_CACHES: "User application caches",
    CategoryKind.BROWSER_CACHES: "Browser caches",
    CategoryKind.TEMP_FILES: "Temporary files",
    CategoryKind.DOWNLOADS: "Old downloads",
    CategoryKind.SYSTEM_CACHES: "System caches",
    CategoryKind.SNAPSHOTS: "Local snapshots",
}


class OutcomeStatus(Enum):
    """Result of a single removal attempt."""

    REMOVED = "removed"
    SKIPPED = "skipped"
    SIMULATED = "simulated"


@dataclass(frozen=True)
class Candidate:
    """A single entity proposed for removal within one category."""

    path: Path
    category: CategoryKind
    is_directory: bool
    snapshot_id: str | None = None

    def __str__(self) -> str:
        return self.snapshot_id or str(self.path)


@dataclass(frozen=True)
class RemovalOutcome:
    """Immutable record of what happened to one candidate."""

    path: Path
    category: CategoryKind
    size_bytes: int
    status: OutcomeStatus
    reason: str | None = None


@dataclass
class CleanupReport:
    """Aggregated result of one cleanup run."""

    started_at: datetime
    free_space_before: int
    outcomes: list[RemovalOutcome] = field(default_factory=list)
    total_bytes_freed: int = 0
    finished_at: datetime | None = None
    free_space_after: int | None = None

    def add(self, outcome: RemovalOutcome) -> None:
        """Append an outcome, folding removed bytes into the running total."""
        self.outcomes.append(outcome)
        if outcome.status is OutcomeStatus.REMOVED:
            self.total_bytes_freed += outcome.size_bytes

    def finalize(self, free_space_after: int) -> None:
        """Stamp the end of the run."""
        self.free_space_after = free_space_after
        self.finished_at = datetime.now()

    @property
    def removed(self) -> list[RemovalOutcome]:
        return self._with_status(OutcomeStatus.REMOVED)

    @property
    def skipped(self) -> list[RemovalOutcome]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def simulated(self) -> list[RemovalOutcome]:
        return self._with_status(OutcomeStatus.SIMULATED)

    def _with_status(self, status: OutcomeStatus) -> list[RemovalOutcome]:
        return [o for o in self.outcomes if o.status is status]

    def bytes_by_category(self) -> dict[CategoryKind, int]:
        """Sum of removed (or, in a dry run, simulated) bytes per category.

        Returns:
            Mapping of category to byte total, in processing order.

        """
        totals: dict[CategoryKind, int] = defaultdict(int)
        for outcome in self.outcomes:
            if outcome.status is not OutcomeStatus.SKIPPED:
                totals[outcome.category] += outcome.size_bytes
        return {kind: totals[kind] for kind in CategoryKind if kind in totals}
