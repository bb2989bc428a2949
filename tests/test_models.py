"""Tests for the engine data model."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from mac_cleanup.models import (
    Candidate,
    CategoryKind,
    CleanupReport,
    OutcomeStatus,
    RemovalOutcome,
)


def _outcome(status: OutcomeStatus, size: int, category: CategoryKind = CategoryKind.USER_CACHES) -> RemovalOutcome:
    return RemovalOutcome(path=Path("/x"), category=category, size_bytes=size, status=status)


class TestCategoryKind:
    """Tests for the closed category enumeration."""

    def test_declared_order(self) -> None:
        """Iteration follows the fixed processing order."""
        assert list(CategoryKind) == [
            CategoryKind.USER_CACHES,
            CategoryKind.BROWSER_CACHES,
            CategoryKind.TEMP_FILES,
            CategoryKind.DOWNLOADS,
            CategoryKind.SYSTEM_CACHES,
            CategoryKind.SNAPSHOTS,
        ]

    def test_every_category_has_label(self) -> None:
        """Each category carries a display label."""
        for kind in CategoryKind:
            assert kind.label


class TestCandidate:
    """Tests for Candidate display."""

    def test_str_uses_snapshot_id(self) -> None:
        candidate = Candidate(
            path=Path("snapshot:com.apple.TimeMachine.2024-01-01-000000.local"),
            category=CategoryKind.SNAPSHOTS,
            is_directory=False,
            snapshot_id="com.apple.TimeMachine.2024-01-01-000000.local",
        )
        assert str(candidate) == "com.apple.TimeMachine.2024-01-01-000000.local"

    def test_str_uses_path(self) -> None:
        candidate = Candidate(path=Path("/a/b"), category=CategoryKind.TEMP_FILES, is_directory=False)
        assert str(candidate) == "/a/b"


class TestCleanupReport:
    """Tests for report accounting."""

    def test_only_removed_counts_towards_total(self) -> None:
        """Simulated and skipped outcomes never add to bytes freed."""
        report = CleanupReport(started_at=datetime.now(), free_space_before=0)
        report.add(_outcome(OutcomeStatus.REMOVED, 100))
        report.add(_outcome(OutcomeStatus.SIMULATED, 1000))
        report.add(_outcome(OutcomeStatus.SKIPPED, 10_000))
        report.add(_outcome(OutcomeStatus.REMOVED, 5))

        assert report.total_bytes_freed == 105
        assert report.total_bytes_freed == sum(o.size_bytes for o in report.removed)
        assert len(report.outcomes) == 4
        assert len(report.simulated) == 1
        assert len(report.skipped) == 1

    def test_finalize_stamps_end(self) -> None:
        report = CleanupReport(started_at=datetime.now(), free_space_before=10)
        assert report.finished_at is None

        report.finalize(free_space_after=20)

        assert report.free_space_after == 20
        assert report.finished_at is not None
        assert report.finished_at >= report.started_at

    def test_bytes_by_category_in_processing_order(self) -> None:
        """Per-category totals skip skipped outcomes and keep declared order."""
        report = CleanupReport(started_at=datetime.now(), free_space_before=0)
        report.add(_outcome(OutcomeStatus.REMOVED, 7, CategoryKind.TEMP_FILES))
        report.add(_outcome(OutcomeStatus.REMOVED, 3, CategoryKind.USER_CACHES))
        report.add(_outcome(OutcomeStatus.SKIPPED, 50, CategoryKind.USER_CACHES))
        report.add(_outcome(OutcomeStatus.SKIPPED, 50, CategoryKind.DOWNLOADS))

        totals = report.bytes_by_category()

        assert list(totals) == [CategoryKind.USER_CACHES, CategoryKind.TEMP_FILES]
        assert totals[CategoryKind.USER_CACHES] == 3
        assert totals[CategoryKind.TEMP_FILES] == 7
