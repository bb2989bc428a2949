"""Tests for the single-instance lock."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from mac_cleanup.errors import AlreadyRunningError, CleanupError, LockFileError
from mac_cleanup.lock import SingleInstanceGuard


@pytest.fixture
def lock_file(tmp_path: Path) -> Path:
    return tmp_path / "mac-cleanup.lock"


@pytest.fixture
def guard(lock_file: Path) -> SingleInstanceGuard:
    return SingleInstanceGuard(lock_file, logging.getLogger("test-lock"))


class TestAcquireRelease:
    """Tests for the normal lock lifecycle."""

    def test_acquire_records_pid(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        guard.acquire()

        assert lock_file.read_text().strip() == str(os.getpid())

    def test_release_removes_lock(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        guard.acquire()
        guard.release()

        assert not lock_file.exists()

    def test_release_without_lock(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        """Releasing an absent lock is harmless."""
        guard.release()
        assert not lock_file.exists()

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        lock_file = tmp_path / "nested" / "run" / "mac-cleanup.lock"
        SingleInstanceGuard(lock_file, logging.getLogger("test-lock")).acquire()
        assert lock_file.exists()

    def test_reacquire_after_release(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        guard.acquire()
        guard.release()
        guard.acquire()

        assert lock_file.exists()


class TestContention:
    """Tests for live and stale lock owners."""

    def test_live_owner_blocks(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        """A lock naming a running process fails with AlreadyRunningError."""
        lock_file.write_text(f"{os.getpid()}\n")

        with pytest.raises(AlreadyRunningError) as exc_info:
            guard.acquire()

        assert exc_info.value.pid == os.getpid()
        assert lock_file.exists()

    def test_second_guard_blocked(self, lock_file: Path) -> None:
        first = SingleInstanceGuard(lock_file, logging.getLogger("test-lock"))
        second = SingleInstanceGuard(lock_file, logging.getLogger("test-lock"))
        first.acquire()

        with pytest.raises(AlreadyRunningError):
            second.acquire()

    def test_dead_owner_is_stale(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        """A lock naming a dead process is overwritten."""
        lock_file.write_text("999999\n")

        with patch("mac_cleanup.lock.psutil.pid_exists", return_value=False):
            guard.acquire()

        assert lock_file.read_text().strip() == str(os.getpid())

    @pytest.mark.parametrize("content", ["", "not-a-pid", "0", "-5"])
    def test_unusable_content_is_stale(self, guard: SingleInstanceGuard, lock_file: Path, content: str) -> None:
        lock_file.write_text(content)

        guard.acquire()

        assert lock_file.read_text().strip() == str(os.getpid())


class TestUnwritableLock:
    """Tests for lock files the current user cannot write."""

    def test_stale_lock_owned_by_other_user(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        """A stale lock that cannot be overwritten fails with a cleanup error."""
        lock_file.write_text("999999\n")

        with (
            patch("mac_cleanup.lock.psutil.pid_exists", return_value=False),
            patch.object(Path, "write_text", side_effect=PermissionError(13, "Permission denied")),
            pytest.raises(LockFileError, match="Permission denied") as exc_info,
        ):
            guard.acquire()

        assert isinstance(exc_info.value, CleanupError)
        assert exc_info.value.path == lock_file

    def test_unwritable_lock_directory(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        with (
            patch.object(Path, "open", side_effect=PermissionError(13, "Permission denied")),
            pytest.raises(LockFileError),
        ):
            guard.acquire()

        assert not lock_file.exists()


class TestContextManager:
    """Tests for scoped release."""

    def test_releases_on_normal_exit(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        with guard:
            assert lock_file.exists()
        assert not lock_file.exists()

    def test_releases_on_exception(self, guard: SingleInstanceGuard, lock_file: Path) -> None:
        """The lock is removed even when the guarded block raises."""
        with pytest.raises(RuntimeError), guard:
            raise RuntimeError("boom")

        assert not lock_file.exists()
