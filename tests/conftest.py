"""Shared fixtures: a sandboxed set of cleanup locations under tmp_path."""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from mac_cleanup.config import CleanupPaths

DAY = 24 * 60 * 60


@pytest.fixture
def cleanup_paths(tmp_path: Path) -> CleanupPaths:
    """Create every whitelisted root inside tmp_path."""
    home = tmp_path / "home"
    user_caches = home / "Library/Caches"
    paths = CleanupPaths(
        user_caches=user_caches,
        safari=home / "Library/Safari",
        browser_caches=(user_caches / "Google/Chrome", user_caches / "Firefox"),
        temp_roots=(tmp_path / "tmp", tmp_path / "var/folders"),
        downloads=home / "Downloads",
        system_caches=(tmp_path / "Library/Caches", tmp_path / "System/Volumes/Data/Library/Caches"),
        trash=home / ".Trash",
        lock_file=tmp_path / "run/mac-cleanup.lock",
        volume=tmp_path,
    )
    for directory in (
        paths.user_caches,
        paths.safari,
        *paths.temp_roots,
        paths.downloads,
        *paths.system_caches,
    ):
        directory.mkdir(parents=True, exist_ok=True)
    return paths


def set_age(path: Path, days: float) -> None:
    """Backdate a path's access and modification times by ``days``."""
    stamp = time.time() - days * DAY
    os.utime(path, (stamp, stamp))


@pytest.fixture
def make_file() -> Callable[..., Path]:
    """Factory creating a file of a given size and age."""

    def _make(path: Path, size: int = 0, days_old: float = 0) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x" * size)
        if days_old:
            set_age(path, days_old)
        return path

    return _make
