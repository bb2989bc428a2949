"""Resolve whitelisted cleanup categories into candidate paths."""

from __future__ import annotations

import logging
import os
import stat
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from .models import Candidate, CategoryKind
from .probes import is_file_in_use
from .snapshots import SnapshotManager

if TYPE_CHECKING:
    from .config import CleanupConfig, CleanupPaths

# Caches the system UI depends on; never candidates
PROTECTED_CACHE_NAMES: frozenset[str] = frozenset({
    "com.apple.Safari",
    "com.apple.sharedfilelist",
})

# SQLite side files Safari recreates on demand
BROWSER_SIDE_FILE_SUFFIXES: tuple[str, ...] = (".db-wal", ".db-shm")

MAX_SNAPSHOTS = 5

SECONDS_PER_DAY = 24 * 60 * 60

logger = logging.getLogger("mac-cleanup")


def category_roots(category: CategoryKind, paths: CleanupPaths) -> tuple[Path, ...]:
    """Whitelist roots a category's candidates must live under.

    Args:
        category: Cleanup category.
        paths: Configured filesystem locations.

    Returns:
        Root directories; empty for categories that are not filesystem paths.

    """
    if category is CategoryKind.USER_CACHES:
        return (paths.user_caches,)
    if category is CategoryKind.BROWSER_CACHES:
        return (*paths.browser_caches, paths.safari)
    if category is CategoryKind.TEMP_FILES:
        return paths.temp_roots
    if category is CategoryKind.DOWNLOADS:
        return (paths.downloads,)
    if category is CategoryKind.SYSTEM_CACHES:
        return paths.system_caches
    return ()


def is_whitelisted(path: Path, category: CategoryKind, paths: CleanupPaths) -> bool:
    """Check that a path may be removed as part of ``category``.

    A path qualifies when it lies strictly beneath one of the category's
    roots, or is itself one of the named browser cache directories. The
    run's own lock file never qualifies, even when it sits in a temp root.
    """
    if path == paths.lock_file:
        return False
    if category is CategoryKind.BROWSER_CACHES and path in paths.browser_caches:
        return True
    if category is CategoryKind.USER_CACHES and path.name in PROTECTED_CACHE_NAMES:
        return False
    return any(path != root and path.is_relative_to(root) for root in category_roots(category, paths))


def _log_walk_error(error: OSError) -> None:
    logger.warning("Cannot read %s: %s", error.filename, error.strerror)


class TargetResolver:
    """Produces lazy candidate sequences for each cleanup category."""

    def __init__(
        self,
        in_use: Callable[[Path], bool] = is_file_in_use,
        snapshots: SnapshotManager | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            in_use: Predicate telling whether a file is held open.
            snapshots: Snapshot subsystem wrapper.

        """
        self.in_use = in_use
        self.snapshots = snapshots or SnapshotManager()

    def resolve(self, category: CategoryKind, config: CleanupConfig) -> Iterator[Candidate]:
        """Scan the filesystem for a category's candidates.

        Each call performs a fresh scan. Order within a category follows
        directory listing order and is not guaranteed. The lock file is
        never yielded.

        Args:
            category: Category to resolve.
            config: Run configuration.

        Returns:
            Iterator over candidates.

        """
        paths = config.paths
        return (
            candidate
            for candidate in self._scan(category, config)
            if candidate.path != paths.lock_file
        )

    def _scan(self, category: CategoryKind, config: CleanupConfig) -> Iterator[Candidate]:
        paths = config.paths
        if category is CategoryKind.USER_CACHES:
            return self._immediate_children(
                category, (paths.user_caches,), exclude=PROTECTED_CACHE_NAMES
            )
        if category is CategoryKind.BROWSER_CACHES:
            return self._browser_caches(paths)
        if category is CategoryKind.TEMP_FILES:
            return self._temp_files(paths.temp_roots, config.temp_file_age_days)
        if category is CategoryKind.DOWNLOADS:
            return self._old_downloads(paths.downloads, config.download_file_age_days)
        if category is CategoryKind.SYSTEM_CACHES:
            return self._immediate_children(category, paths.system_caches)
        return self._snapshots()

    def _immediate_children(
        self,
        category: CategoryKind,
        roots: tuple[Path, ...],
        exclude: frozenset[str] = frozenset(),
    ) -> Iterator[Candidate]:
        """Yield the entries directly inside each root, never a root itself.

        Roots that point at an already-scanned directory (e.g. through a
        firmlink) are scanned once.
        """
        seen: set[Path] = set()
        for root in roots:
            if not root.is_dir():
                continue
            real_root = root.resolve()
            if real_root in seen:
                logger.debug("Skipping duplicate root: %s", root)
                continue
            seen.add(real_root)

            try:
                entries = list(os.scandir(root))
            except OSError as e:
                logger.warning("Cannot read %s: %s", root, e)
                continue

            for entry in entries:
                if entry.name in exclude:
                    continue
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    continue
                yield Candidate(path=Path(entry.path), category=category, is_directory=is_dir)

    def _browser_caches(self, paths: CleanupPaths) -> Iterator[Candidate]:
        for cache_dir in paths.browser_caches:
            if cache_dir.is_dir():
                yield Candidate(
                    path=cache_dir,
                    category=CategoryKind.BROWSER_CACHES,
                    is_directory=True,
                )

        if not paths.safari.is_dir():
            return
        for dirpath, _dirnames, filenames in os.walk(paths.safari, onerror=_log_walk_error):
            for name in filenames:
                if name.endswith(BROWSER_SIDE_FILE_SUFFIXES):
                    yield Candidate(
                        path=Path(dirpath) / name,
                        category=CategoryKind.BROWSER_CACHES,
                        is_directory=False,
                    )

    def _temp_files(self, roots: tuple[Path, ...], age_days: int) -> Iterator[Candidate]:
        cutoff = time.time() - age_days * SECONDS_PER_DAY
        for root in roots:
            if not root.is_dir():
                continue
            for dirpath, _dirnames, filenames in os.walk(root, onerror=_log_walk_error):
                for name in filenames:
                    path = Path(dirpath) / name
                    if not _is_old_regular_file(path, cutoff):
                        continue
                    if self.in_use(path):
                        logger.debug("Skipping temp file in use: %s", path)
                        continue
                    yield Candidate(path=path, category=CategoryKind.TEMP_FILES, is_directory=False)

    def _old_downloads(self, downloads: Path, age_days: int) -> Iterator[Candidate]:
        if not downloads.is_dir():
            return
        cutoff = time.time() - age_days * SECONDS_PER_DAY
        try:
            entries = list(os.scandir(downloads))
        except OSError as e:
            logger.warning("Cannot read %s: %s", downloads, e)
            return

        for entry in entries:
            path = Path(entry.path)
            if _is_old_regular_file(path, cutoff):
                yield Candidate(path=path, category=CategoryKind.DOWNLOADS, is_directory=False)

    def _snapshots(self) -> Iterator[Candidate]:
        for identifier in self.snapshots.list_snapshots()[:MAX_SNAPSHOTS]:
            yield Candidate(
                path=Path(f"snapshot:{identifier}"),
                category=CategoryKind.SNAPSHOTS,
                is_directory=False,
                snapshot_id=identifier,
            )


def _is_old_regular_file(path: Path, cutoff: float) -> bool:
    """Regular file (not a symlink) last modified at or before ``cutoff``."""
    try:
        st = path.lstat()
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode) and st.st_mtime <= cutoff
