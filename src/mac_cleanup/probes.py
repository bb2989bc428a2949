"""Read-only filesystem probes: sizes, open-file checks and free space."""

from __future__ import annotations

import os
import stat
import subprocess
from pathlib import Path

import psutil

_UNITS = ((1024**3, "GB"), (1024**2, "MB"), (1024, "KB"))


def probe_size(path: Path) -> int:
    """Return the size in bytes of a file or directory tree.

    Directories are totalled over the regular files they contain; symlinks
    are not followed. Entries that vanish or cannot be read count as 0,
    so this never raises.

    Args:
        path: File or directory to measure.

    Returns:
        Size in bytes.

    """
    try:
        st = path.lstat()
    except OSError:
        return 0

    if not stat.S_ISDIR(st.st_mode):
        return st.st_size

    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                file_st = os.lstat(os.path.join(dirpath, name))
            except OSError:
                continue
            if stat.S_ISREG(file_st.st_mode):
                total += file_st.st_size
    return total


def is_file_in_use(path: Path) -> bool:
    """Check whether any process holds a file open.

    Uses ``lsof``; an unavailable ``lsof`` counts as "not in use".

    Args:
        path: File to check.

    Returns:
        True if another process has the file open.

    """
    try:
        result = subprocess.run(
            ["lsof", "--", str(path)],
            capture_output=True,
            check=False,
        )
    except (subprocess.SubprocessError, OSError):
        return False
    return result.returncode == 0


def free_disk_space(path: Path) -> int:
    """Free bytes on the volume holding ``path``, or 0 if unknown."""
    try:
        return psutil.disk_usage(str(path)).free
    except OSError:
        return 0


def format_bytes(size: int) -> str:
    """Format a byte count for display (e.g. ``1.50 MB``)."""
    for factor, unit in _UNITS:
        if size >= factor:
            return f"{size / factor:.2f} {unit}"
    return f"{size} B"
