"""List and delete local Time Machine snapshots using tmutil."""

from __future__ import annotations

import logging
import re
import subprocess

from .errors import SnapshotError

SNAPSHOT_PREFIX = "com.apple.TimeMachine."

_DATE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2}-\d{6})")

logger = logging.getLogger(__name__)


def snapshot_date(identifier: str) -> str:
    """Extract the ``YYYY-MM-DD-HHMMSS`` stamp from a snapshot identifier.

    Args:
        identifier: e.g. ``com.apple.TimeMachine.2024-05-01-101500.local``.

    Returns:
        The date stamp tmutil expects for deletion.

    Raises:
        SnapshotError: If the identifier carries no date stamp.

    """
    match = _DATE_PATTERN.search(identifier)
    if not match:
        raise SnapshotError(f"No date in snapshot identifier: {identifier}")
    return match.group(1)


class SnapshotManager:
    """Wrapper around the tmutil local snapshot commands."""

    def __init__(self, volume: str = "/") -> None:
        self.volume = volume

    def list_snapshots(self) -> list[str]:
        """List local snapshot identifiers, oldest first.

        Returns:
            Snapshot identifiers, or an empty list if tmutil is unavailable.

        """
        try:
            result = subprocess.run(
                ["tmutil", "listlocalsnapshots", self.volume],
                capture_output=True,
                text=True,
                check=False,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.debug("tmutil unavailable: %s", e)
            return []

        if result.returncode != 0:
            logger.warning("tmutil listlocalsnapshots failed: %s", result.stderr.strip())
            return []

        return [
            line.strip()
            for line in result.stdout.splitlines()
            if line.strip().startswith(SNAPSHOT_PREFIX)
        ]

    def delete_snapshot(self, identifier: str) -> None:
        """Delete a single local snapshot.

        Args:
            identifier: Snapshot identifier from ``list_snapshots``.

        Raises:
            SnapshotError: If tmutil fails.

        """
        date = snapshot_date(identifier)
        try:
            result = subprocess.run(
                ["tmutil", "deletelocalsnapshots", date],
                capture_output=True,
                text=True,
                check=False,
            )
        except (subprocess.SubprocessError, OSError) as e:
            raise SnapshotError(f"Could not run tmutil: {e}") from e

        if result.returncode != 0:
            raise SnapshotError(
                f"tmutil deletelocalsnapshots {date} failed: {result.stderr.strip() or result.returncode}"
            )
