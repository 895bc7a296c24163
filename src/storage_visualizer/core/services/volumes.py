from __future__ import annotations

"""
Volume Resolution Service.

Selects the mounted volume that holds a target path: the mount point that
is the longest path-prefix of the target.
"""

import logging
import posixpath
from typing import Iterable, Optional

from storage_visualizer.domain.errors import VolumeResolutionError

logger = logging.getLogger(__name__)


def resolve_volume(target_path: str, mount_points: Iterable[str]) -> str:
    """
    Return the closest enclosing mount point of a target path.

    Matching is done on whole path components, so '/mnt' encloses
    '/mnt/data' but not '/mnt2'. Among equally long matches the first one
    in iteration order wins.

    Args:
        target_path: Absolute, normalized target directory.
        mount_points: Candidate mount points, in a stable order.

    Returns:
        str: The chosen mount point.

    Raises:
        VolumeResolutionError: If no mount point encloses the target.
    """
    best: Optional[str] = None
    best_len = -1
    target = posixpath.normpath(target_path)

    for mount in mount_points:
        normalized = posixpath.normpath(mount)
        if not _encloses(normalized, target):
            continue
        if len(normalized) > best_len:
            best, best_len = mount, len(normalized)

    if best is None:
        raise VolumeResolutionError(f"No mounted volume contains '{target_path}'.")

    logger.debug(f"Resolved volume for {target_path}: {best}")
    return best


def _encloses(mount: str, target: str) -> bool:
    if mount == "/":
        return target.startswith("/")
    return target == mount or target.startswith(mount + "/")
