from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides path normalization, directory listing for the storage walk and
output directory preparation. Acts as the only place where the analysis
core touches 'os' directly for structural (non-measurement) queries.
"""

import logging
import os
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a directory path string into an absolute filesystem path.

    Handles environment variable expansion ($VAR) and user home shortcuts
    (~/). Reverts to fallback if the input is empty or malformed.

    Args:
        path: Raw input path string.
        fallback: Default path to use if resolution fails.

    Returns:
        str: Normalized absolute path without a trailing separator.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    try:
        p = os.path.expandvars(os.path.expanduser(p))
        return os.path.normpath(os.path.abspath(p))
    except Exception:
        return os.path.normpath(os.path.abspath(fallback))


def is_same_path(a: str, b: str) -> bool:
    """Compare two paths after normalization."""
    return os.path.normpath(a) == os.path.normpath(b)

# -----------------------------------------------------------------------------
# DIRECTORY LISTING API
# -----------------------------------------------------------------------------

def list_child_directories(path: str, *, one_file_system: bool = True) -> List[str]:
    """
    List the immediate subdirectories eligible for the storage walk.

    Skips dot-prefixed entries, symbolic links and anything that is not a
    directory. When one_file_system is set, directories living on another
    device (mount points below the parent) are skipped as well.

    Args:
        path: Directory to list.
        one_file_system: Stay on the device of the listed directory.

    Returns:
        List[str]: Absolute child paths, sorted by name. Empty when the
                   directory cannot be listed.
    """
    try:
        parent_dev = os.stat(path, follow_symlinks=False).st_dev
        entries = list(os.scandir(path))
    except OSError as e:
        logger.warning(f"Cannot list directory '{path}': {e}")
        return []

    children: List[str] = []
    for entry in entries:
        if entry.name.startswith("."):
            continue
        try:
            if entry.is_symlink() or not entry.is_dir(follow_symlinks=False):
                continue
            if one_file_system and entry.stat(follow_symlinks=False).st_dev != parent_dev:
                logger.debug(f"Skipping mount point on another device: {entry.path}")
                continue
        except OSError:
            continue
        children.append(entry.path)

    children.sort()
    return children

# -----------------------------------------------------------------------------
# OUTPUT PREPARATION API
# -----------------------------------------------------------------------------

def safe_mkdir(path: str) -> Tuple[bool, Optional[str]]:
    """
    Attempt to recursively create a directory structure safely.

    Args:
        path: Target directory path.

    Returns:
        Tuple[bool, Optional[str]]: (Success flag, Error message if applicable).
    """
    try:
        os.makedirs(path, exist_ok=True)
        return True, None
    except OSError as e:
        return False, str(e)
