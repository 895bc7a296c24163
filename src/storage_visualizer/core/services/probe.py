from __future__ import annotations

"""
Disk Usage Measurement Services.

Wraps the operating system's "directory size" and "filesystem capacity"
queries behind the SizeProbe interface. Every figure is expressed in KiB.
Directory measurements never follow symbolic links and never cross into
another filesystem; a failed measurement is reported as None so the walk
can carry on.
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set, Tuple

from storage_visualizer.domain.errors import ProbeError, UnrecognizedProbeOutputError
from storage_visualizer.domain.storage_models import VolumeUsage

logger = logging.getLogger(__name__)

DU_COMMAND: List[str] = ["du", "-s", "-x", "-k"]
DF_COMMAND: List[str] = ["df", "-l", "-k"]

# Column count per known df row layout
_LINUX_COLUMNS = 6   # Filesystem 1K-blocks Used Available Use% Mounted on
_MACOS_COLUMNS = 9   # ... Capacity iused ifree %iused Mounted on

# Untranslated headers and decimal output, whatever the user's locale
_C_LOCALE = {"LC_ALL": "C"}


# ==============================================================================
# PROBE INTERFACE
# ==============================================================================

class SizeProbe(ABC):
    """
    Abstract source of disk usage figures.
    """

    @abstractmethod
    def query_size(self, path: str) -> Optional[int]:
        """
        Measure the on-disk size of a directory.

        Args:
            path: Directory to measure.

        Returns:
            Optional[int]: Size in KiB, or None if the measurement failed.
        """

    @abstractmethod
    def query_volumes(self) -> Dict[str, VolumeUsage]:
        """
        Report capacity figures for every locally mounted volume.

        Returns:
            Dict[str, VolumeUsage]: Volumes keyed by mount point, in listing order.

        Raises:
            UnrecognizedProbeOutputError: If the capacity output cannot be parsed.
        """


# ==============================================================================
# COMMAND-LINE PROBE (du / df)
# ==============================================================================

class DuSizeProbe(SizeProbe):
    """
    Probe backed by the 'du' and 'df' utilities.

    Attributes:
        timeout: Seconds allowed per command; None waits indefinitely.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout if timeout else None

    def query_size(self, path: str) -> Optional[int]:
        try:
            return self.measure(path)
        except ProbeError as e:
            logger.warning(str(e))
            return None

    def measure(self, path: str) -> int:
        """
        Run 'du -sxk' on a directory.

        A non-zero exit code with a readable total (some entries were
        unreadable) still yields the total.

        Raises:
            ProbeError: If du cannot be run, times out or prints no total.
        """
        cmd = DU_COMMAND + [path]
        logger.debug(f"Running {' '.join(cmd)}")
        output = self._run(cmd, path)

        size = parse_du_output(output.stdout)
        if size is None:
            reason = (output.stderr or "").strip() or f"exit code {output.returncode}"
            raise ProbeError(path, reason)

        if output.returncode != 0:
            logger.warning(f"du reported errors for '{path}'; size may be under-counted")
        return size

    def query_volumes(self) -> Dict[str, VolumeUsage]:
        try:
            output = subprocess.run(
                DF_COMMAND,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=_probe_env(),
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise UnrecognizedProbeOutputError(f"Capacity query failed: {e}") from e

        if not output.stdout.strip():
            raise UnrecognizedProbeOutputError(
                f"Capacity query produced no output: {output.stderr.strip()}"
            )
        return parse_df_output(output.stdout)

    def _run(self, cmd: List[str], path: str) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=_probe_env(),
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ProbeError(path, f"timed out after {self.timeout}s") from e
        except OSError as e:
            raise ProbeError(path, str(e)) from e


# ==============================================================================
# PURE-PYTHON PROBE
# ==============================================================================

class ScandirSizeProbe(DuSizeProbe):
    """
    Probe that measures directories with os.scandir instead of 'du'.

    Sizes are allocated blocks (st_blocks * 512), so sparse files count
    for what they occupy, and a file with several hard links inside the
    measured tree counts once, as with 'du'. Capacity figures still come
    from 'df'. The timeout applies to 'df' only: the walk itself is not
    interrupted.
    """

    def measure(self, path: str) -> int:
        try:
            root_stat = os.stat(path, follow_symlinks=False)
        except OSError as e:
            raise ProbeError(path, str(e)) from e

        total = _allocated_bytes(root_stat)
        seen_inodes: Set[Tuple[int, int]] = set()
        stack = [path]
        while stack:
            current = stack.pop()
            try:
                entries = list(os.scandir(current))
            except OSError as e:
                logger.debug(f"Unreadable directory skipped: {current} ({e})")
                continue

            for entry in entries:
                try:
                    if entry.is_symlink():
                        continue
                    st = entry.stat(follow_symlinks=False)
                    if st.st_dev != root_stat.st_dev:
                        continue
                    if entry.is_dir(follow_symlinks=False):
                        stack.append(entry.path)
                    elif st.st_nlink > 1:
                        inode = (st.st_dev, st.st_ino)
                        if inode in seen_inodes:
                            continue
                        seen_inodes.add(inode)
                    total += _allocated_bytes(st)
                except OSError:
                    continue

        return total // 1024


def _allocated_bytes(st: os.stat_result) -> int:
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return st.st_size
    return blocks * 512


def _probe_env() -> Dict[str, str]:
    return {**os.environ, **_C_LOCALE}


# ==============================================================================
# OUTPUT PARSERS
# ==============================================================================

def parse_du_output(text: str) -> Optional[int]:
    """
    Extract the total from 'du -s' output ("<size>\\t<path>").

    Args:
        text: Raw standard output.

    Returns:
        Optional[int]: The size, or None when no total line is present.
    """
    lines = [line for line in (text or "").splitlines() if line.strip()]
    if not lines:
        return None
    first = lines[-1].split(None, 1)[0]
    try:
        return int(first)
    except ValueError:
        return None


def parse_df_output(text: str) -> Dict[str, VolumeUsage]:
    """
    Parse 'df -lk' output into capacity figures per mount point.

    The first line is a header and is skipped without being read, so a
    translated header does not matter. Each row is matched against two
    layouts: the 6-column Linux form and the 9-column macOS form (which
    adds inode columns). Mount points that contain spaces are kept whole.

    Args:
        text: Raw standard output of df.

    Returns:
        Dict[str, VolumeUsage]: Volumes keyed by mount point, in listing order.

    Raises:
        UnrecognizedProbeOutputError: If the output is empty or any row has an unknown shape.
    """
    lines = [line for line in (text or "").splitlines() if line.strip()]
    if not lines:
        raise UnrecognizedProbeOutputError("Capacity query output is empty.")

    volumes: Dict[str, VolumeUsage] = {}
    for line in lines[1:]:
        columns = _row_columns(line.split())
        if columns is None:
            raise UnrecognizedProbeOutputError(
                f"Reported disk utilization not understood: {line!r}"
            )

        cols = line.split(None, columns - 1)
        try:
            capacity, used, available = (int(cols[1]), int(cols[2]), int(cols[3]))
        except ValueError as e:
            raise UnrecognizedProbeOutputError(
                f"Reported disk utilization not understood: {line!r}"
            ) from e

        mount_point = cols[-1].strip()
        volumes[mount_point] = VolumeUsage(
            mount_point=mount_point,
            capacity=capacity,
            used=used,
            available=available,
        )

    logger.debug(f"Discovered {len(volumes)} mounted volumes")
    return volumes


def _row_columns(tokens: List[str]) -> Optional[int]:
    """Column count of a df row, from where its percentage columns sit."""
    if len(tokens) >= _MACOS_COLUMNS and _is_percent(tokens[4]) and _is_percent(tokens[7]):
        return _MACOS_COLUMNS
    if len(tokens) >= _LINUX_COLUMNS and _is_percent(tokens[4]):
        return _LINUX_COLUMNS
    return None


def _is_percent(token: str) -> bool:
    # df prints '-' when a filesystem reports no capacity
    return token == "-" or token.endswith("%")


def create_probe(backend: str, timeout: Optional[float] = None) -> SizeProbe:
    """
    Build the probe selected by configuration.

    Args:
        backend: 'du' or 'scandir'.
        timeout: Per-call timeout in seconds; 0 or None disables it.

    Returns:
        SizeProbe: Ready-to-use probe.
    """
    if backend == "scandir":
        return ScandirSizeProbe(timeout=timeout)
    if backend == "du":
        return DuSizeProbe(timeout=timeout)
    raise ValueError(f"Unknown probe backend: {backend!r}")
