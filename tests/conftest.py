from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. A scripted SizeProbe so walks run against tmp_path trees with chosen sizes.
3. Helpers to lay out directory trees.
"""

import os
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from storage_visualizer.core.services.probe import SizeProbe  # noqa: E402
from storage_visualizer.domain.storage_models import VolumeUsage  # noqa: E402


# -----------------------------------------------------------------------------
# Test Doubles
# -----------------------------------------------------------------------------
class ScriptedProbe(SizeProbe):
    """
    SizeProbe answering from dictionaries.

    Directories missing from 'sizes' measure 0. A value of None simulates a
    failed measurement (e.g. permission denied).
    """

    def __init__(
            self,
            sizes: Dict[str, Optional[int]],
            volumes: Optional[Dict[str, VolumeUsage]] = None,
    ) -> None:
        self.sizes = dict(sizes)
        self.volumes = dict(volumes or {})
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def query_size(self, path: str) -> Optional[int]:
        with self._lock:
            self.calls.append(path)
        return self.sizes.get(path, 0)

    def query_volumes(self) -> Dict[str, VolumeUsage]:
        return dict(self.volumes)


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def make_dirs() -> Callable[[Path, Iterable[str]], Dict[str, str]]:
    """
    Return a helper that creates relative directories under a base path.

    The helper returns a mapping of each relative path (including the
    intermediate parents it creates) to its absolute path.
    """
    def _make(base: Path, rel_paths: Iterable[str]) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for rel in rel_paths:
            p = base / rel
            p.mkdir(parents=True, exist_ok=True)
            parts = Path(rel).parts
            for i in range(1, len(parts) + 1):
                sub = "/".join(parts[:i])
                out[sub] = str(base.joinpath(*parts[:i]))
        return out

    return _make


@pytest.fixture
def scripted_probe() -> Callable[..., ScriptedProbe]:
    """Factory fixture for ScriptedProbe instances."""
    return ScriptedProbe


@pytest.fixture
def volume_dir(tmp_path: Path) -> Path:
    """A directory standing in for a volume mount point."""
    vol = tmp_path / "vol"
    vol.mkdir()
    # Paths seen by the engine are symlink-free (e.g. /tmp on macOS)
    return Path(os.path.realpath(str(vol)))


@pytest.fixture
def mock_config_dict(volume_dir: Path, tmp_path: Path) -> Dict[str, Any]:
    """
    Return a valid, complete configuration dictionary for testing.

    Reflects the structure defined in 'storage_visualizer.domain.config'.
    """
    return {
        "target_path": str(volume_dir),
        "output_dir": str(tmp_path / "reports"),
        "threshold": 0.05,
        "unit": "KiB",
        "probe_backend": "du",
        "probe_timeout": 0.0,
        "workers": 1,
        "write_report": False,
    }
