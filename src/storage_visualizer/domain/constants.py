from __future__ import annotations

"""
Domain Constants.

Provides the labels of synthetic nodes, size unit conversion factors and
the defaults shared by the configuration layer and the analysis core.
"""

from typing import Dict, Tuple

APP_NAME = "storage-visualizer"
APP_VERSION = "1.0.0"

# Synthetic node labels
FREE_SPACE_LABEL = "Free Space"
OTHER_LABEL = "Other"

# Node kinds
KIND_VOLUME = "volume"
KIND_DIRECTORY = "directory"
KIND_FREE_SPACE = "free_space"
KIND_OTHER = "other"

# Root children order before any listed directory
FREE_SPACE_INDEX = -2
OTHER_INDEX = -1

DEFAULT_THRESHOLD = 0.05
DEFAULT_UNIT = "GiB"
DEFAULT_BACKEND = "du"

# Probes report KiB; factors convert KiB into the report unit
UNIT_FACTORS: Dict[str, int] = {
    "KiB": 1,
    "MiB": 1024,
    "GiB": 1024 * 1024,
}

PROBE_BACKENDS: Tuple[str, ...] = ("du", "scandir")

REPORT_FILENAME_FORMAT = "StorageReport_%Y_%m_%d-%H_%M_%S.html"
