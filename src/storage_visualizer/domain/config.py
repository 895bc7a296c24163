from __future__ import annotations

"""
Configuration Domain Management.

Provides the default run configuration and read-only loading of JSON
configuration files. Nothing is written back: every run starts from the
defaults, an optional file and the command line.
"""

import json
import logging
import os
from typing import Any, Dict

from storage_visualizer.domain.constants import (
    DEFAULT_BACKEND,
    DEFAULT_THRESHOLD,
    DEFAULT_UNIT,
)

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Configuration Models (Dict-based)
# -----------------------------------------------------------------------------
def get_default_config() -> Dict[str, Any]:
    """
    Generate the default runtime configuration.
    This dictionary drives the behavior of the analysis engine.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # IO Paths
        "target_path": os.path.expanduser("~"),
        "output_dir": os.getcwd(),

        # Significance policy
        "threshold": DEFAULT_THRESHOLD,
        "unit": DEFAULT_UNIT,

        # Measurement
        "probe_backend": DEFAULT_BACKEND,
        "probe_timeout": 0.0,
        "workers": 1,

        # Output
        "write_report": True,
    }


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Load configuration overrides from a JSON file.

    Keys that are not part of the default configuration are dropped with a
    warning so that stale files cannot pollute the schema.

    Args:
        path: Path to a JSON object file.

    Returns:
        Dict[str, Any]: The recognized overrides.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not a JSON object.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file '{path}' must contain a JSON object.")

    known = get_default_config()
    overrides: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key '{key}' in {path}")
            continue
        overrides[key] = value

    logger.debug(f"Loaded {len(overrides)} configuration keys from {path}")
    return overrides
