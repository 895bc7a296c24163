from __future__ import annotations

"""
Configuration Validation Service.

Acts as the gatekeeper for the analysis engine, ensuring that the
configuration dictionary conforms to the expected schema. Handles type
coercion, range checks and default value injection.
"""

import logging
from typing import Any, Dict, List, Tuple

from storage_visualizer.domain.config import get_default_config
from storage_visualizer.domain.constants import PROBE_BACKENDS, UNIT_FACTORS

logger = logging.getLogger(__name__)

MAX_WORKERS = 64


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize the provided configuration dictionary.

    Converts untrusted inputs (CLI, JSON files) into strictly typed
    parameters and fills missing keys with domain defaults.

    Args:
        config: Raw configuration data (usually a dictionary).
        strict: If True, raises exceptions on invalid values instead of coercing.

    Returns:
        Tuple[Dict[str, Any], List[str]]: The normalized configuration and
                                          a list of warnings.
    """
    warnings: List[str] = []
    defaults = get_default_config()

    # 1. Base Type Validation
    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using defaults.")
        logger.warning(msg)
        return defaults, warnings

    merged: Dict[str, Any] = dict(defaults)
    merged.update(config)

    # 2. Field Processing & Normalization
    for field in ("target_path", "output_dir"):
        merged[field] = _as_str(merged.get(field), defaults[field], field, warnings, strict)

    merged["write_report"] = _as_bool(
        merged.get("write_report"), defaults["write_report"], "write_report", warnings, strict
    )

    merged["threshold"] = _as_fraction(
        merged.get("threshold"), defaults["threshold"], "threshold", warnings, strict
    )
    merged["probe_timeout"] = _as_non_negative_float(
        merged.get("probe_timeout"), defaults["probe_timeout"], "probe_timeout", warnings, strict
    )
    merged["workers"] = _as_worker_count(
        merged.get("workers"), defaults["workers"], warnings, strict
    )

    # 3. Enumerated fields
    merged["unit"] = _as_choice(
        merged.get("unit"), defaults["unit"], "unit", tuple(UNIT_FACTORS), warnings, strict
    )
    merged["probe_backend"] = _as_choice(
        merged.get("probe_backend"), defaults["probe_backend"], "probe_backend",
        PROBE_BACKENDS, warnings, strict
    )

    return merged, warnings


# -----------------------------------------------------------------------------
# PRIVATE HELPERS: TYPE COERCION
# -----------------------------------------------------------------------------

def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    """Validate and sanitize string inputs."""
    if value is None:
        return fallback
    if isinstance(value, str):
        v = value.strip()
        return v if v else fallback

    msg = f"Invalid field '{field}': expected str, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    """Coerce various input types into native booleans."""
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback

    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            warnings.append(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if isinstance(value, str):
            s = value.strip().lower()
            if s in ("true", "1", "yes", "y", "on"):
                warnings.append(f"Field '{field}' converted from '{value}' to True.")
                return True
            if s in ("false", "0", "no", "n", "off"):
                warnings.append(f"Field '{field}' converted from '{value}' to False.")
                return False

    msg = f"Invalid field '{field}': expected bool, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_number(value: Any, field: str, warnings: List[str], strict: bool) -> Any:
    """Return a float, or None when the value cannot be read as a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and not strict:
        try:
            number = float(value.strip())
        except ValueError:
            return None
        warnings.append(f"Field '{field}' converted from '{value}' to {number}.")
        return number
    return None


def _as_fraction(value: Any, fallback: float, field: str, warnings: List[str], strict: bool) -> float:
    """Accept numbers in [0, 1). Percent-style values (5 meaning 5%) are rescaled."""
    if value is None:
        return fallback

    number = _as_number(value, field, warnings, strict)
    if number is None:
        msg = f"Invalid field '{field}': expected number, received {type(value).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using fallback.")
        return fallback

    if 1 <= number < 100 and not strict:
        warnings.append(f"Field '{field}' interpreted {number} as a percentage.")
        number = number / 100.0

    if not 0 <= number < 1:
        msg = f"Invalid field '{field}': {number} is outside [0, 1)."
        if strict:
            raise ValueError(msg)
        warnings.append(f"{msg} Using fallback.")
        return fallback
    return number


def _as_non_negative_float(value: Any, fallback: float, field: str, warnings: List[str], strict: bool) -> float:
    if value is None:
        return fallback

    number = _as_number(value, field, warnings, strict)
    if number is None or number < 0:
        msg = f"Invalid field '{field}': expected a non-negative number, received {value!r}."
        if strict:
            raise ValueError(msg)
        warnings.append(f"{msg} Using fallback.")
        return fallback
    return number


def _as_worker_count(value: Any, fallback: int, warnings: List[str], strict: bool) -> int:
    if value is None:
        return fallback

    number = _as_number(value, "workers", warnings, strict)
    if number is None or number != int(number) or number < 1:
        msg = f"Invalid field 'workers': expected a positive integer, received {value!r}."
        if strict:
            raise ValueError(msg)
        warnings.append(f"{msg} Using fallback.")
        return fallback

    count = int(number)
    if count > MAX_WORKERS:
        if strict:
            raise ValueError(f"Invalid field 'workers': {count} exceeds {MAX_WORKERS}.")
        warnings.append(f"Field 'workers' capped from {count} to {MAX_WORKERS}.")
        count = MAX_WORKERS
    return count


def _as_choice(
        value: Any,
        fallback: str,
        field: str,
        choices: Tuple[str, ...],
        warnings: List[str],
        strict: bool,
) -> str:
    """Match a value case-insensitively against the allowed choices."""
    if value is None:
        return fallback
    if isinstance(value, str):
        for choice in choices:
            if value.strip().lower() == choice.lower():
                return choice

    msg = f"Invalid field '{field}': {value!r} is not one of {', '.join(choices)}."
    if strict:
        raise ValueError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback
