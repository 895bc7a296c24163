from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line interface schema and translates the parsed
argparse namespace into configuration overrides.
"""

import argparse
from typing import Any, Dict

from storage_visualizer.domain.constants import APP_NAME, APP_VERSION, PROBE_BACKENDS, UNIT_FACTORS

DESCRIPTION = (
    "Visualize which directories occupy the most storage. Any directory holding "
    "more than the threshold share of the volume's used space becomes a node of a "
    "hierarchical Sankey report. Sizes come from 'du' and 'df'; run with sudo to "
    "measure otherwise inaccessible directories."
)

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the storage-visualizer CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(prog=APP_NAME, description=DESCRIPTION)

    # --- Target ---
    p.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Directory to visualize (default: your home directory).",
    )
    p.add_argument(
        "-t", "--target",
        dest="target_path",
        default=None,
        help="Directory to visualize; overrides the positional form.",
    )

    # --- Significance & Units ---
    p.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum share of used space for a directory to be shown (default 0.05).",
    )
    p.add_argument(
        "--unit",
        choices=list(UNIT_FACTORS),
        default=None,
        help="Unit of report figures and edge weights (default GiB).",
    )

    # --- Measurement ---
    p.add_argument(
        "--backend",
        dest="probe_backend",
        choices=list(PROBE_BACKENDS),
        default=None,
        help="Directory size source: the 'du' utility or a pure-Python scan.",
    )
    p.add_argument(
        "--timeout",
        dest="probe_timeout",
        type=float,
        default=None,
        help=(
            "Seconds allowed per 'du' or 'df' call; directories whose 'du' call "
            "times out count as 0. The scandir backend applies it to 'df' only."
        ),
    )
    p.add_argument(
        "-w", "--workers",
        type=int,
        default=None,
        help="Number of directories measured concurrently (default 1).",
    )

    # --- Output ---
    p.add_argument(
        "-o", "--output-dir",
        dest="output_dir",
        default=None,
        help="Directory receiving the HTML report (default: current directory).",
    )
    p.add_argument(
        "--no-report",
        action="store_true",
        help="Do not write the HTML report.",
    )
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print the analysis result as JSON instead of a summary.",
    )

    # --- Configuration and Diagnostics ---
    p.add_argument(
        "--config",
        dest="config_file",
        default=None,
        help="Read configuration values from a JSON file.",
    )
    p.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the effective configuration and exit.",
    )
    p.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Also write the log to this file.",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="Elevate logging verbosity to DEBUG.",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into a configuration dictionary.

    Values left at None mean "not given" and are skipped by the merge.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset.
    """
    overrides: Dict[str, Any] = {}

    overrides["target_path"] = args.target_path or args.target
    overrides["output_dir"] = args.output_dir
    overrides["threshold"] = args.threshold
    overrides["unit"] = args.unit
    overrides["probe_backend"] = args.probe_backend
    overrides["probe_timeout"] = args.probe_timeout
    overrides["workers"] = args.workers

    if args.no_report:
        overrides["write_report"] = False

    return overrides
