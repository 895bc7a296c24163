from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: logging bootstrap, merging of configuration
sources (defaults, optional JSON file, command-line overrides), analysis
execution, report emission and result rendering.
"""

import json
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from storage_visualizer.core.pipeline.engine import run_analysis
from storage_visualizer.core.pipeline.stages.validator import validate_config
from storage_visualizer.domain.config import get_default_config, load_config_file
from storage_visualizer.domain.storage_models import AnalysisResult
from storage_visualizer.infra.logging import LoggingConfig, configure_logging, get_logger
from storage_visualizer.interface.cli import args as cli_args
from storage_visualizer.interface.report.sankey import write_storage_report

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BAD_TARGET = 2
EXIT_INTERRUPTED = 130

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the main CLI application workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: Process exit code (0 for success, non-zero for failure).
    """
    # 1. Argument parsing phase
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    # 2. Logging bootstrap
    log_level = "DEBUG" if args.debug else "INFO"
    configure_logging(LoggingConfig(level=log_level, console=True, log_file=args.log_file))

    logger.debug("CLI execution initiated. Resolving configuration hierarchy...")

    # 3. Resolve base configuration (defaults, then optional file)
    base_conf = get_default_config()
    if args.config_file:
        try:
            base_conf.update(load_config_file(args.config_file))
        except (OSError, ValueError) as e:
            logger.error(f"Cannot read configuration file: {e}")
            print(f"ERROR: Cannot read configuration file: {e}", file=sys.stderr)
            return EXIT_FAILURE

    # 4. Map and merge command-line overrides
    raw_conf = _merge_config(base_conf, cli_args.args_to_overrides(args))

    # 5. Schema validation and normalization
    clean_conf, warnings = validate_config(raw_conf, strict=False)
    for w in warnings:
        logger.warning(f"Configuration Constraint: {w}")

    if args.dump_config:
        print(json.dumps(clean_conf, ensure_ascii=False, indent=2))
        return EXIT_OK

    # 6. Analysis phase
    try:
        result = run_analysis(clean_conf)
    except KeyboardInterrupt:
        logger.warning("Analysis interrupted by user.")
        print("Interrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED

    if not result.ok:
        print(f"ERROR: {result.error}", file=sys.stderr)
        if result.summary.get("error_type") == "TargetPathError":
            return EXIT_BAD_TARGET
        return EXIT_FAILURE

    # 7. Report emission
    report_path = ""
    if clean_conf["write_report"]:
        try:
            report_path = write_storage_report(result, clean_conf["output_dir"])
        except OSError as e:
            logger.error(f"Failed to write storage report: {e}")
            print(f"ERROR: Failed to write storage report: {e}", file=sys.stderr)
            return EXIT_FAILURE

    # 8. Output rendering phase
    if args.json_output:
        payload = asdict(result)
        payload["report_path"] = report_path
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        _print_human_summary(result, report_path)

    return EXIT_OK

# -----------------------------------------------------------------------------
# CONFIGURATION MERGING
# -----------------------------------------------------------------------------

def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow-merge override values into the base configuration.

    Only known keys with a value are merged.

    Args:
        base: The primary configuration dictionary.
        overrides: New values to inject.

    Returns:
        Dict[str, Any]: The merged configuration state.
    """
    out = dict(base)
    for k, v in overrides.items():
        if k in out and v is not None:
            out[k] = v
    return out

# -----------------------------------------------------------------------------
# VIEW RENDERING (HUMAN READABLE)
# -----------------------------------------------------------------------------

def _print_human_summary(result: AnalysisResult, report_path: str) -> None:
    """
    Print the capacity figures and the edge list of a successful run.

    Args:
        result: The analysis result to render.
        report_path: Written HTML report, or empty when disabled.
    """
    unit = result.unit
    print(f"Target: {result.target_path} (volume {result.volume_root})")
    print(f"Disk Capacity: {result.capacity} {unit}")
    print(f"Disk Used: {result.used} {unit}")
    print(f"Free Space: {result.available} {unit}")

    print("\nFormatted tree:")
    for edge in result.edges:
        print(f"  {edge.source} -> {edge.destination}: {edge.weight} {unit}")

    stats_keys = {
        "visited": "Directories measured",
        "nodes": "Significant directories",
        "pruned": "Directories pruned",
        "probe_failures": "Probe failures",
    }
    print("")
    for key, label in stats_keys.items():
        if key in result.summary:
            print(f"{label}: {result.summary[key]}")

    if report_path:
        print(f"\nReport written to {report_path}")

# -----------------------------------------------------------------------------
# CLI ENTRYPOINT
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
