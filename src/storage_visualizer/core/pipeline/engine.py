from __future__ import annotations

"""
Core analysis pipeline.

This module coordinates one storage analysis run:
1. Validates configuration and the target path.
2. Queries volume capacities and resolves the volume holding the target.
3. Walks the target and builds the storage tree.
4. Deduplicates display labels over the finished tree.
5. Flattens the tree into weighted edges.

Fatal conditions (bad target, unreadable capacity output, no volume) end
the run with an error result and no partial report.
"""

import logging
import os
from typing import Any, Dict, Optional, Tuple

from storage_visualizer.core.analysis.chart_formatter import convert_size, flatten_edges
from storage_visualizer.core.analysis.deduplicator import deduplicate_labels
from storage_visualizer.core.analysis.tree_builder import BuildStats, TreeBuilder
from storage_visualizer.core.pipeline.stages.validator import validate_config
from storage_visualizer.core.services.probe import SizeProbe, create_probe
from storage_visualizer.core.services.volumes import resolve_volume
from storage_visualizer.domain.errors import (
    TargetPathError,
    UnrecognizedProbeOutputError,
    VolumeResolutionError,
)
from storage_visualizer.domain.storage_models import (
    AnalysisResult,
    StorageNode,
    VolumeUsage,
    create_error_result,
    create_success_result,
)
from storage_visualizer.infra.fs import normalize_path

logger = logging.getLogger(__name__)


def run_analysis(
        config: Optional[Dict[str, Any]],
        *,
        probe: Optional[SizeProbe] = None,
) -> AnalysisResult:
    """
    Execute the full storage analysis.

    Args:
        config: The configuration dictionary (raw or partial).
        probe: Size source; built from the configuration when omitted.

    Returns:
        AnalysisResult: Object containing status, capacity figures and edges.
    """
    logger.info("Storage analysis started.")

    # -------------------------------------------------------------------------
    # 1) Config & Target Normalization
    # -------------------------------------------------------------------------
    cfg, warnings = validate_config(config if config is not None else {}, strict=False)
    for warning in warnings:
        logger.warning(f"Configuration Warning: {warning}")

    # Sizes and mount matching apply to the physical directory, not a symlink to it
    target_path = os.path.realpath(normalize_path(cfg["target_path"], os.path.expanduser("~")))

    try:
        _check_target(target_path)
    except TargetPathError as e:
        logger.error(str(e))
        return create_error_result(
            str(e), target_path, summary_extra={"error_type": type(e).__name__}
        )

    if probe is None:
        probe = create_probe(cfg["probe_backend"], cfg["probe_timeout"])

    # -------------------------------------------------------------------------
    # 2) Capacity Baseline
    # -------------------------------------------------------------------------
    try:
        volumes = probe.query_volumes()
        volume_root = resolve_volume(target_path, volumes.keys())
    except (UnrecognizedProbeOutputError, VolumeResolutionError) as e:
        logger.error(f"Cannot establish a capacity baseline: {e}")
        return create_error_result(
            str(e), target_path, summary_extra={"error_type": type(e).__name__}
        )

    usage = volumes[volume_root]
    logger.info(
        f"Volume {volume_root}: capacity {usage.capacity} KiB, "
        f"used {usage.used} KiB, available {usage.available} KiB"
    )

    # -------------------------------------------------------------------------
    # 3) Walk, Deduplicate, Flatten
    # -------------------------------------------------------------------------
    root, stats = build_storage_tree(target_path, usage, probe, cfg)
    renamed = deduplicate_labels(root)
    edges = flatten_edges(root, unit=cfg["unit"])

    unit = cfg["unit"]
    summary: Dict[str, Any] = {
        "threshold": cfg["threshold"],
        "workers": cfg["workers"],
        "probe_backend": cfg["probe_backend"],
        "renamed_labels": renamed,
        "edges": len(edges),
    }
    summary.update(stats.as_dict())

    logger.info(f"Analysis complete: {len(edges)} edges.")
    return create_success_result(
        target_path=target_path,
        volume_root=volume_root,
        unit=unit,
        capacity=convert_size(usage.capacity, unit),
        used=convert_size(usage.used, unit),
        available=convert_size(usage.available, unit),
        edges=edges,
        summary_extra=summary,
    )


def build_storage_tree(
        target_path: str,
        usage: VolumeUsage,
        probe: SizeProbe,
        cfg: Dict[str, Any],
) -> Tuple[StorageNode, BuildStats]:
    """
    Build the (not yet deduplicated) storage tree for one target.

    Args:
        target_path: Normalized target directory.
        usage: Capacity figures of the volume holding the target.
        probe: Size source.
        cfg: Validated configuration.

    Returns:
        Tuple[StorageNode, BuildStats]: Root node of the tree and walk counters.
    """
    builder = TreeBuilder(probe, threshold=cfg["threshold"], workers=cfg["workers"])
    root = builder.build(
        target_path,
        usage.mount_point,
        usage.used,
        available=usage.available,
        capacity=usage.capacity,
    )
    return root, builder.stats


def _check_target(target_path: str) -> None:
    if not os.path.exists(target_path):
        raise TargetPathError(f"Target directory does not exist: {target_path}")
    if not os.path.isdir(target_path):
        raise TargetPathError(f"Target is not a directory: {target_path}")
