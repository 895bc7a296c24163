from __future__ import annotations

"""
Display Label Deduplicator.

Report writers key nodes by label across the whole diagram, so two
directories named 'logs' under different parents would merge into one
rendered node. This pass makes every label unique once the tree is
complete.
"""

import logging
from collections import Counter
from typing import Dict, Set

from storage_visualizer.core.analysis.chart_formatter import iter_breadth_first
from storage_visualizer.domain.storage_models import StorageNode

logger = logging.getLogger(__name__)


def deduplicate_labels(root: StorageNode) -> Dict[str, int]:
    """
    Rewrite repeated display labels in place.

    Nodes are taken in breadth-first order. The first node with a given
    label keeps it; each later one becomes "<label> (<n>)", where n counts
    the occurrences of that label so far, bumped further if the candidate
    is already in use.

    Args:
        root: Root of a fully built tree.

    Returns:
        Dict[str, int]: Number of renamed nodes per original label.
    """
    occurrences: Counter = Counter()
    taken: Set[str] = set()
    renamed: Dict[str, int] = {}

    for node in iter_breadth_first(root):
        label = node.display_label
        occurrences[label] += 1

        if label not in taken:
            taken.add(label)
            continue

        n = occurrences[label]
        candidate = f"{label} ({n})"
        while candidate in taken:
            n += 1
            candidate = f"{label} ({n})"

        logger.debug(f"Renamed duplicate label '{label}' of {node.owner_name} to '{candidate}'")
        node.display_label = candidate
        taken.add(candidate)
        renamed[label] = renamed.get(label, 0) + 1

    if renamed:
        logger.info(f"Disambiguated {sum(renamed.values())} duplicate labels")
    return renamed
