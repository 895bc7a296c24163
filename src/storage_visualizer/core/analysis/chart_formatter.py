from __future__ import annotations

"""
Chart Data Formatter.

Flattens the storage tree into the (source, destination, weight) edges
drawn by flow diagrams. Traversal is breadth-first, the same order used by
label deduplication, so repeated runs over one tree are identical.
"""

from collections import deque
from typing import Iterator, List

from storage_visualizer.domain.constants import UNIT_FACTORS
from storage_visualizer.domain.storage_models import Edge, StorageNode


def iter_breadth_first(root: StorageNode) -> Iterator[StorageNode]:
    """Yield every node of the tree, level by level, children in order."""
    queue = deque([root])
    while queue:
        node = queue.popleft()
        yield node
        queue.extend(node.children)


def convert_size(size_kib: int, unit: str = "KiB") -> float:
    """
    Express a KiB figure in the report unit.

    KiB values are returned unchanged; larger units are rounded to whole
    numbers, matching the integer figures shown on the report.

    Args:
        size_kib: Size in KiB.
        unit: Target unit (KiB, MiB, GiB).

    Returns:
        float: The converted size.
    """
    try:
        factor = UNIT_FACTORS[unit]
    except KeyError:
        raise ValueError(f"Unknown size unit: {unit!r}") from None
    if factor == 1:
        return size_kib
    return round(size_kib / factor)


def flatten_edges(root: StorageNode, unit: str = "KiB") -> List[Edge]:
    """
    Emit one edge per non-root node: (parent label, node label, size).

    Args:
        root: Root of a fully built (and normally deduplicated) tree.
        unit: Unit of the edge weights.

    Returns:
        List[Edge]: Edges in breadth-first order.
    """
    edges: List[Edge] = []
    for node in iter_breadth_first(root):
        parent = node.parent
        if parent is None:
            continue
        edges.append(Edge(
            source=parent.display_label,
            destination=node.display_label,
            weight=convert_size(node.size_units, unit),
        ))
    return edges
