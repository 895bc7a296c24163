from __future__ import annotations

"""
Unit tests for the Chart Data Formatter.

Verifies breadth-first edge emission, unit conversion and idempotency.
"""

import pytest

from storage_visualizer.core.analysis.chart_formatter import (
    convert_size,
    flatten_edges,
    iter_breadth_first,
)
from storage_visualizer.domain.storage_models import Edge, StorageNode


@pytest.fixture
def small_tree() -> StorageNode:
    root = StorageNode.volume("/", 4000)
    root.add_child(StorageNode.free_space(1000))
    root.add_child(StorageNode.other(500))
    home = root.add_child(StorageNode("/home", 2000))
    home.add_child(StorageNode("/home/alice", 1500))
    home.add_child(StorageNode("/home/bob", 400, listing_index=1))
    return root


def test_breadth_first_order(small_tree: StorageNode) -> None:
    """TC-01: Nodes come level by level, children in list order."""
    labels = [n.display_label for n in iter_breadth_first(small_tree)]
    assert labels == ["/", "Free Space", "Other", "home", "alice", "bob"]


def test_one_edge_per_non_root_node(small_tree: StorageNode) -> None:
    """TC-02: The root produces no edge; every other node produces exactly one."""
    edges = flatten_edges(small_tree)

    assert edges == [
        Edge("/", "Free Space", 1000),
        Edge("/", "Other", 500),
        Edge("/", "home", 2000),
        Edge("home", "alice", 1500),
        Edge("home", "bob", 400),
    ]


def test_flattening_is_idempotent(small_tree: StorageNode) -> None:
    """TC-03: Two passes over an unmutated tree give the same sequence."""
    assert flatten_edges(small_tree, unit="MiB") == flatten_edges(small_tree, unit="MiB")


def test_edge_weights_follow_report_unit() -> None:
    """TC-04: Weights are converted from KiB and rounded for larger units."""
    root = StorageNode.volume("/", 10 * 1024 * 1024)
    root.add_child(StorageNode("/big", 3 * 1024 * 1024 + 600 * 1024))

    (edge,) = flatten_edges(root, unit="GiB")

    assert edge.weight == 4


def test_convert_size_units() -> None:
    """TC-05: KiB passes through, MiB and GiB divide and round."""
    assert convert_size(1536, "KiB") == 1536
    assert convert_size(1536, "MiB") == 2
    assert convert_size(512 * 1024, "GiB") in (0, 1)
    assert convert_size(5 * 1024 * 1024, "GiB") == 5

    with pytest.raises(ValueError):
        convert_size(1, "TB")
