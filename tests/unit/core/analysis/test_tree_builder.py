from __future__ import annotations

"""
Unit tests for the Storage Tree Builder.

Verifies:
1. Volume bootstrap, threshold pruning and "Other" synthesis.
2. Recovery from failed size probes.
3. Skipping of dot-prefixed entries and symbolic links.
4. Structural properties (monotonic threshold, conservation, acyclicity).
5. Deterministic output of the parallel walk.
"""

import os
from pathlib import Path
from typing import List

import pytest

from storage_visualizer.core.analysis.chart_formatter import iter_breadth_first
from storage_visualizer.core.analysis.tree_builder import TreeBuilder
from storage_visualizer.domain.constants import (
    FREE_SPACE_LABEL,
    KIND_DIRECTORY,
    KIND_FREE_SPACE,
    KIND_OTHER,
    OTHER_LABEL,
)
from storage_visualizer.domain.storage_models import StorageNode


def _directory_nodes(root: StorageNode) -> List[StorageNode]:
    return [n for n in iter_breadth_first(root) if n.kind == KIND_DIRECTORY]


def _labels(nodes: List[StorageNode]) -> List[str]:
    return [n.display_label for n in nodes]


# -----------------------------------------------------------------------------
# BOOTSTRAP AND THRESHOLD
# -----------------------------------------------------------------------------

def test_target_is_volume_root_scenario(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-01: Significant child kept, small child pruned, no Other at the volume root."""
    paths = make_dirs(volume_dir, ["bigdir", "smalldir"])
    probe = scripted_probe({paths["bigdir"]: 600, paths["smalldir"]: 10})

    root = TreeBuilder(probe).build(str(volume_dir), str(volume_dir), used_total=1000, available=500)

    assert root.parent is None
    assert root.display_label == str(volume_dir)
    assert [c.kind for c in root.children] == [KIND_FREE_SPACE, KIND_DIRECTORY]

    free, big = root.children
    assert free.display_label == FREE_SPACE_LABEL
    assert free.size_units == 500
    assert big.display_label == "bigdir"
    assert big.size_units == 600
    assert big.parent is root

    assert not any(n.kind == KIND_OTHER for n in iter_breadth_first(root))
    # The volume root itself is never measured
    assert str(volume_dir) not in probe.calls


def test_target_below_volume_root_emits_other(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-02: Other holds used space outside the target and hangs off the root."""
    paths = make_dirs(volume_dir, ["home/user/media"])
    target = paths["home/user/media"].rsplit(os.sep, 1)[0]
    probe = scripted_probe({target: 400, paths["home/user/media"]: 300})

    root = TreeBuilder(probe).build(target, str(volume_dir), used_total=1000, available=0)

    kinds = [c.kind for c in root.children]
    assert kinds == [KIND_FREE_SPACE, KIND_OTHER, KIND_DIRECTORY]

    other = root.children[1]
    user = root.children[2]
    assert other.display_label == OTHER_LABEL
    assert other.size_units == 600
    assert user.display_label == "user"
    assert user.parent is root
    assert _labels(user.children) == ["media"]

    # Ancestors of the target are never measured
    assert os.path.join(str(volume_dir), "home") not in probe.calls


def test_other_emitted_even_when_target_is_pruned(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-03: A below-threshold target still yields Other but no node of its own."""
    paths = make_dirs(volume_dir, ["tiny"])
    probe = scripted_probe({paths["tiny"]: 10})

    root = TreeBuilder(probe).build(paths["tiny"], str(volume_dir), used_total=1000)

    assert [c.kind for c in root.children] == [KIND_FREE_SPACE, KIND_OTHER]
    assert root.children[1].size_units == 990


def test_other_is_clamped_at_zero(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-04: A target measured above the used total never yields a negative Other."""
    paths = make_dirs(volume_dir, ["grown"])
    probe = scripted_probe({paths["grown"]: 1200})

    root = TreeBuilder(probe).build(paths["grown"], str(volume_dir), used_total=1000)

    other = [c for c in root.children if c.kind == KIND_OTHER][0]
    assert other.size_units == 0


def test_pruned_subtree_is_never_visited(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-05: Below-threshold directories hide their descendants."""
    paths = make_dirs(volume_dir, ["small/huge_inside"])
    probe = scripted_probe({paths["small"]: 40, paths["small/huge_inside"]: 900})

    root = TreeBuilder(probe, threshold=0.05).build(str(volume_dir), str(volume_dir), used_total=1000)

    assert _directory_nodes(root) == []
    assert paths["small/huge_inside"] not in probe.calls


def test_threshold_boundary_is_exclusive(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-06: Exactly the threshold share is not significant."""
    paths = make_dirs(volume_dir, ["edge", "above"])
    probe = scripted_probe({paths["edge"]: 50, paths["above"]: 51})

    root = TreeBuilder(probe, threshold=0.05).build(str(volume_dir), str(volume_dir), used_total=1000)

    assert _labels(_directory_nodes(root)) == ["above"]


def test_zero_used_total_prunes_everything(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-07: An empty volume yields no directory nodes and no division error."""
    paths = make_dirs(volume_dir, ["a"])
    probe = scripted_probe({paths["a"]: 5})

    root = TreeBuilder(probe).build(str(volume_dir), str(volume_dir), used_total=0)

    assert _directory_nodes(root) == []


def test_invalid_threshold_rejected(scripted_probe) -> None:
    """TC-08: Thresholds outside [0, 1) are refused."""
    with pytest.raises(ValueError):
        TreeBuilder(scripted_probe({}), threshold=1.5)

# -----------------------------------------------------------------------------
# FAILURE RECOVERY AND FILTERING
# -----------------------------------------------------------------------------

def test_failed_probe_records_zero_and_descends(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-09: A failed measurement yields a 0-sized node whose children are still walked."""
    paths = make_dirs(volume_dir, ["locked/inner"])
    probe = scripted_probe({paths["locked"]: None, paths["locked/inner"]: 300})

    builder = TreeBuilder(probe)
    root = builder.build(str(volume_dir), str(volume_dir), used_total=1000)

    locked = _directory_nodes(root)[0]
    assert locked.display_label == "locked"
    assert locked.size_units == 0
    assert _labels(locked.children) == ["inner"]
    assert locked.children[0].size_units == 300

    assert builder.stats.probe_failures == 1
    assert builder.stats.nodes == 2


def test_dot_entries_symlinks_and_files_are_skipped(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-10: Only plain, non-hidden subdirectories are walked."""
    paths = make_dirs(volume_dir, ["data", ".cache"])
    (volume_dir / "notes.txt").write_text("x", encoding="utf-8")
    link = volume_dir / "data_link"
    try:
        os.symlink(paths["data"], str(link))
    except (OSError, NotImplementedError):
        pytest.skip("Symbolic links are not supported here.")

    probe = scripted_probe({
        paths["data"]: 500,
        paths[".cache"]: 500,
        str(link): 500,
    })

    root = TreeBuilder(probe).build(str(volume_dir), str(volume_dir), used_total=1000)

    assert _labels(_directory_nodes(root)) == ["data"]
    assert paths[".cache"] not in probe.calls
    assert str(link) not in probe.calls


def test_build_statistics(volume_dir: Path, make_dirs, scripted_probe) -> None:
    """TC-11: Counters reflect measured, kept and pruned directories."""
    paths = make_dirs(volume_dir, ["a/a1", "b"])
    probe = scripted_probe({paths["a"]: 600, paths["a/a1"]: 20, paths["b"]: 300})

    builder = TreeBuilder(probe)
    builder.build(str(volume_dir), str(volume_dir), used_total=1000)

    stats = builder.stats.as_dict()
    assert stats == {"visited": 3, "nodes": 2, "pruned": 1, "probe_failures": 0}

# -----------------------------------------------------------------------------
# STRUCTURAL PROPERTIES
# -----------------------------------------------------------------------------

@pytest.fixture
def sized_tree(volume_dir: Path, make_dirs, scripted_probe):
    """A three-level tree whose sizes are consistent parent-to-child."""
    rels = ["usr", "usr/lib", "usr/lib/py", "usr/share", "var", "var/log", "var/cache", "opt"]
    paths = make_dirs(volume_dir, rels)
    sizes = {
        paths["usr"]: 500,
        paths["usr/lib"]: 300,
        paths["usr/lib/py"]: 120,
        paths["usr/share"]: 150,
        paths["var"]: 350,
        paths["var/log"]: 200,
        paths["var/cache"]: 60,
        paths["opt"]: 90,
    }
    return volume_dir, scripted_probe(sizes)


def test_threshold_monotonicity(sized_tree) -> None:
    """TC-12: Raising the threshold never adds nodes."""
    volume, probe = sized_tree
    counts = []
    for threshold in (0.0, 0.05, 0.1, 0.2, 0.4, 0.6):
        root = TreeBuilder(probe, threshold=threshold).build(str(volume), str(volume), used_total=1000)
        counts.append(len(_directory_nodes(root)))

    assert counts == sorted(counts, reverse=True)
    assert counts[0] == 8
    assert counts[-1] == 0


def test_children_never_exceed_parent(sized_tree) -> None:
    """TC-13: Sum of children sizes is bounded by the parent's size."""
    volume, probe = sized_tree
    root = TreeBuilder(probe, threshold=0.0).build(str(volume), str(volume), used_total=1000, available=200)

    for node in iter_breadth_first(root):
        if node.is_root or not node.children:
            continue
        assert sum(c.size_units for c in node.children) <= node.size_units


def test_parent_chain_reaches_root_without_cycles(sized_tree) -> None:
    """TC-14: Following parents reaches the root in exactly depth steps."""
    volume, probe = sized_tree
    root = TreeBuilder(probe, threshold=0.0).build(str(volume), str(volume), used_total=1000)

    for node in iter_breadth_first(root):
        chain = list(node.iter_ancestors())
        assert len(chain) == node.depth()
        assert len({id(n) for n in chain}) == len(chain)
        assert node not in chain
        if chain:
            assert chain[-1] is root


def test_parallel_walk_matches_sequential_order(sized_tree) -> None:
    """TC-15: Worker count does not change the tree or its child order."""
    volume, probe = sized_tree

    sequential = TreeBuilder(probe, threshold=0.0, workers=1).build(str(volume), str(volume), used_total=1000)
    parallel = TreeBuilder(probe, threshold=0.0, workers=4).build(str(volume), str(volume), used_total=1000)

    def shape(root: StorageNode):
        return [(n.owner_name, n.size_units, n.depth()) for n in iter_breadth_first(root)]

    assert shape(parallel) == shape(sequential)
