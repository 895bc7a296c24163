from __future__ import annotations

"""
Storage Tree Builder.

Walks the directory subtree of a target path and keeps the directories
whose measured size exceeds a fraction of the volume's used space. The
walk runs on an explicit worklist of (path, parent node) items: one
worker drains it depth-first, several workers drain it through a thread
pool and the children are put back in listing order afterwards.
"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from storage_visualizer.core.services.probe import SizeProbe
from storage_visualizer.domain.constants import DEFAULT_THRESHOLD
from storage_visualizer.domain.storage_models import StorageNode
from storage_visualizer.infra.fs import is_same_path, list_child_directories

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# WALK STATE
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class _WorkItem:
    path: str
    parent: StorageNode
    listing_index: int


@dataclass
class BuildStats:
    """
    Counters collected during one walk.

    Attributes:
        visited: Directories whose size was queried.
        nodes: Directory nodes attached to the tree.
        pruned: Directories cut below the threshold.
        probe_failures: Size queries that failed and were recorded as 0.
    """
    visited: int = 0
    nodes: int = 0
    pruned: int = 0
    probe_failures: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class _BuildContext:
    target_path: str
    volume_root: str
    used_total: int
    stats: BuildStats = field(default_factory=BuildStats)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def attach(self, parent: StorageNode, child: StorageNode, *, counted: bool = True) -> StorageNode:
        with self.lock:
            parent.add_child(child)
            if counted:
                self.stats.nodes += 1
        return child

    def count(self, name: str) -> None:
        with self.lock:
            setattr(self.stats, name, getattr(self.stats, name) + 1)


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

class TreeBuilder:
    """
    Builds the ownership tree of significant directories for one volume.

    Attributes:
        probe: Source of directory sizes.
        threshold: Occupancy a directory must exceed to become a node.
        workers: Number of concurrent size queries (1 means sequential).
        one_file_system: Skip child directories mounted from other devices.
        stats: Counters of the most recent build.
    """

    def __init__(
            self,
            probe: SizeProbe,
            threshold: float = DEFAULT_THRESHOLD,
            workers: int = 1,
            one_file_system: bool = True,
    ) -> None:
        if not 0 <= threshold < 1:
            raise ValueError(f"threshold must be in [0, 1), got {threshold}")
        self.probe = probe
        self.threshold = threshold
        self.workers = max(1, int(workers))
        self.one_file_system = one_file_system
        self.stats = BuildStats()

    def build(
            self,
            target_path: str,
            volume_root: str,
            used_total: int,
            available: int = 0,
            capacity: Optional[int] = None,
    ) -> StorageNode:
        """
        Walk the target directory and return the root of the storage tree.

        The root stands for the volume and starts with a "Free Space" child.
        When the target is below the volume root, an "Other" child holds the
        used space outside the target.

        Args:
            target_path: Absolute directory to analyze.
            volume_root: Mount point of the volume holding the target.
            used_total: Used space of the volume, in KiB.
            available: Free space of the volume, in KiB.
            capacity: Volume capacity in KiB; defaults to used + available.

        Returns:
            StorageNode: The volume root node.
        """
        ctx = _BuildContext(
            target_path=target_path,
            volume_root=volume_root,
            used_total=max(0, int(used_total)),
        )
        self.stats = ctx.stats

        root_size = capacity if capacity is not None else ctx.used_total + available
        root = StorageNode.volume(volume_root, root_size)
        ctx.attach(root, StorageNode.free_space(available), counted=False)

        seed = [_WorkItem(path=target_path, parent=root, listing_index=0)]
        logger.info(
            f"Scanning {target_path} on volume {volume_root} "
            f"(threshold {self.threshold:.1%} of {ctx.used_total} KiB used)"
        )

        if self.workers == 1:
            self._walk_sequential(ctx, seed)
        else:
            self._walk_parallel(ctx, seed)
            root.sort_children()

        logger.info(
            f"Scan finished: {ctx.stats.nodes} significant directories, "
            f"{ctx.stats.pruned} pruned, {ctx.stats.probe_failures} probe failures"
        )
        return root

    # -------------------------------------------------------------------------
    # WORKLIST DRIVERS
    # -------------------------------------------------------------------------

    def _walk_sequential(self, ctx: _BuildContext, seed: List[_WorkItem]) -> None:
        stack = list(reversed(seed))
        while stack:
            item = stack.pop()
            # Reversed push keeps listing order on pop
            stack.extend(reversed(self._visit(ctx, item)))

    def _walk_parallel(self, ctx: _BuildContext, seed: List[_WorkItem]) -> None:
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="StorageProbe") as executor:
            pending = {executor.submit(self._visit, ctx, item) for item in seed}
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    for child in future.result():
                        pending.add(executor.submit(self._visit, ctx, child))

    # -------------------------------------------------------------------------
    # PER-DIRECTORY STEP
    # -------------------------------------------------------------------------

    def _visit(self, ctx: _BuildContext, item: _WorkItem) -> List[_WorkItem]:
        """Process one directory and return the child items to walk next."""
        path = item.path

        # The volume root already exists as the tree root
        if is_same_path(path, ctx.volume_root):
            return self._expand(path, item.parent)

        size = self.probe.query_size(path)
        ctx.count("visited")
        logger.debug(f"Measured {path}: {size if size is not None else 'unavailable'} KiB")

        if is_same_path(path, ctx.target_path):
            outside = max(0, ctx.used_total - (size or 0))
            ctx.attach(item.parent, StorageNode.other(outside), counted=False)

        if size is None:
            ctx.count("probe_failures")
            logger.warning(f"Size unavailable for {path}; recorded as 0, descending into children")
            node = ctx.attach(item.parent, StorageNode(path, 0, listing_index=item.listing_index))
            return self._expand(path, node)

        occupancy = size / ctx.used_total if ctx.used_total > 0 else 0.0
        if occupancy > self.threshold:
            logger.info(f"Significant directory: {path} ({size} KiB, {occupancy:.1%} of used space)")
            node = ctx.attach(item.parent, StorageNode(path, size, listing_index=item.listing_index))
            return self._expand(path, node)

        ctx.count("pruned")
        logger.debug(f"Pruned {path} ({occupancy:.2%} of used space)")
        return []

    def _expand(self, path: str, parent: StorageNode) -> List[_WorkItem]:
        children = list_child_directories(path, one_file_system=self.one_file_system)
        return [
            _WorkItem(path=child, parent=parent, listing_index=index)
            for index, child in enumerate(children)
        ]
