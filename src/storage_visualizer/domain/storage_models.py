from __future__ import annotations

"""
Storage Graph Data Models.

Defines the ownership tree produced by the directory walk, the flattened
edge representation consumed by report writers, and the result object
exchanged between the analysis engine and the interface layer.
"""

import os
import weakref
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from storage_visualizer.domain.constants import (
    FREE_SPACE_INDEX,
    FREE_SPACE_LABEL,
    KIND_DIRECTORY,
    KIND_FREE_SPACE,
    KIND_OTHER,
    KIND_VOLUME,
    OTHER_INDEX,
    OTHER_LABEL,
)

# -----------------------------------------------------------------------------
# TREE MODEL
# -----------------------------------------------------------------------------

class StorageNode:
    """
    One entity of the storage graph: a directory or a synthetic entry.

    The parent's ``children`` list is the only owning edge. The back
    reference to the parent is weak, so a node never keeps its parent alive.

    Attributes:
        owner_name: Absolute path or synthetic label. Never rewritten.
        display_label: Short label used for rendering. Rewritten by dedup.
        size_units: Size attributed to this node, in KiB.
        kind: One of volume, directory, free_space, other.
        listing_index: Position in the parent's filesystem listing.
        children: Ordered child nodes.
    """

    __slots__ = (
        "owner_name",
        "display_label",
        "size_units",
        "kind",
        "listing_index",
        "children",
        "_parent_ref",
        "__weakref__",
    )

    def __init__(
            self,
            owner_name: str,
            size_units: int = 0,
            *,
            display_label: Optional[str] = None,
            kind: str = KIND_DIRECTORY,
            listing_index: int = 0,
    ) -> None:
        self.owner_name = owner_name
        self.display_label = display_label if display_label is not None else label_for_path(owner_name)
        self.size_units = max(0, int(size_units))
        self.kind = kind
        self.listing_index = listing_index
        self.children: List[StorageNode] = []
        self._parent_ref: Optional[weakref.ref] = None

    # --- Factories ---

    @classmethod
    def volume(cls, mount_point: str, size_units: int) -> StorageNode:
        """Create the root node representing the resolved volume."""
        return cls(mount_point, size_units, display_label=mount_point, kind=KIND_VOLUME)

    @classmethod
    def free_space(cls, size_units: int) -> StorageNode:
        return cls(
            FREE_SPACE_LABEL, size_units,
            display_label=FREE_SPACE_LABEL, kind=KIND_FREE_SPACE, listing_index=FREE_SPACE_INDEX,
        )

    @classmethod
    def other(cls, size_units: int) -> StorageNode:
        return cls(
            OTHER_LABEL, size_units,
            display_label=OTHER_LABEL, kind=KIND_OTHER, listing_index=OTHER_INDEX,
        )

    # --- Structure ---

    @property
    def parent(self) -> Optional[StorageNode]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def is_root(self) -> bool:
        return self._parent_ref is None

    @property
    def is_synthetic(self) -> bool:
        return self.kind in (KIND_FREE_SPACE, KIND_OTHER)

    def add_child(self, child: StorageNode) -> StorageNode:
        """
        Attach a child node and point its back reference at this node.

        Args:
            child: Node without a parent.

        Returns:
            StorageNode: The attached child.
        """
        if child is self:
            raise ValueError("A node cannot be its own child.")
        if child._parent_ref is not None:
            raise ValueError(f"Node '{child.owner_name}' already has a parent.")
        child._parent_ref = weakref.ref(self)
        self.children.append(child)
        return child

    def sort_children(self) -> None:
        """Restore listing order on this subtree after a parallel walk."""
        stack = [self]
        while stack:
            node = stack.pop()
            node.children.sort(key=lambda c: (c.listing_index, c.owner_name))
            stack.extend(node.children)

    def iter_ancestors(self) -> Iterator[StorageNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def depth(self) -> int:
        return sum(1 for _ in self.iter_ancestors())

    def __repr__(self) -> str:
        return (
            f"StorageNode(owner_name={self.owner_name!r}, display_label={self.display_label!r}, "
            f"size_units={self.size_units}, kind={self.kind!r}, children={len(self.children)})"
        )


def label_for_path(path: str) -> str:
    """
    Derive the initial display label of a path: its final segment.

    Paths without a final segment (the filesystem root) keep the full path.
    """
    stripped = path.rstrip("/")
    if not stripped:
        return path
    base = os.path.basename(stripped)
    return base or path

# -----------------------------------------------------------------------------
# FLATTENED AND SUMMARY MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Edge:
    """
    Weighted flow between two rendered nodes.

    Attributes:
        source: Display label of the parent node.
        destination: Display label of the child node.
        weight: Child size expressed in the report unit.
    """
    source: str
    destination: str
    weight: float


@dataclass(frozen=True)
class VolumeUsage:
    """Capacity figures of one mounted volume, in KiB."""
    mount_point: str
    capacity: int
    used: int
    available: int


@dataclass(frozen=True)
class AnalysisResult:
    """
    Unified result of a complete analysis run.

    Attributes:
        ok: Flag indicating success or failure.
        error: Descriptive message in case of failure.
        target_path: Normalized directory that was analyzed.
        volume_root: Mount point of the volume holding the target.
        unit: Unit of the capacity figures and edge weights.
        capacity: Volume capacity in the report unit.
        used: Volume used space in the report unit.
        available: Volume free space in the report unit.
        edges: Flattened (source, destination, weight) sequence.
        summary: Build statistics and other run metadata.
    """
    ok: bool
    error: str

    target_path: str
    volume_root: str = ""
    unit: str = ""

    capacity: float = 0
    used: float = 0
    available: float = 0

    edges: List[Edge] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

# -----------------------------------------------------------------------------
# FACTORY FUNCTIONS
# -----------------------------------------------------------------------------

def create_error_result(
        error: str,
        target_path: str,
        volume_root: str = "",
        summary_extra: Optional[Dict[str, Any]] = None,
) -> AnalysisResult:
    """
    Create a failed analysis result. Fatal runs carry no partial report.

    Args:
        error: Detailed error description.
        target_path: The requested target directory.
        volume_root: Resolved volume, when resolution got that far.
        summary_extra: Additional metadata for the summary payload.

    Returns:
        AnalysisResult: An immutable error result object.
    """
    return AnalysisResult(
        ok=False,
        error=error,
        target_path=target_path,
        volume_root=volume_root,
        summary=summary_extra or {},
    )


def create_success_result(
        target_path: str,
        volume_root: str,
        unit: str,
        capacity: float,
        used: float,
        available: float,
        edges: List[Edge],
        summary_extra: Optional[Dict[str, Any]] = None,
) -> AnalysisResult:
    """
    Create a successful analysis result.

    Args:
        target_path: Normalized target directory.
        volume_root: Mount point enclosing the target.
        unit: Report unit of every figure below.
        capacity: Volume capacity.
        used: Volume used space.
        available: Volume free space.
        edges: Deduplicated, flattened edge list.
        summary_extra: Build statistics.

    Returns:
        AnalysisResult: An immutable success result object.
    """
    return AnalysisResult(
        ok=True,
        error="",
        target_path=target_path,
        volume_root=volume_root,
        unit=unit,
        capacity=capacity,
        used=used,
        available=available,
        edges=list(edges),
        summary=summary_extra or {},
    )
