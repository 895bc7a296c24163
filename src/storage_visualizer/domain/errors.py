from __future__ import annotations

"""
Storage Analysis Error Taxonomy.

Fatal errors abort a run before any tree is built. Probe errors are
recoverable: the walk absorbs them and records the directory as size 0.
"""


class StorageVisualizerError(Exception):
    """Base class for every error raised by the analysis core."""


class TargetPathError(StorageVisualizerError):
    """The target path does not exist or is not a directory."""


class VolumeResolutionError(StorageVisualizerError):
    """No mounted volume encloses the target path."""


class UnrecognizedProbeOutputError(StorageVisualizerError):
    """The capacity query produced output in an unknown shape."""


class ProbeError(StorageVisualizerError):
    """
    A single size query failed (permission denied, timeout, missing tool).

    Attributes:
        path: Directory whose measurement failed.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Size probe failed for '{path}': {reason}")
        self.path = path
        self.reason = reason
