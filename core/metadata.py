# core/metadata.py – Per-view geometry cache

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple

from core.sequence import ViewId

__all__ = ["VolumeGeometry", "MetadataCache"]


@dataclass(frozen=True)
class VolumeGeometry:
    width: int
    height: int
    depth: int
    voxel_size_x: float
    voxel_size_y: float
    z_spacing: float

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Array shape ``(depth, height, width)`` of the matching volume."""
        return (self.depth, self.height, self.width)

    @property
    def voxel_size(self) -> Tuple[float, float, float]:
        return (self.voxel_size_x, self.voxel_size_y, self.z_spacing)

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


class MetadataCache:
    """Thread-safe map ``ViewId -> VolumeGeometry``.

    Writes replace the previous entry for a view; there is no merging.
    """

    def __init__(self) -> None:
        self._entries: Dict[ViewId, VolumeGeometry] = {}
        self._lock = threading.Lock()

    def update(self, view: ViewId, geometry: VolumeGeometry) -> None:
        with self._lock:
            self._entries[view] = geometry

    def get(self, view: ViewId) -> Optional[VolumeGeometry]:
        with self._lock:
            return self._entries.get(view)

    def snapshot(self) -> Dict[ViewId, VolumeGeometry]:
        with self._lock:
            return dict(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, view: object) -> bool:
        with self._lock:
            return view in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
