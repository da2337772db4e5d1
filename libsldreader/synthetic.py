# libsldreader/synthetic.py – In-memory stand-in for a SlideBook file

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from core.reader import ByteOrder, SlideReader

__all__ = ["SyntheticCapture", "SyntheticSlideReader"]


@dataclass
class SyntheticCapture:
    """One capture: ``planes`` is a ``(T, C, Z, H, W)`` uint16 array.

    ``z_positions`` is ``(T, Z)``; by default plane *z* sits at
    ``z * z_step`` for every timepoint.
    """

    planes: np.ndarray
    voxel_size: float = 1.0
    z_step: float = 1.0
    z_positions: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        self.planes = np.asarray(self.planes, dtype=np.uint16)
        if self.planes.ndim != 5:
            raise ValueError(f"Expected (T,C,Z,H,W) planes, got {self.planes.ndim}D")
        if self.z_positions is not None:
            self.z_positions = np.asarray(self.z_positions, dtype=np.float64)

    @classmethod
    def uniform(
        cls,
        width: int,
        height: int,
        depth: int,
        value: int = 0,
        *,
        timepoints: int = 1,
        channels: int = 1,
        voxel_size: float = 1.0,
        z_step: float = 1.0,
    ) -> "SyntheticCapture":
        planes = np.full((timepoints, channels, depth, height, width), value, np.uint16)
        return cls(planes, voxel_size=voxel_size, z_step=z_step)

    def axial_position(self, timepoint: int, z: int) -> float:
        if self.z_positions is not None:
            return float(self.z_positions[timepoint, z])
        return float(z * self.z_step)


class SyntheticSlideReader(SlideReader):
    """Reader over :class:`SyntheticCapture` arrays.

    ``fail_on`` names reader methods (``"open"``, ``"read_plane"``, ...)
    that raise ``OSError`` when called. ``fail_at_z`` restricts a
    ``read_plane`` failure to one plane index.
    """

    def __init__(
        self,
        captures: Sequence[SyntheticCapture],
        *,
        byte_order: ByteOrder | str = ByteOrder.NATIVE,
        bytes_per_pixel: int = 2,
        fail_on: Iterable[str] = (),
        fail_at_z: Optional[int] = None,
    ) -> None:
        self.captures: List[SyntheticCapture] = list(captures)
        self.byte_order = ByteOrder(byte_order)
        self._bpp = bytes_per_pixel
        self.fail_on = set(fail_on)
        self.fail_at_z = fail_at_z
        self.path: Optional[str] = None
        self.opened = False
        self.open_calls = 0
        self.close_calls = 0
        self.planes_read: List[Tuple[int, int, int, int, int]] = []

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            raise OSError(f"synthetic {op} failure")

    def _capture(self, capture: int) -> SyntheticCapture:
        if not self.opened:
            raise RuntimeError("Reader not opened")
        if not 0 <= capture < len(self.captures):
            raise IndexError(f"capture {capture} out of range")
        return self.captures[capture]

    def open(self, path: str) -> None:
        self.open_calls += 1
        self._maybe_fail("open")
        self.path = str(path)
        self.opened = True

    def close(self) -> None:
        self.close_calls += 1
        self.opened = False
        self._maybe_fail("close")

    def capture_count(self) -> int:
        self._maybe_fail("capture_count")
        return len(self.captures)

    def timepoint_count(self, capture: int) -> int:
        return int(self._capture(capture).planes.shape[0])

    def channel_count(self, capture: int) -> int:
        return int(self._capture(capture).planes.shape[1])

    def bytes_per_pixel(self, capture: int) -> int:
        self._capture(capture)
        return self._bpp

    def dimensions(self, capture: int) -> Tuple[int, int, int]:
        self._maybe_fail("dimensions")
        _, _, d, h, w = self._capture(capture).planes.shape
        return (w, h, d)

    def voxel_size(self, capture: int) -> float:
        self._maybe_fail("voxel_size")
        return self._capture(capture).voxel_size

    def axial_position(self, capture: int, timepoint: int, z: int) -> float:
        self._maybe_fail("axial_position")
        return self._capture(capture).axial_position(timepoint, z)

    def read_plane(
        self,
        buffer: bytearray,
        capture: int,
        illumination: int,
        timepoint: int,
        z: int,
        channel: int,
    ) -> None:
        if "read_plane" in self.fail_on and self.fail_at_z in (None, z):
            raise OSError(f"synthetic read_plane failure at z={z}")
        if illumination != 0:
            raise IndexError(f"illumination {illumination} out of range")
        plane = self._capture(capture).planes[timepoint, channel, z]
        raw = plane.astype(self.byte_order.sample_dtype).tobytes()
        if len(raw) != len(buffer):
            raise ValueError(f"buffer holds {len(buffer)} bytes, plane has {len(raw)}")
        buffer[:] = raw
        self.planes_read.append((capture, illumination, timepoint, z, channel))
