# core/reader.py – Reader capability interface consumed by the loader

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Tuple

import numpy as np

__all__ = ["ByteOrder", "SlideReader"]


class ByteOrder(str, Enum):
    """Byte order of the 16-bit samples in a raw plane buffer."""

    LITTLE = "little"
    BIG = "big"
    NATIVE = "native"

    @property
    def sample_dtype(self) -> np.dtype:
        prefix = {"little": "<", "big": ">", "native": "="}[self.value]
        return np.dtype(prefix + "u2")


class SlideReader(ABC):
    """Access to one SlideBook file, capture by capture.

    A capture is one acquisition stream in the file; the loader maps the
    angle id of a view onto it. Every method may raise; the loader turns
    those into :mod:`core.errors` failures.
    """

    @abstractmethod
    def open(self, path: str) -> None:
        """Open *path*; must be paired with :meth:`close`."""

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def capture_count(self) -> int:
        pass

    @abstractmethod
    def timepoint_count(self, capture: int) -> int:
        pass

    @abstractmethod
    def channel_count(self, capture: int) -> int:
        pass

    @abstractmethod
    def bytes_per_pixel(self, capture: int) -> int:
        pass

    @abstractmethod
    def dimensions(self, capture: int) -> Tuple[int, int, int]:
        """Return ``(width, height, planes)`` of *capture*."""

    @abstractmethod
    def voxel_size(self, capture: int) -> float:
        """Lateral voxel size, identical for x and y."""

    @abstractmethod
    def axial_position(self, capture: int, timepoint: int, z: int) -> float:
        """Position of plane *z* along the optical axis."""

    @abstractmethod
    def read_plane(
        self,
        buffer: bytearray,
        capture: int,
        illumination: int,
        timepoint: int,
        z: int,
        channel: int,
    ) -> None:
        """Fill *buffer* in place with the raw bytes of one plane."""
