# core/loader.py – SlideBook volume loader (plane assembly + geometry cache)

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Mapping, NamedTuple, Optional, Tuple, Type

import numpy as np

from core.errors import (
    BackendUnavailable,
    CaptureOutOfRange,
    GeometryInconsistent,
    LoaderError,
    ReaderCloseFailed,
    ReaderError,
    ReaderOpenFailed,
    ReaderReadFailed,
)
from core.metadata import MetadataCache, VolumeGeometry
from core.reader import ByteOrder, SlideReader
from core.sequence import SequenceDescription, ViewId
from utils.logger import log_memory_usage

__all__ = [
    "ZSpacingPolicy",
    "LoaderOptions",
    "ResolvedView",
    "SlideBookImgLoader",
    "normalize_volume",
]

# SlideBook stores 16-bit samples
_SAMPLE_BYTES = 2


class ZSpacingPolicy(str, Enum):
    FIXED_TIMEPOINT_ZERO = "fixed_timepoint_zero"
    PER_VOLUME_TIMEPOINT = "per_volume_timepoint"


@dataclass(frozen=True)
class LoaderOptions:
    byte_order: ByteOrder = ByteOrder.NATIVE
    z_spacing_policy: ZSpacingPolicy = ZSpacingPolicy.FIXED_TIMEPOINT_ZERO
    illumination_from_view: bool = False
    validate_capture: bool = True
    strict_geometry: bool = True

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "LoaderOptions":
        """Build options from the ``loader`` section of a config dict."""
        sec = cfg.get("loader") or {}
        return cls(
            byte_order=ByteOrder(str(sec.get("byte_order", "native")).lower()),
            z_spacing_policy=ZSpacingPolicy(
                str(sec.get("z_spacing_policy", "fixed_timepoint_zero")).lower()
            ),
            illumination_from_view=bool(sec.get("illumination_from_view", False)),
            validate_capture=bool(sec.get("validate_capture", True)),
            strict_geometry=bool(sec.get("strict_geometry", True)),
        )


class ResolvedView(NamedTuple):
    timepoint: int
    capture: int
    channel: int
    illumination: int = 0


def normalize_volume(volume: np.ndarray) -> np.ndarray:
    """Rescale a float volume in place to ``[0, 1]`` by its min/max.

    A constant volume becomes all zeros.
    """
    lo = float(volume.min()) if volume.size else 0.0
    hi = float(volume.max()) if volume.size else 0.0
    if hi > lo:
        volume -= lo
        volume /= hi - lo
    else:
        volume.fill(0.0)
    return volume


@contextmanager
def _reader_step(exc_type: Type[ReaderError], what: str) -> Iterator[None]:
    """Translate reader exceptions raised in the block into *exc_type*."""
    try:
        yield
    except LoaderError:
        raise
    except Exception as exc:
        raise exc_type(f"{what}: {exc}") from exc


class SlideBookImgLoader:
    """Load SlideBook captures as 3-D numpy volumes.

    Every load opens its own reader through *backend*, closes it on every
    exit path and publishes the derived :class:`VolumeGeometry` to
    *cache*. Failures are logged and reported as ``None`` (image loads) or
    ``False`` (metadata loads), never raised.

    Volumes are C-ordered ``(depth, height, width)`` arrays, so plane *z*
    occupies the flat index range ``[z*w*h, (z+1)*w*h)``.
    """

    def __init__(
        self,
        sld_file: Path | str,
        sequence: SequenceDescription,
        backend,
        *,
        cache: Optional[MetadataCache] = None,
        options: Optional[LoaderOptions] = None,
    ) -> None:
        self.sld_file = Path(sld_file)
        self.sequence = sequence
        self.backend = backend
        self.cache = cache if cache is not None else MetadataCache()
        self.options = options or LoaderOptions()
        if not self.backend.available:
            logging.warning(
                "SlideBook reader backend unavailable; loads from %s will fail",
                self.sld_file,
            )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(file={str(self.sld_file)!r}, "
            f"backend={type(self.backend).__name__})"
        )

    # ───────────────────────────── view resolution

    def resolve(self, view: ViewId) -> ResolvedView:
        """Map *view* onto reader indices; raises ``ViewNotFound``."""
        vd = self.sequence.view_description(view)
        setup = vd.view_setup
        illumination = setup.illumination if self.options.illumination_from_view else 0
        return ResolvedView(
            timepoint=vd.timepoint_id,
            capture=setup.angle,
            channel=setup.channel,
            illumination=illumination,
        )

    # ───────────────────────────── reader scope

    @contextmanager
    def _open_reader(self, view: ViewId) -> Iterator[SlideReader]:
        if not self.backend.available:
            raise BackendUnavailable(
                f"{type(self.backend).__name__} reports no reader library available"
            )
        reader = self.backend.create_reader()
        try:
            with _reader_step(ReaderOpenFailed, f"opening {self.sld_file}"):
                reader.open(str(self.sld_file))
            yield reader
        finally:
            try:
                reader.close()
            except Exception as exc:
                err = ReaderCloseFailed(f"closing {self.sld_file}: {exc}")
                logging.error("Failed to close reader for %s: %s", view.label(), err)

    # ───────────────────────────── geometry

    def _dimensions(
        self, reader: SlideReader, resolved: ResolvedView
    ) -> Tuple[int, int, int]:
        capture = resolved.capture
        if self.options.validate_capture:
            with _reader_step(ReaderReadFailed, "querying capture count"):
                n_captures = int(reader.capture_count())
            if not 0 <= capture < n_captures:
                raise CaptureOutOfRange(
                    f"capture {capture} not in file (captures: {n_captures})"
                )
        with _reader_step(ReaderReadFailed, f"querying dimensions of capture {capture}"):
            w, h, d = reader.dimensions(capture)
        return int(w), int(h), int(d)

    def _derive_geometry(
        self,
        reader: SlideReader,
        resolved: ResolvedView,
        dims: Tuple[int, int, int],
    ) -> VolumeGeometry:
        width, height, depth = dims
        capture = resolved.capture
        with _reader_step(ReaderReadFailed, f"querying voxel size of capture {capture}"):
            voxel = float(np.float32(reader.voxel_size(capture)))

        z_spacing = 1.0
        if depth > 1:
            if self.options.z_spacing_policy is ZSpacingPolicy.PER_VOLUME_TIMEPOINT:
                t = resolved.timepoint
            else:
                t = 0
            with _reader_step(ReaderReadFailed, f"querying z positions of capture {capture}"):
                z0 = float(reader.axial_position(capture, t, 0))
                z1 = float(reader.axial_position(capture, t, 1))
            z_spacing = float(np.float32(z1 - z0))

        return VolumeGeometry(width, height, depth, voxel, voxel, z_spacing)

    # ───────────────────────────── plane assembly

    def _populate(
        self,
        volume: np.ndarray,
        reader: SlideReader,
        resolved: ResolvedView,
    ) -> None:
        depth, height, width = volume.shape
        plane_len = width * height
        capture = resolved.capture

        with _reader_step(ReaderReadFailed, f"querying bytes per pixel of capture {capture}"):
            bpp = int(reader.bytes_per_pixel(capture))
        if self.options.strict_geometry and bpp != _SAMPLE_BYTES:
            raise GeometryInconsistent(
                f"capture {capture} has {bpp} bytes per pixel, expected {_SAMPLE_BYTES}"
            )

        buffer = bytearray(bpp * plane_len)
        sample_dtype = self.options.byte_order.sample_dtype
        flat = volume.reshape(-1)
        written = 0
        for z in range(depth):
            with _reader_step(ReaderReadFailed, f"reading plane z={z}"):
                reader.read_plane(
                    buffer,
                    capture,
                    resolved.illumination,
                    resolved.timepoint,
                    z,
                    resolved.channel,
                )
            # every plane must hold exactly one 16-bit sample per pixel
            n_bytes = len(buffer)
            if n_bytes != _SAMPLE_BYTES * plane_len:
                raise GeometryInconsistent(
                    f"plane z={z} has {n_bytes} bytes, expected "
                    f"{_SAMPLE_BYTES * plane_len} ({plane_len} samples)"
                )
            samples = np.frombuffer(buffer, dtype=sample_dtype)
            flat[written : written + samples.size] = samples
            written += samples.size

    def _load_volume(
        self, view: ViewId, dtype: np.dtype, normalize: bool = False
    ) -> Optional[np.ndarray]:
        try:
            resolved = self.resolve(view)
            logging.debug("Loading %s as %s: %s", view.label(), np.dtype(dtype), resolved)
            with self._open_reader(view) as reader:
                width, height, depth = self._dimensions(reader, resolved)
                volume = np.empty((depth, height, width), dtype=dtype)
                log_memory_usage(f"allocated {volume.shape} {volume.dtype}: ")
                self._populate(volume, reader, resolved)
                if normalize:
                    normalize_volume(volume)
                geometry = self._derive_geometry(reader, resolved, (width, height, depth))
                self.cache.update(view, geometry)
            return volume
        except Exception as exc:
            logging.error("Failed to load %s: %s", view.label(), exc)
            logging.debug("Load failure details", exc_info=True)
            return None

    # ───────────────────────────── public api

    def load_float(self, view: ViewId, normalize: bool = False) -> Optional[np.ndarray]:
        """Return the volume of *view* as ``float32`` or ``None`` on failure."""
        return self._load_volume(view, np.float32, normalize=normalize)

    def load_uint16(self, view: ViewId) -> Optional[np.ndarray]:
        """Return the raw ``uint16`` volume of *view* or ``None`` on failure."""
        return self._load_volume(view, np.uint16)

    def load_metadata(self, view: ViewId) -> bool:
        """Publish the geometry of *view* to the cache without reading planes."""
        try:
            resolved = self.resolve(view)
            with self._open_reader(view) as reader:
                dims = self._dimensions(reader, resolved)
                geometry = self._derive_geometry(reader, resolved, dims)
                self.cache.update(view, geometry)
            return True
        except Exception as exc:
            logging.error("Failed to load metadata for %s: %s", view.label(), exc)
            logging.debug("Metadata failure details", exc_info=True)
            return False

    def geometry(self, view: ViewId) -> Optional[VolumeGeometry]:
        """Cached geometry of *view*, loading metadata on a miss."""
        geometry = self.cache.get(view)
        if geometry is None and self.load_metadata(view):
            geometry = self.cache.get(view)
        return geometry

    def image_size(self, view: ViewId) -> Optional[Tuple[int, int, int]]:
        """``(width, height, depth)`` of *view*."""
        geometry = self.geometry(view)
        if geometry is None:
            return None
        return (geometry.width, geometry.height, geometry.depth)

    def voxel_size(self, view: ViewId) -> Optional[Tuple[float, float, float]]:
        """``(x, y, z)`` voxel dimensions of *view*."""
        geometry = self.geometry(view)
        return None if geometry is None else geometry.voxel_size
