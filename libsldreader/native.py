# libsldreader/native.py – ctypes binding of the SlideBook6Reader library

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import sys
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from core.reader import SlideReader

__all__ = ["load_native_library", "NativeSlideReader"]

# One load attempt per library name per process; failures are cached too.
_LIBRARIES: Dict[str, Optional[ctypes.CDLL]] = {}
_LOAD_LOCK = threading.Lock()

_c_int = ctypes.c_int
_SIGNATURES = {
    "openFile": ([ctypes.c_char_p], _c_int),
    "closeFile": ([], _c_int),
    "getNumCaptures": ([], _c_int),
    "getNumTimepoints": ([_c_int], _c_int),
    "getNumChannels": ([_c_int], _c_int),
    "getNumXColumns": ([_c_int], _c_int),
    "getNumYRows": ([_c_int], _c_int),
    "getNumZPlanes": ([_c_int], _c_int),
    "getBytesPerPixel": ([_c_int], _c_int),
    "getVoxelSize": ([_c_int], ctypes.c_float),
    "getZPosition": ([_c_int, _c_int, _c_int], ctypes.c_double),
    "readImagePlaneBuf": (
        [ctypes.c_void_p, ctypes.c_size_t, _c_int, _c_int, _c_int, _c_int, _c_int],
        _c_int,
    ),
}


def _candidate_files(name: str, search_paths: Iterable[Path]) -> Tuple[str, ...]:
    if sys.platform.startswith("win"):
        filenames = [f"{name}.dll"]
    elif sys.platform == "darwin":
        filenames = [f"lib{name}.dylib"]
    else:
        filenames = [f"lib{name}.so"]
    found = [str(Path(p) / f) for p in search_paths for f in filenames]
    system = ctypes.util.find_library(name)
    if system:
        found.append(system)
    return tuple(found)


def _bind(lib: ctypes.CDLL) -> None:
    for symbol, (argtypes, restype) in _SIGNATURES.items():
        func = getattr(lib, symbol)
        func.argtypes = argtypes
        func.restype = restype


def load_native_library(
    name: str = "SlideBook6Reader", search_paths: Iterable[Path] = ()
) -> Optional[ctypes.CDLL]:
    """Load and bind the reader library once; ``None`` if it is unusable."""
    with _LOAD_LOCK:
        if name in _LIBRARIES:
            return _LIBRARIES[name]
        lib = None
        candidates = _candidate_files(name, search_paths)
        for candidate in candidates:
            try:
                lib = ctypes.CDLL(candidate)
                _bind(lib)
                logging.info("Loaded native reader library: %s", candidate)
                break
            except PermissionError as exc:
                logging.warning("Insufficient permission to load %s: %s", candidate, exc)
                lib = None
            except (OSError, AttributeError) as exc:
                logging.debug("Cannot use %s: %s", candidate, exc)
                lib = None
        if lib is None:
            # debug level: every loader construction reaches this without the library
            logging.debug("%s native library not found (tried %s)", name, candidates)
        _LIBRARIES[name] = lib
        return lib


class NativeSlideReader(SlideReader):
    """:class:`SlideReader` over a loaded SlideBook6Reader library."""

    def __init__(self, lib: ctypes.CDLL) -> None:
        self._lib = lib
        self._opened = False

    def _check(self, status: int, what: str) -> None:
        if status != 0:
            raise OSError(f"SlideBook6Reader {what} failed (status {status})")

    def _require_open(self) -> None:
        if not self._opened:
            raise RuntimeError("SlideBook file not opened")

    def open(self, path: str) -> None:
        self._check(self._lib.openFile(str(path).encode("utf-8")), f"openFile({path})")
        self._opened = True

    def close(self) -> None:
        if not self._opened:
            return
        self._opened = False
        self._check(self._lib.closeFile(), "closeFile")

    def capture_count(self) -> int:
        self._require_open()
        return int(self._lib.getNumCaptures())

    def timepoint_count(self, capture: int) -> int:
        self._require_open()
        return int(self._lib.getNumTimepoints(capture))

    def channel_count(self, capture: int) -> int:
        self._require_open()
        return int(self._lib.getNumChannels(capture))

    def bytes_per_pixel(self, capture: int) -> int:
        self._require_open()
        return int(self._lib.getBytesPerPixel(capture))

    def dimensions(self, capture: int) -> Tuple[int, int, int]:
        self._require_open()
        return (
            int(self._lib.getNumXColumns(capture)),
            int(self._lib.getNumYRows(capture)),
            int(self._lib.getNumZPlanes(capture)),
        )

    def voxel_size(self, capture: int) -> float:
        self._require_open()
        return float(self._lib.getVoxelSize(capture))

    def axial_position(self, capture: int, timepoint: int, z: int) -> float:
        self._require_open()
        return float(self._lib.getZPosition(capture, timepoint, z))

    def read_plane(
        self,
        buffer: bytearray,
        capture: int,
        illumination: int,
        timepoint: int,
        z: int,
        channel: int,
    ) -> None:
        self._require_open()
        c_buf = (ctypes.c_char * len(buffer)).from_buffer(buffer)
        status = self._lib.readImagePlaneBuf(
            ctypes.addressof(c_buf),
            len(buffer),
            capture,
            illumination,
            timepoint,
            z,
            channel,
        )
        self._check(status, f"readImagePlaneBuf(capture={capture}, t={timepoint}, z={z})")
