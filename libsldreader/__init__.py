"""SlideBook reader backends: native ctypes binding and synthetic files."""

from libsldreader.backend import NativeBackend, ReaderBackend, StaticBackend
from libsldreader.native import NativeSlideReader, load_native_library
from libsldreader.synthetic import SyntheticCapture, SyntheticSlideReader

__all__ = [
    "NativeBackend",
    "ReaderBackend",
    "StaticBackend",
    "NativeSlideReader",
    "load_native_library",
    "SyntheticCapture",
    "SyntheticSlideReader",
    "synthetic_backend",
]


def synthetic_backend(*captures: SyntheticCapture, **reader_kwargs) -> StaticBackend:
    """Backend creating a fresh :class:`SyntheticSlideReader` per load."""
    return StaticBackend(lambda: SyntheticSlideReader(captures, **reader_kwargs))
