# core/errors.py – Loader error taxonomy

from __future__ import annotations

__all__ = [
    "LoaderError",
    "BackendUnavailable",
    "ViewNotFound",
    "ReaderError",
    "ReaderOpenFailed",
    "ReaderReadFailed",
    "ReaderCloseFailed",
    "GeometryInconsistent",
    "CaptureOutOfRange",
]


class LoaderError(RuntimeError):
    """Base class for every failure raised inside a volume load."""


class BackendUnavailable(LoaderError):
    """Native SlideBook reader library could not be loaded."""


class ViewNotFound(LoaderError, KeyError):
    """Sequence registry has no description for the requested view."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class ReaderError(LoaderError):
    """Reader reported an error."""


class ReaderOpenFailed(ReaderError):
    pass


class ReaderReadFailed(ReaderError):
    pass


class ReaderCloseFailed(ReaderError):
    pass


class GeometryInconsistent(LoaderError):
    """Plane buffer does not match the geometry the reader reported."""


class CaptureOutOfRange(LoaderError):
    """Angle id of a view does not name a capture in the file."""
