# libsldreader/backend.py – Reader backends handed to the loader

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from core.reader import SlideReader
from libsldreader.native import NativeSlideReader, load_native_library
from utils import config as cfgutil

__all__ = ["ReaderBackend", "NativeBackend", "StaticBackend"]


class ReaderBackend:
    """Availability flag plus reader factory."""

    @property
    def available(self) -> bool:
        raise NotImplementedError

    def create_reader(self) -> SlideReader:
        raise NotImplementedError


class NativeBackend(ReaderBackend):
    """Backend over the SlideBook6Reader shared library.

    The library is looked up on first use of :attr:`available`; the outcome
    is shared by every backend in the process.
    """

    def __init__(
        self, library: str = "SlideBook6Reader", search_paths: Iterable[Path] = ()
    ) -> None:
        self.library = library
        self.search_paths = tuple(Path(p) for p in search_paths)

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "NativeBackend":
        return cls(cfgutil.backend_library(cfg), cfgutil.backend_search_paths(cfg))

    @property
    def available(self) -> bool:
        return load_native_library(self.library, self.search_paths) is not None

    def create_reader(self) -> SlideReader:
        lib = load_native_library(self.library, self.search_paths)
        if lib is None:
            raise RuntimeError(f"{self.library} native library not loaded")
        return NativeSlideReader(lib)


class StaticBackend(ReaderBackend):
    """Backend with a fixed availability and a plain reader factory."""

    def __init__(
        self, factory: Callable[[], SlideReader], available: bool = True
    ) -> None:
        self._factory = factory
        self._available = available

    @property
    def available(self) -> bool:
        return self._available

    def create_reader(self) -> SlideReader:
        return self._factory()
