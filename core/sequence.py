# core/sequence.py – View identifiers and the sequence registry

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional

from core.errors import ViewNotFound
from core.reader import SlideReader

__all__ = [
    "ViewId",
    "ViewSetup",
    "ViewDescription",
    "SequenceDescription",
    "build_sequence",
]


@dataclass(frozen=True, order=True)
class ViewId:
    timepoint_id: int
    view_setup_id: int

    def label(self) -> str:
        return f"viewsetup={self.view_setup_id} timepoint={self.timepoint_id}"


@dataclass(frozen=True)
class ViewSetup:
    """Angle/channel/illumination attributes shared by all timepoints.

    ``angle`` is the capture index inside the SlideBook file.
    """

    id: int
    angle: int
    channel: int
    illumination: int = 0
    name: Optional[str] = None


@dataclass(frozen=True)
class ViewDescription:
    timepoint_id: int
    view_setup: ViewSetup

    @property
    def view_id(self) -> ViewId:
        return ViewId(self.timepoint_id, self.view_setup.id)


class SequenceDescription:
    """Read-only registry of the views available in one file."""

    def __init__(self, descriptions: Mapping[ViewId, ViewDescription]) -> None:
        self._descriptions: Dict[ViewId, ViewDescription] = dict(descriptions)

    @classmethod
    def from_setups(
        cls, setups: List[ViewSetup], timepoints: Mapping[int, List[int]]
    ) -> "SequenceDescription":
        """Build a registry from setups and the timepoints of each setup id."""
        descriptions = {}
        for setup in setups:
            for t in timepoints.get(setup.id, []):
                vd = ViewDescription(t, setup)
                descriptions[vd.view_id] = vd
        return cls(descriptions)

    def view_description(self, view: ViewId) -> ViewDescription:
        try:
            return self._descriptions[view]
        except KeyError:
            raise ViewNotFound(f"No view description for {view.label()}") from None

    def view_setups(self) -> List[ViewSetup]:
        seen: Dict[int, ViewSetup] = {}
        for vd in self._descriptions.values():
            seen.setdefault(vd.view_setup.id, vd.view_setup)
        return [seen[k] for k in sorted(seen)]

    def views(self) -> List[ViewId]:
        return sorted(self._descriptions)

    def __contains__(self, view: object) -> bool:
        return view in self._descriptions

    def __iter__(self) -> Iterator[ViewId]:
        return iter(self.views())

    def __len__(self) -> int:
        return len(self._descriptions)


def build_sequence(reader: SlideReader) -> SequenceDescription:
    """Derive a registry from an opened reader.

    One view setup per (capture, channel), numbered capture-major. Each
    setup gets the timepoints its capture reports.
    """
    setups: List[ViewSetup] = []
    timepoints: Dict[int, List[int]] = {}
    for capture in range(reader.capture_count()):
        n_t = reader.timepoint_count(capture)
        for channel in range(reader.channel_count(capture)):
            setup = ViewSetup(
                id=len(setups),
                angle=capture,
                channel=channel,
                name=f"capture{capture}_ch{channel}",
            )
            setups.append(setup)
            timepoints[setup.id] = list(range(n_t))
    return SequenceDescription.from_setups(setups, timepoints)
