# core/export.py – Write loaded volumes and cached geometry to disk

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import numpy as np
import tifffile

from core.metadata import MetadataCache, VolumeGeometry
from core.sequence import ViewId

__all__ = ["volume_filename", "save_volume_tiff", "save_geometry_json"]


def volume_filename(sld_file: Path | str, view: ViewId, suffix: str = ".tif") -> str:
    """``<stem>_t<timepoint>_s<setup><suffix>`` for *view* of *sld_file*."""
    stem = Path(sld_file).stem
    return f"{stem}_t{view.timepoint_id}_s{view.view_setup_id}{suffix}"


def save_volume_tiff(
    volume: np.ndarray,
    geometry: VolumeGeometry,
    path: Path,
    *,
    imagej: bool = True,
) -> Path:
    """Write a ``(Z,Y,X)`` volume with its voxel size as TIFF resolution."""
    if volume.shape != geometry.shape:
        raise ValueError(f"volume shape {volume.shape} != geometry {geometry.shape}")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    metadata: Dict[str, Any] = {"axes": "ZYX", "spacing": geometry.z_spacing}
    if imagej:
        metadata["unit"] = "um"
    tifffile.imwrite(
        path,
        volume,
        imagej=imagej,
        resolution=(1.0 / geometry.voxel_size_x, 1.0 / geometry.voxel_size_y),
        metadata=metadata,
    )
    return path


def _geometry_records(entries: Mapping[ViewId, VolumeGeometry]) -> list[dict]:
    records = []
    for view in sorted(entries):
        rec: Dict[str, Any] = {
            "timepoint": view.timepoint_id,
            "view_setup": view.view_setup_id,
        }
        rec.update(entries[view].as_dict())
        records.append(rec)
    return records


def save_geometry_json(cache: MetadataCache, path: Path) -> Path:
    """Dump the cache as a list of per-view geometry records."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(_geometry_records(cache.snapshot()), fh, indent=2)
    return path
