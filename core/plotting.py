# core/plotting.py – Quick-look projections of loaded volumes

from __future__ import annotations

from pathlib import Path
import logging

import matplotlib

matplotlib.use("Agg")  # avoid GUI backend so plotting works inside threads
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
import numpy as np

from core.metadata import VolumeGeometry

__all__ = ["max_projection", "plot_projection"]


def max_projection(volume: np.ndarray) -> np.ndarray:
    """Maximum intensity projection along z of a ``(Z,Y,X)`` volume."""
    volume = np.asarray(volume)
    if volume.ndim != 3:
        raise ValueError(f"Expected 3D volume, got {volume.ndim}D")
    if volume.shape[0] == 0:
        raise ValueError("volume is empty")
    return volume.max(axis=0)


def plot_projection(
    volume: np.ndarray,
    title: str,
    output_path: Path,
    *,
    geometry: VolumeGeometry | None = None,
    return_fig: bool = False,
) -> Figure | None:
    """Draw the z max projection, scaled to physical units when known."""
    logging.info("plot_projection: output=%s", output_path)
    mip = max_projection(volume)

    fig = plt.figure()
    extent = None
    if geometry is not None:
        extent = (
            0.0,
            geometry.width * geometry.voxel_size_x,
            geometry.height * geometry.voxel_size_y,
            0.0,
        )
    plt.imshow(mip, cmap="gray", extent=extent)
    plt.title(title)
    plt.colorbar(label="DN" if np.issubdtype(mip.dtype, np.integer) else "a.u.")
    if geometry is not None:
        plt.xlabel("x (µm)")
        plt.ylabel("y (µm)")
    plt.tight_layout()
    fig.savefig(output_path)
    if return_fig:
        return fig
    plt.close(fig)
    return None
