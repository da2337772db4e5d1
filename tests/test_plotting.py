#!/usr/bin/env python3
import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("matplotlib")

from core import plotting
from core.metadata import VolumeGeometry


def test_max_projection():
    vol = np.zeros((3, 2, 2), np.uint16)
    vol[1, 0, 0] = 5
    vol[2, 1, 1] = 9
    mip = plotting.max_projection(vol)
    assert mip.tolist() == [[5, 0], [0, 9]]


def test_max_projection_invalid():
    with pytest.raises(ValueError):
        plotting.max_projection(np.zeros((2, 2)))
    with pytest.raises(ValueError):
        plotting.max_projection(np.zeros((0, 2, 2)))


def test_plot_projection_writes_file(tmp_path):
    out = tmp_path / "mip.png"
    plotting.plot_projection(np.ones((2, 3, 4), np.uint16), "view", out)
    assert out.exists()


def test_plot_projection_physical_extent(tmp_path):
    geom = VolumeGeometry(4, 3, 2, 0.5, 0.5, 1.0)
    fig = plotting.plot_projection(
        np.ones((2, 3, 4), np.float32),
        "view",
        tmp_path / "mip.png",
        geometry=geom,
        return_fig=True,
    )
    image = fig.axes[0].images[0]
    assert tuple(image.get_extent()) == (0.0, 2.0, 1.5, 0.0)
    assert fig.axes[0].get_xlabel() == "x (µm)"
