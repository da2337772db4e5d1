import json

import numpy as np
import pytest

tifffile = pytest.importorskip("tifffile")

from core.export import save_geometry_json, save_volume_tiff, volume_filename
from core.metadata import MetadataCache, VolumeGeometry
from core.sequence import ViewId


def test_volume_filename():
    assert volume_filename("/data/run1.sld", ViewId(3, 1)) == "run1_t3_s1.tif"
    assert volume_filename("run1.sld", ViewId(0, 2), "_mip.png") == "run1_t0_s2_mip.png"


def test_save_volume_tiff_roundtrip(tmp_path):
    vol = np.arange(2 * 3 * 4, dtype=np.uint16).reshape(2, 3, 4)
    geom = VolumeGeometry(4, 3, 2, 0.5, 0.5, 1.5)

    path = save_volume_tiff(vol, geom, tmp_path / "sub" / "v.tif")

    with tifffile.TiffFile(path) as tif:
        np.testing.assert_array_equal(tif.asarray(), vol)
        assert tif.imagej_metadata["spacing"] == pytest.approx(1.5)


def test_save_volume_tiff_float(tmp_path):
    vol = np.linspace(0, 1, 8, dtype=np.float32).reshape(2, 2, 2)
    geom = VolumeGeometry(2, 2, 2, 1.0, 1.0, 2.0)
    path = save_volume_tiff(vol, geom, tmp_path / "f.tif", imagej=False)
    np.testing.assert_allclose(tifffile.imread(path), vol)


def test_save_volume_tiff_shape_mismatch(tmp_path):
    vol = np.zeros((2, 2, 2), np.uint16)
    geom = VolumeGeometry(3, 2, 2, 1.0, 1.0, 1.0)
    with pytest.raises(ValueError):
        save_volume_tiff(vol, geom, tmp_path / "x.tif")


def test_save_geometry_json(tmp_path):
    cache = MetadataCache()
    cache.update(ViewId(1, 0), VolumeGeometry(4, 4, 2, 0.5, 0.5, 1.5))
    cache.update(ViewId(0, 0), VolumeGeometry(4, 4, 1, 0.5, 0.5, 1.0))

    path = save_geometry_json(cache, tmp_path / "geom.json")

    records = json.loads(path.read_text())
    assert [r["timepoint"] for r in records] == [0, 1]
    assert records[1] == {
        "timepoint": 1,
        "view_setup": 0,
        "width": 4,
        "height": 4,
        "depth": 2,
        "voxel_size_x": 0.5,
        "voxel_size_y": 0.5,
        "z_spacing": 1.5,
    }
