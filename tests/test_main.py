import json

import numpy as np
import pytest

tifffile = pytest.importorskip("tifffile")

import main


def test_info_synthetic(tmp_path, capsys):
    out_json = tmp_path / "geom.json"
    rc = main.main(["--synthetic", "4x4x2", "info", "dummy.sld", "--json", str(out_json)])

    assert rc == 0
    assert "viewsetup=0 timepoint=0: 4x4x2" in capsys.readouterr().out
    records = json.loads(out_json.read_text())
    assert records[0]["depth"] == 2


def test_export_synthetic(tmp_path):
    rc = main.main(
        [
            "--synthetic",
            "3x2x2",
            "export",
            str(tmp_path / "scan.sld"),
            "--out",
            str(tmp_path / "out"),
            "--preview",
        ]
    )

    assert rc == 0
    vol = tifffile.imread(tmp_path / "out" / "scan_t0_s0.tif")
    assert vol.shape == (2, 2, 3)
    assert np.all(vol == 100)
    assert (tmp_path / "out" / "scan_t0_s0_mip.png").exists()


def test_export_unknown_view_fails(tmp_path):
    rc = main.main(
        ["--synthetic", "2x2x1", "export", str(tmp_path / "scan.sld"), "--setup", "4"]
    )
    assert rc == 1


def test_native_backend_missing(monkeypatch, tmp_path):
    from libsldreader import native

    monkeypatch.setattr(native, "_LIBRARIES", {"SlideBook6Reader": None})
    assert main.main(["info", str(tmp_path / "scan.sld")]) == 1


def test_bad_synthetic_shape():
    with pytest.raises(SystemExit) as info:
        main.main(["--synthetic", "4x4", "info", "f.sld"])
    assert info.value.code == 2


def test_invalid_loader_config(tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("loader:\n  byte_order: sideways\n")
    assert main.main(["--config", str(cfg), "--synthetic", "2x2x1", "info", "f.sld"]) == 2
