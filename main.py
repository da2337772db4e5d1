#!/usr/bin/env python
import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from core.export import save_geometry_json, save_volume_tiff, volume_filename
from core.loader import LoaderOptions, SlideBookImgLoader
from core.sequence import SequenceDescription, ViewId, build_sequence
from libsldreader import NativeBackend, SyntheticCapture, synthetic_backend
from utils import config as cfgutil
from utils.logger import apply_logging_config, setup_logging


def _parse_shape(text: str) -> tuple:
    try:
        w, h, d = (int(v) for v in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WxHxD, got {text!r}") from None
    if min(w, h, d) <= 0:
        raise argparse.ArgumentTypeError(f"dimensions must be positive: {text!r}")
    return w, h, d


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sldload", description="Load volumes from SlideBook files"
    )
    parser.add_argument("--config", type=Path, help="YAML config file or folder")
    parser.add_argument("--log-file", type=Path, help="Also log to this file")
    parser.add_argument(
        "--synthetic",
        type=_parse_shape,
        metavar="WxHxD",
        help="Use an in-memory dummy file of this size instead of the native reader",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="List views and their geometry")
    info.add_argument("file", type=Path)
    info.add_argument("--json", type=Path, help="Write geometry records as JSON")

    export = sub.add_parser("export", help="Write one view as a TIFF stack")
    export.add_argument("file", type=Path)
    export.add_argument("--timepoint", type=int, default=0)
    export.add_argument("--setup", type=int, default=0)
    export.add_argument("--out", type=Path, help="Output folder")
    export.add_argument("--float", action="store_true", help="Export float32")
    export.add_argument("--normalize", action="store_true", help="Rescale to [0, 1]")
    export.add_argument("--preview", action="store_true", help="Also write a MIP PNG")
    return parser


def _backend(args, cfg):
    if args.synthetic is not None:
        w, h, d = args.synthetic
        return synthetic_backend(SyntheticCapture.uniform(w, h, d, value=100))
    return NativeBackend.from_config(cfg)


def _scan(backend, path: Path) -> Optional[SequenceDescription]:
    if not backend.available:
        logging.error("SlideBook reader backend unavailable")
        return None
    reader = backend.create_reader()
    try:
        reader.open(str(path))
        return build_sequence(reader)
    except Exception as exc:
        logging.error("Failed to scan %s: %s", path, exc)
        return None
    finally:
        try:
            reader.close()
        except Exception as exc:
            logging.error("Failed to close %s: %s", path, exc)


def _cmd_info(args, loader: SlideBookImgLoader) -> int:
    ok = True
    for view in loader.sequence.views():
        geometry = loader.geometry(view)
        if geometry is None:
            ok = False
            continue
        print(
            f"{view.label()}: {geometry.width}x{geometry.height}x{geometry.depth} "
            f"voxel=({geometry.voxel_size_x:g}, {geometry.voxel_size_y:g}, "
            f"{geometry.z_spacing:g})"
        )
    if args.json:
        save_geometry_json(loader.cache, args.json)
        logging.info("Geometry written: %s", args.json)
    return 0 if ok else 1


def _cmd_export(args, loader: SlideBookImgLoader, cfg) -> int:
    view = ViewId(args.timepoint, args.setup)
    if args.float or args.normalize:
        volume = loader.load_float(view, normalize=args.normalize)
    else:
        volume = loader.load_uint16(view)
    geometry = loader.cache.get(view)
    if volume is None or geometry is None:
        return 1

    export_cfg = cfgutil.section(cfg, "export")
    out_dir = args.out or cfgutil.export_dir(cfg, args.file.parent)
    tif_path = save_volume_tiff(
        volume,
        geometry,
        out_dir / volume_filename(args.file, view),
        imagej=bool(export_cfg.get("imagej", True)),
    )
    logging.info("Volume written: %s", tif_path)
    if args.preview or export_cfg.get("preview", False):
        from core.plotting import plot_projection

        png_path = out_dir / volume_filename(args.file, view, "_mip.png")
        plot_projection(volume, view.label(), png_path, geometry=geometry)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = cfgutil.load_config(args.config)
    except (OSError, RuntimeError) as exc:
        logging.error("%s", exc)
        return 2
    if args.log_file:
        cfg["logging"]["file"] = str(args.log_file)
    apply_logging_config(cfg)

    try:
        options = LoaderOptions.from_config(cfg)
    except ValueError as exc:
        logging.error("Invalid loader config: %s", exc)
        return 2

    backend = _backend(args, cfg)
    sequence = _scan(backend, args.file)
    if sequence is None:
        return 1
    loader = SlideBookImgLoader(args.file, sequence, backend, options=options)
    logging.info("%s: %d views", args.file, len(sequence))

    if args.command == "info":
        return _cmd_info(args, loader)
    return _cmd_export(args, loader, cfg)


if __name__ == "__main__":
    sys.exit(main())
