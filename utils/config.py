# utils/config.py – Config utilities (repo default <- user YAML)

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

__all__ = [
    "load_config",
    "section",
    "backend_library",
    "backend_search_paths",
    "export_dir",
]

# ────────────────────────────────────────────────
# Load & merge config
# ────────────────────────────────────────────────
_DEFAULT_CFG_PATH = Path(__file__).parent.parent / "config" / "default_config.yaml"


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Failed to parse YAML config: {path}\n{exc}") from exc


def _merge_dict(dst: Dict[str, Any], src: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge (src overwrites dst)."""
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            dst[k] = _merge_dict(dst[k], v)
        else:
            dst[k] = v
    return dst


def load_config(user_cfg_path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Return merged config dict (default <- user).

    ``user_cfg_path`` may name a YAML file or a directory holding
    ``config.yaml``. A directory without one yields the defaults.
    """
    cfg = _read_yaml(_DEFAULT_CFG_PATH)
    cfg_file = _DEFAULT_CFG_PATH
    if user_cfg_path is not None:
        user_yaml = Path(user_cfg_path).expanduser()
        from_dir = user_yaml.is_dir()
        if from_dir:
            user_yaml = user_yaml / "config.yaml"
        if user_yaml.exists():
            cfg = _merge_dict(cfg, _read_yaml(user_yaml))
            cfg_file = user_yaml
        elif not from_dir:
            raise FileNotFoundError(f"Config file not found: {user_yaml}")

    for key in ("loader", "backend", "export", "logging"):
        if not isinstance(cfg.get(key), dict):
            cfg[key] = {}
    cfg.setdefault("_paths", {})["config_file"] = str(cfg_file)
    return cfg


# ────────────────────────────────────────────────
# Accessors
# ────────────────────────────────────────────────
def section(cfg: Mapping[str, Any], name: str) -> Dict[str, Any]:
    """Return ``cfg[name]`` or an empty dict."""
    value = cfg.get(name) or {}
    return dict(value) if isinstance(value, Mapping) else {}


def backend_library(cfg: Mapping[str, Any]) -> str:
    return str(section(cfg, "backend").get("library") or "SlideBook6Reader")


def backend_search_paths(cfg: Mapping[str, Any]) -> List[Path]:
    paths = section(cfg, "backend").get("search_paths") or []
    return [Path(p).expanduser() for p in paths]


def export_dir(cfg: Mapping[str, Any], base: Path | str | None = None) -> Path:
    """Return the export folder, relative to *base* unless absolute."""
    out = Path(str(section(cfg, "export").get("output_dir", "output")))
    if out.is_absolute() or base is None:
        return out
    return Path(base) / out
