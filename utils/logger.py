import logging
from pathlib import Path
from typing import Optional, Dict, Any

try:
    import psutil  # type: ignore

    _HAS_PSUTIL = True
except Exception:
    psutil = None  # type: ignore
    _HAS_PSUTIL = False

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO) -> None:
    """Configure root logger with stream output and optional file output."""
    handlers = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def apply_logging_config(cfg: Dict[str, Any]) -> None:
    """Set log level, and add a file handler, from the ``logging`` section."""
    log_cfg = cfg.get("logging") or {}
    level_name = str(log_cfg.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    log_file = log_cfg.get("file")
    if not log_file:
        return
    path = Path(log_file).expanduser().resolve()
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == path:
            return
    handler = logging.FileHandler(path)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def log_memory_usage(prefix: str = "") -> None:
    """Log current process memory usage if psutil is available."""
    if not _HAS_PSUTIL:
        logging.debug("psutil not installed; cannot log memory usage")
        return
    try:
        process = psutil.Process()
        mem_mb = process.memory_info().rss / 1024**2
        logging.debug("%sMemory usage: %.2f MB", prefix, mem_mb)
    except Exception as exc:
        logging.debug("Failed to log memory usage: %s", exc)
