from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "pinet_lanes", log_dir: str | Path = "results", level: int | str = logging.INFO) -> logging.Logger:
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    numeric_level = getattr(logging, str(level).upper(), level)
    logger.setLevel(numeric_level)

    # Prevent duplicate handlers across re-runs.
    if logger.handlers:
        return logger

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    ch = logging.StreamHandler()
    ch.setLevel(numeric_level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = logging.FileHandler(log_dir / "run.log", encoding="utf-8")
    fh.setLevel(numeric_level)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Module logger; handlers are attached once by `setup_logger` on the package logger."""
    return logging.getLogger(name or "pinet_lanes")
