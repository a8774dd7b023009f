"""Per-run logger construction."""

from __future__ import annotations

import logging

from .io_utils import RunPaths

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILENAME = "autofill.log"


def build_logger(run_paths: RunPaths, verbose: bool = False) -> logging.Logger:
    """Console at INFO (DEBUG when verbose) plus a DEBUG file in the run dir."""
    logger = logging.getLogger(f"autofill.{run_paths.run_id}")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S")
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = logging.FileHandler(run_paths.base_dir / LOG_FILENAME, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    return logger


__all__ = ["LOG_FILENAME", "LOG_FORMAT", "build_logger"]
