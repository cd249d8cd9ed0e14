from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

LOGGER_NAME = "synthetics_engine"


def debug_enabled() -> bool:
    """Return True when debug logging was requested through the environment."""

    if os.environ.get("SYNTHETICS_DEBUG"):
        return True
    return "synthetics" in os.environ.get("DEBUG", "")


def configure_logger(level: str = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure and return the engine logger.

    This function is side-effectful but isolated in a small utility.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        # Already configured
        return logger

    if debug_enabled():
        level = "DEBUG"
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(Path(log_dir) / "synthetics.log")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
