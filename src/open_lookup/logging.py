"""Central logging setup for open_lookup entrypoints."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

from open_lookup.paths import repo_file

NOISY_LIBRARY_LOGGERS = ("urllib3", "requests")


def _resolve_level(default: str = "INFO") -> int:
    level_name = os.getenv("LOG_LEVEL", default).upper()
    return getattr(logging, level_name, logging.INFO)


def _configure_library_log_levels() -> None:
    for logger_name in NOISY_LIBRARY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.INFO)


def _logging_config_path() -> Path | None:
    # installed copies have no repo root to search
    try:
        return repo_file("logging.ini")
    except RuntimeError:
        return None


def configure_logging() -> logging.Logger:
    config_path = _logging_config_path()
    if config_path is not None and config_path.is_file():
        logging.config.fileConfig(str(config_path), disable_existing_loggers=False)
        logger = logging.getLogger()
        logger.setLevel(_resolve_level())
        _configure_library_log_levels()
        return logger

    logger = logging.getLogger()
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(_resolve_level())
    _configure_library_log_levels()
    return logger
