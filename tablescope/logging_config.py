"""
Logging setup shared by the library and the CLI.

The library only ever calls get_logger(); handlers are installed once by
setup_logging(), which the CLI calls at startup.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


_logging_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: str = "WARNING", log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure the tablescope logger hierarchy.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir:   If given, a dated log file capturing DEBUG and up is
                   written there as well.

    Returns:
        The package root logger.
    """
    global _logging_configured

    root = logging.getLogger("tablescope")
    if _logging_configured:
        return root

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(getattr(logging, log_level.upper(), logging.WARNING))
    root.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"tablescope_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)

    root.setLevel(logging.DEBUG)

    # brute-force discovery opens a connection per probe
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _logging_configured = True
    root.debug("Logging configured: level=%s", log_level)
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass __name__."""
    return logging.getLogger(name)
