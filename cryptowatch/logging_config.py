"""
Logging setup for the CryptoWatch services.

``setup_logging`` attaches a console handler, and optionally a file handler,
to the root logger. Module loggers (``api_client``, ``market_data``,
``favorites`` ...) propagate to it.
"""

import logging
from pathlib import Path
from typing import Optional


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger once.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``, ``"INFO"``). Case
        insensitive.
    logfile : Optional[str]
        Path of a file to also log to. Resolved relative to the current
        working directory.
    """
    logger = logging.getLogger()
    if logger.handlers:
        # Already configured (tests, or the app started twice).
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
