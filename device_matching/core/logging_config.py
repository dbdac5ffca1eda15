"""
Logging configuration utilities.

A single helper configures the root logger with a consistent format.
Modules log through named loggers (``logging.getLogger("composer")`` and
so on) and never configure handlers themselves.
"""

import logging
from typing import Optional, Union


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configure root logger with a basic formatter.

    Parameters
    ----------
    level: int | str
        Logging level (e.g. ``logging.INFO`` or ``"DEBUG"``).
    log_file: Optional[str]
        Optional file path to log to. If provided, logs are also written to
        the specified file.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
