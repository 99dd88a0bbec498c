"""Logging setup for the tasklink CLI.

All modules log under the ``tasklink`` namespace with
``logging.getLogger(__name__)``. Nothing is emitted unless the user asks for
it with ``-v``/``-vv`` or ``--log-file``; command output goes to stdout via
``tasklink.cli.output`` and is independent of logging.
"""

import logging
import sys
from pathlib import Path

from . import __version__

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level_for(verbose: int) -> int:
    return logging.DEBUG if verbose >= 2 else logging.INFO


def setup_logging(verbose: int = 0, log_file: Path | None = None) -> logging.Logger:
    """Attach stderr and/or file handlers to the ``tasklink`` logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        verbose: 0 = silent, 1 = INFO, 2+ = DEBUG (also enables httpx request logs)
        log_file: Also write log records to this file, creating parent dirs
    """
    logger = logging.getLogger("tasklink")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if verbose == 0 and log_file is None:
        return logger

    level = _level_for(verbose)
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = []
    if verbose > 0:
        handlers.append(logging.StreamHandler(sys.stderr))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose >= 2 else logging.WARNING)

    logger.info("tasklink %s starting | level=%s", __version__, logging.getLevelName(level))
    return logger
