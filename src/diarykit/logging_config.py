"""
Logging setup for the dk command.

Library modules only create loggers; handlers are attached here.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "DIARYKIT_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
HANDLER_NAME = "diarykit-stderr"


def configure_logging(verbose: bool = False) -> None:
    """
    Attach one stderr handler to the diarykit logger.

    Level: DEBUG with verbose, else DIARYKIT_LOG_LEVEL, else WARNING.
    """
    if verbose:
        level = logging.DEBUG
    else:
        name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            level = logging.WARNING

    logger = logging.getLogger("diarykit")
    logger.setLevel(level)

    for h in logger.handlers:
        if h.get_name() == HANDLER_NAME and isinstance(h, logging.StreamHandler):
            # main() may run more than once per process; follow the current stderr
            h.setStream(sys.stderr)
            return

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
