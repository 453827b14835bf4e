from __future__ import annotations

import logging
import sys

from experiment_tracker.core.logger import configure_structlog

# Request start/end events come from RequestContextMiddleware.
_QUIET_LOGGERS = ("uvicorn.access",)


def configure_logging(level: str = "INFO") -> None:
    log_level = logging.getLevelName(str(level or "INFO").upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)
    logging.getLogger("experiment_tracker").setLevel(log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
    configure_structlog()
