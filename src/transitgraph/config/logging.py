"""Root logger setup for the command line entry point."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "TRANSITGRAPH_LOG_LEVEL"
# chatty at INFO; one line per request
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Configure the root logger with a terse CLI format.

    ``level`` falls back to ``TRANSITGRAPH_LOG_LEVEL`` and then INFO. Pass
    ``force=True`` to replace handlers installed earlier.
    """

    effective = level if level is not None else os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    logging.basicConfig(
        level=effective,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
