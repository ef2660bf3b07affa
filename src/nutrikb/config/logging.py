"""Console logging for the import CLI."""

from __future__ import annotations

import logging
from typing import Final

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Set up the root logger with a terse console format.

    ``force=True`` replaces handlers installed earlier; the CLI uses it when
    ``--verbose`` raises the level after the default setup.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    # Statement echo stays off even at DEBUG.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
