"""Process-wide logging setup."""

import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """
    Configure root logging for an embedding process.

    Library modules only ever call ``logging.getLogger``; the host
    application (API server, worker, CLI) calls this once at startup.
    """
    if level is None:
        from .config import settings

        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)
