from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level for everything under the `schoolrecords` logger.

    Uvicorn installs the handlers; authorization denials log at INFO and
    individual decisions at DEBUG (`SCHOOL_LOG_LEVEL=DEBUG`).
    """

    normalized = level.upper()
    package_logger = logging.getLogger("schoolrecords")
    package_logger.setLevel(normalized)
    package_logger.propagate = True
