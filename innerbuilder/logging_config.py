"""Logging setup for the innerbuilder command line."""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure and return the package logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    package_logger = logging.getLogger("innerbuilder")
    package_logger.setLevel(level)
    return package_logger
