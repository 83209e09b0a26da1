"""Logging helpers shared by the service and presentation layers."""

import logging

from .config import Settings

ROOT_LOGGER = "dental_booking"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach handlers to the package logger once; later calls only adjust the level."""
    log = logging.getLogger(ROOT_LOGGER)
    log.setLevel(settings.log_level)
    if not log.handlers:
        fmt = logging.Formatter(LOG_FORMAT)
        stream = logging.StreamHandler()
        stream.setFormatter(fmt)
        log.addHandler(stream)
        if settings.log_file:
            fh = logging.FileHandler(settings.log_file)
            fh.setFormatter(fmt)
            log.addHandler(fh)
    return log
