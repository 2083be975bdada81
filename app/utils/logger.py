# app/utils/logger.py
"""
Log setup for the parking backend.

Engine, gateway and routers all log through get_logger(__name__). The first
call attaches two handlers to the root logger: stderr and logs/parking.log,
which rolls over at 5MB and keeps ten old files.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from app.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
LOG_FILE = "parking.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Capped at WARNING so SQL echo and HTTP client chatter stay out of parking.log
QUIET_LOGGERS = ("sqlalchemy.engine", "urllib3", "httpx")

_configured = False


def _with_format(handler: logging.Handler) -> logging.Handler:
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True
    os.makedirs(LOG_DIR, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(_with_format(logging.StreamHandler()))
    root.addHandler(_with_format(RotatingFileHandler(
        filename=os.path.join(LOG_DIR, LOG_FILE),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger for one module; handlers are attached on first use."""
    _configure_root_logger()
    return logging.getLogger(name)
