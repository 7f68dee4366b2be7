"""
Shared logger for the bookstore service.

Every module does ``from bookstore_service.logger import logger`` so log
lines share one name, one format and the level set by ``LOG_LEVEL``.
"""

import logging
import sys

from bookstore_service.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("bookstore_service")

if not logger.handlers:
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)

logger.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))
