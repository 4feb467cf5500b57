"""JSON logging setup for the agent process."""

import logging
import sys
from typing import Dict, Optional, TextIO

from pythonjsonlogger import jsonlogger

LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'


def setup_logger(
    name: str = "host_agent",
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    static_fields: Optional[Dict[str, str]] = None,
) -> logging.Logger:
    """
    Configure the named logger to emit one JSON object per line.

    Calling it again for the same name replaces the handler, so the app
    can re-run it once configuration is loaded.

    Args:
        name: Logger name; collectors and services log through its children
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream, stdout when omitted
        static_fields: Fields added to every record (e.g. tenant_id)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers = []

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        LOG_FORMAT,
        timestamp=True,
        static_fields=dict(static_fields or {}),
    ))
    logger.addHandler(handler)

    # Records stop here; the root logger would print them a second time
    logger.propagate = False

    return logger
