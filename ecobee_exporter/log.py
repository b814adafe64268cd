"""
Logging module
Root logger setup with plain text or structured JSON output
"""
import logging
import sys

from pythonjsonlogger import jsonlogger

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'

_handler = None


def setup_logging(level: str = "INFO", fmt: str = "text") -> logging.Handler:
    """Configure structured logging"""
    global _handler

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper()))

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        formatter = jsonlogger.JsonFormatter(JSON_FORMAT)
    else:
        formatter = logging.Formatter(TEXT_FORMAT)
    handler.setFormatter(formatter)

    # Replace the handler from a previous call instead of stacking another
    if _handler is not None:
        logger.removeHandler(_handler)
    logger.addHandler(handler)
    _handler = handler
    return handler
