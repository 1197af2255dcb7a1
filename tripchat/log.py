import logging
import os


def get_logger(name: str) -> logging.Logger:
    """Return a module logger with the project's console format and level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    _level = os.getenv("TRIPCHAT_LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, _level, logging.INFO))
    logger.propagate = False
    return logger
