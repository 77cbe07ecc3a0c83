"""Simple logger utility."""
import logging

from config import Config

logger = logging.getLogger("foodlink")
if not logger.handlers:
    h = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    h.setFormatter(fmt)
    logger.addHandler(h)
    logger.setLevel(Config.LOG_LEVEL)


def get_logger(name: str = None):
    if name:
        return logger.getChild(name)
    return logger
