"""Package logger: one stream handler on ``shopchat``, children per module."""
import logging
import os

logger = logging.getLogger("shopchat")
if not logger.handlers:
    h = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    h.setFormatter(fmt)
    logger.addHandler(h)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

def get_logger(name: str = None):
    if not name or name == logger.name:
        return logger
    if name.startswith(logger.name + "."):
        return logging.getLogger(name)
    return logger.getChild(name)
