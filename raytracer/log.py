"""
Настройка логирования.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name=__name__, level=logging.INFO):
    """Именованный логгер с выводом в консоль (обработчик добавляется один раз)."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


__all__ = ["get_logger", "LOG_FORMAT"]
