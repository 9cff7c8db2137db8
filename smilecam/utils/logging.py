import logging
import os
import sys


def setup_logger(level: str | None = None) -> logging.Logger:
    logger = logging.getLogger("smilecam")
    if logger.handlers:
        if level:
            logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        return logger
    level = level or os.environ.get("SMILECAM_LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
