import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

LOGGER_NAME = "grades_pipeline"

# Modules log through children of this one; handlers are attached by setup_logger()
logger = logging.getLogger(LOGGER_NAME)


def setup_logger(log_level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """Attach console (and optional rotating file) handlers once."""
    if logger.handlers:
        return logger

    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # stderr is the diagnostic stream
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(module: str) -> logging.Logger:
    return logger.getChild(module)
