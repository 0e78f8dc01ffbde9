# log_utils.py
#
# Purpose:
# One place to get loggers for DebtLens modules.
# Every module logs under the "debtlens" logger so a single call to
# configure_logging() (from app.py or main.py) controls all of it.

import logging
import os

LOGGER_NAME = "debtlens"

# Level name like "DEBUG" or "INFO". Unknown values fall back to INFO.
LOG_LEVEL = os.getenv("DEBTLENS_LOG_LEVEL", "INFO")


def get_logger(name=None):
    """Return a module logger under the debtlens hierarchy."""
    full_name = f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(level=None, log_file=None):
    """
    Attach a console handler (and optionally a file handler) to the
    debtlens logger and return it.

    Streamlit re-runs app.py on every click, so old handlers are removed
    first. Otherwise each rerun would add another copy of every log line.
    """
    level_name = (level or LOG_LEVEL or "INFO").upper()
    resolved = getattr(logging, level_name, logging.INFO)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(resolved)
    stream_handler.setFormatter(logging.Formatter("[debtlens] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(resolved)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger
