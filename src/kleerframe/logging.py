import logging
import os

LOG_LEVEL_ENV_VAR = 'KLEERFRAME_LOG_LEVEL'
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _resolve_level(default_level: int) -> int:
    name = os.getenv(LOG_LEVEL_ENV_VAR, '').strip().upper()
    if not name:
        return default_level
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default_level


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    # Library modules stay quiet unless asked; the CLI reports progress.
    default_level = logging.INFO if name.endswith('.cli') else logging.WARNING
    logger.setLevel(_resolve_level(default_level))
    return logger


def set_level(level: int) -> None:
    """Apply ``level`` to every kleerframe logger created so far."""
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith('kleerframe') and isinstance(logger, logging.Logger) and logger.handlers:
            logger.setLevel(level)
