import logging
import sys

from clurb.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"


def configure_logging() -> logging.Logger:
    """Настройка логирования приложения"""
    level_name = get_settings().log_level.upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, stream=sys.stdout, format=LOG_FORMAT)
    return logging.getLogger("clurb")
