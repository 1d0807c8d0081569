"""Logging setup for the service."""

from __future__ import annotations

import logging

from commons_stage.core.settings import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(app_settings: Settings) -> None:
    """Apply the configured log level to the package loggers."""
    level = logging.getLevelName(app_settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("commons_stage").setLevel(level)
    if app_settings.sql_debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
