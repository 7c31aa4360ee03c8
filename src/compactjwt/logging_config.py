"""Loguru configuration for compactjwt.

The package disables its own logger on import so that embedding
applications opt in explicitly. The CLI (or a host application) calls
``configure_logging`` to enable it.
"""

import sys

from loguru import logger

from compactjwt.settings import Settings, settings as default_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def configure_logging(config: Settings | None = None, sink=sys.stderr) -> int | None:
    """Enable compactjwt logging and install a sink.

    Args:
        config: Settings to read level and switch from (defaults to global settings)
        sink: Loguru sink (stderr by default)

    Returns:
        Loguru handler id, or None when logging is disabled in settings
    """
    config = config or default_settings
    if not config.log_enabled:
        logger.disable("compactjwt")
        return None

    logger.enable("compactjwt")
    handler_id = logger.add(
        sink,
        level=config.log_level,
        format=LOG_FORMAT,
        filter="compactjwt",
    )
    logger.debug(f"compactjwt logging enabled at {config.log_level}")
    return handler_id
