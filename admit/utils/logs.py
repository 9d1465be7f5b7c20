"""
Logging setup for Admit.
"""

import logging

from ..config import AdmitConfig

LOGGER_NAME = "admit"


def configure_logging(config: AdmitConfig) -> logging.Logger:
    """
    Set the level of the ``admit`` logger from configuration.

    Handlers are left to the host application; a stream handler is attached
    only when nothing is configured yet so CLI output stays visible.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if config.debug else config.log_level)

    if not logging.getLogger().handlers and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)

    return logger
