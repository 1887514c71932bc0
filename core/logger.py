#!/usr/bin/env python3
"""
Service Logger Setup

Usage:
    from core.logger import setup_service_logger
    logger = setup_service_logger("order_service")
"""

import logging
import sys
from typing import Optional

from .config import LoggingConfig


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure and return the root logger of a service.

    Module loggers (logging.getLogger(__name__)) propagate to the root
    handlers installed here, so they share the same format and level.

    Args:
        service_name: Logger name used for service level messages
        level: Override of the configured log level
        config: Logging configuration (loaded from env if omitted)
    """
    config = config or LoggingConfig.from_env()
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)
    formatter = logging.Formatter(config.log_format)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Drop handlers installed by a previous call
    for handler in list(root.handlers):
        if getattr(handler, "_service_handler", False):
            root.removeHandler(handler)

    if config.enable_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        console._service_handler = True
        root.addHandler(console)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setFormatter(formatter)
        file_handler._service_handler = True
        root.addHandler(file_handler)

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger


__all__ = ["setup_service_logger"]
