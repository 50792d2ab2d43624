"""
Logging utilities for Avenue PD.
"""

import logging
from typing import Optional

from avenuepd.config import Config


def configure_logging(config: Optional[Config] = None, level: Optional[str] = None) -> None:
    """
    Configure logging based on configuration.

    Args:
        config: Configuration object
        level: Explicit level, overrides the configured one
    """
    if level is None:
        level = config.logging.level if config is not None else "INFO"

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
