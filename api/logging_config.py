"""
Logging configuration for the iTrade portal API

This module sets up the logging configuration for the entire application.
Call setup_logging() at application startup to configure logging.
"""

import logging
import logging.config
import sys
from typing import Dict, Any


def _app_logger(log_level: str) -> Dict[str, Any]:
    return {
        "level": log_level,
        "handlers": ["console"],
        "propagate": False,
    }


def _quiet_logger(level: str = "WARNING") -> Dict[str, Any]:
    return {
        "level": level,
        "handlers": ["console"],
        "propagate": False,
    }


def get_logging_config(log_level: str = "INFO") -> Dict[str, Any]:
    """
    Get logging configuration dictionary

    Args:
        log_level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logging configuration dict
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(levelname)s:     %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "detailed",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            # Application loggers
            "routers": _app_logger(log_level),
            "services": _app_logger(log_level),
            "mt5api": _app_logger(log_level),
            "scheduler": _app_logger(log_level),
            "utils": _app_logger(log_level),
            # Third-party library loggers (reduce noise)
            "uvicorn": _quiet_logger("INFO"),
            "uvicorn.access": _quiet_logger(),
            "sqlalchemy": _quiet_logger(),
            "urllib3": _quiet_logger(),
            "apscheduler": _quiet_logger(),
            "passlib": _quiet_logger("ERROR"),
        },
        # Root logger - catches everything not caught by specific loggers
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }


def setup_logging(log_level: str = "INFO"):
    """
    Configure logging for the application

    Args:
        log_level: Log level to use (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Usage:
        from logging_config import setup_logging
        setup_logging(log_level="INFO")
    """
    config = get_logging_config(log_level.upper())
    logging.config.dictConfig(config)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured with level: {log_level}")
