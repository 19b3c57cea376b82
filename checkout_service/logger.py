"""Logging setup for the checkout service.

Each component (``api``, ``server``) writes to its own file under the
configured log directory as well as to stdout. Library modules such as the
retry executor and the Stripe client use ``logging.getLogger(__name__)`` and
reach stdout through the package logger.
"""

import logging
import sys
from pathlib import Path
from typing import Self

from checkout_service.config import Settings

PACKAGE_LOGGER = "checkout_service"
API_COMPONENT = "api"
SERVER_COMPONENT = "server"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogManager:
    """Owns the per-component loggers of the service."""

    _instance: Self | None = None
    _initialized: bool = False

    def __new__(cls) -> Self:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if LogManager._initialized:
            return
        self._loggers: dict[str, logging.Logger] = {}
        self._log_dir: Path | None = None
        self._log_level: int = logging.INFO
        self._formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        LogManager._initialized = True

    @property
    def is_configured(self) -> bool:
        return self._log_dir is not None

    def initialize(self, settings: Settings) -> None:
        """Configure log directory and level from settings.

        Calling this again with a different directory or level rebuilds the
        component loggers so they follow the new settings.
        """
        log_dir = Path(settings.log_dir)
        log_level = getattr(logging, settings.log_level.upper())

        if self._loggers and (log_dir != self._log_dir or log_level != self._log_level):
            self.reset()

        self._log_dir = log_dir
        self._log_level = log_level
        self._log_dir.mkdir(parents=True, exist_ok=True)

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(log_level)
        if not package_logger.handlers:
            package_logger.addHandler(self._console_handler())

    def get_logger(self, name: str) -> logging.Logger:
        """Get or create the logger for a component.

        Raises:
            RuntimeError: If logging has not been initialized.
        """
        if name in self._loggers:
            return self._loggers[name]

        if self._log_dir is None:
            raise RuntimeError("Logging not initialized. Call setup_logging() first.")

        logger = logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
        logger.setLevel(self._log_level)
        # Own handlers only, so lines are not repeated by the package logger
        logger.propagate = False
        logger.addHandler(self._file_handler(name))
        logger.addHandler(self._console_handler())

        self._loggers[name] = logger
        return logger

    def reset(self) -> None:
        """Close component handlers and forget the cached loggers."""
        for logger in self._loggers.values():
            for handler in logger.handlers[:]:
                handler.close()
                logger.removeHandler(handler)
            logger.propagate = True
        self._loggers.clear()

    def get_api_logger(self) -> logging.Logger:
        return self.get_logger(API_COMPONENT)

    def get_server_logger(self) -> logging.Logger:
        return self.get_logger(SERVER_COMPONENT)

    def _file_handler(self, name: str) -> logging.FileHandler:
        handler = logging.FileHandler(self._log_dir / f"{name}.log", mode="a")
        handler.setFormatter(self._formatter)
        handler.setLevel(self._log_level)
        return handler

    def _console_handler(self) -> logging.StreamHandler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(self._formatter)
        return handler


# Global instance
log_manager = LogManager()


def setup_logging(settings: Settings) -> None:
    """Initialize logging with settings."""
    log_manager.initialize(settings)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a component."""
    return log_manager.get_logger(name)
