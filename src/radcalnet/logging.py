"""Logging system for RadCalNet using Loguru.

Provides structured logging with configurable levels, file rotation and
component-bound child loggers.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from .config import get_config
from .exceptions import LoggingError


class RadcalLogger:
    """RadCalNet logging system with structured logging."""

    def __init__(self):
        self._configured = False

    def configure(self, config=None) -> None:
        """Configure logging based on provided config."""
        if config is None:
            config = get_config()

        # Remove default and previously installed handlers
        logger.remove()
        logger.configure(extra={"component": "radcalnet"})

        # Console handler
        logger.add(
            sys.stdout,
            level=config.logging.level,
            format=config.logging.format,
            colorize=True,
        )

        # File handler (if specified)
        if config.logging.file:
            file_path = Path(config.logging.file)
            try:
                file_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise LoggingError(
                    "Cannot create log directory",
                    details={"path": str(file_path.parent), "error": str(e)}
                ) from e

            logger.add(
                str(file_path),
                level=config.logging.level,
                format=config.logging.format,
                rotation=config.logging.max_size,
                retention=config.logging.retention,
                encoding="utf-8",
            )

        self._configured = True

        logger.debug("RadCalNet logging configured", extra={
            "level": config.logging.level,
            "file": str(config.logging.file) if config.logging.file else None,
        })

    def log_build_start(self, saveas: str, parameters: Dict[str, Any]) -> None:
        """Log database creation start."""
        logger.info("Creating database {}", saveas, extra={"parameters": parameters})

    def log_block_flushed(self, block: int, repeats: int, rows: int, failed: int) -> None:
        """Log a block written to intermediate storage."""
        logger.info(f"Block {block}/{repeats} flushed: {rows} rows, {failed} failed samples")

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """Log error with context."""
        context = context or {}
        logger.error("{}: {}", type(error).__name__, error, extra={
            "error_type": type(error).__name__,
            "context": context
        })

    def create_child_logger(self, name: str) -> "RadcalChildLogger":
        """Create a child logger with specific context."""
        return RadcalChildLogger(name, self)


class RadcalChildLogger:
    """Child logger with specific context."""

    def __init__(self, name: str, parent: RadcalLogger):
        self.name = name
        self.parent = parent
        self.logger = logger.bind(component=name)

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self.logger.error(message, **kwargs)

    def critical(self, message: str, **kwargs) -> None:
        self.logger.critical(message, **kwargs)


# Global logger instance
radcal_logger = RadcalLogger()


def get_logger(name: Optional[str] = None) -> RadcalChildLogger:
    """Get a logger instance for a specific component."""
    if name:
        return radcal_logger.create_child_logger(name)
    return RadcalChildLogger("radcalnet", radcal_logger)


def setup_logging(config=None) -> None:
    """Setup logging for the entire package."""
    radcal_logger.configure(config)


# Convenience functions
def log_build_start(saveas: str, parameters: Dict[str, Any]) -> None:
    radcal_logger.log_build_start(saveas, parameters)


def log_block_flushed(block: int, repeats: int, rows: int, failed: int) -> None:
    radcal_logger.log_block_flushed(block, repeats, rows, failed)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log error with context."""
    radcal_logger.log_error(error, context)


# Configure on import
try:
    setup_logging()
except Exception as e:
    # Fallback to basic logging if configuration fails
    import logging
    logging.basicConfig(level=logging.INFO)
    logging.error(f"Failed to configure RadCalNet logging: {e}")
