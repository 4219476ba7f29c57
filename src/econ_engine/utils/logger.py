"""
Logging Framework Module
========================
Centralized logging configuration for callers of the computation engine.

The core itself only emits records through module loggers
(``logging.getLogger(__name__)``); the package root installs a NullHandler,
so nothing is written anywhere until an application calls setup_logger().

Features:
- Console output with colored formatting
- Optional file logging
- Performance tracking decorator
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
import functools
import time


# ================================================================================
# LOG LEVELS AND CONFIGURATION
# ================================================================================

DEFAULT_CONFIG = {
    'console_level': logging.INFO,
    'file_level': logging.DEBUG,
    'log_dir': 'logs',
    'format': '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    'date_format': '%Y-%m-%d %H:%M:%S',
}


# ================================================================================
# CUSTOM FORMATTER WITH COLORS
# ================================================================================

class ColoredFormatter(logging.Formatter):
    """Formatter with ANSI color codes for console output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        # Color a copy so other handlers keep the plain levelname
        record = logging.makeLogRecord(record.__dict__)
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        return super().format(record)


# ================================================================================
# LOGGER SETUP
# ================================================================================

def setup_logger(
    name: str,
    console_level: int = DEFAULT_CONFIG['console_level'],
    file_level: int = DEFAULT_CONFIG['file_level'],
    log_dir: str = DEFAULT_CONFIG['log_dir'],
    enable_file_logging: bool = False,
    stream=None,
) -> logging.Logger:
    """
    Configure and return a logger with console and optional file handlers.

    Args:
        name: Logger name (use "econ_engine" to capture the whole core)
        console_level: Minimum level for console output
        file_level: Minimum level for file output
        log_dir: Directory for log files
        enable_file_logging: Whether to enable file logging
        stream: Console stream (stdout if None)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)  # Capture all, filter in handlers

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredFormatter(
        fmt=DEFAULT_CONFIG['format'],
        datefmt=DEFAULT_CONFIG['date_format']
    ))
    logger.addHandler(console_handler)

    if enable_file_logging:
        log_path = Path(log_dir)
        log_path.mkdir(exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d')
        log_file = log_path / f"{name.replace('.', '_')}_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(
            fmt=DEFAULT_CONFIG['format'],
            datefmt=DEFAULT_CONFIG['date_format']
        ))
        logger.addHandler(file_handler)

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """
    Get or create a configured logger for an application entry point.

    Library modules should NOT call this: they use logging.getLogger(__name__)
    and leave handler configuration to the application.

    Usage:
        from econ_engine.utils.logger import get_logger
        logger = get_logger("econ_engine")
        logger.info("Analysis started")
    """
    return setup_logger(module_name)


# ================================================================================
# PERFORMANCE TRACKING DECORATOR
# ================================================================================

def log_performance(logger: logging.Logger):
    """
    Decorator to log function execution time at DEBUG level.

    Usage:
        @log_performance(logger)
        def expensive_function():
            ...
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            logger.debug(f"Starting {func.__name__}")

            try:
                result = func(*args, **kwargs)
                elapsed = time.perf_counter() - start_time
                logger.debug(f"Completed {func.__name__} in {elapsed:.3f}s")
                return result
            except Exception as e:
                elapsed = time.perf_counter() - start_time
                logger.debug(f"Failed {func.__name__} after {elapsed:.3f}s: {e}")
                raise

        return wrapper
    return decorator
