"""
Logging configuration for simplehttp

The library logs under the "simplehttp" namespace. Applications either
configure that namespace themselves or call setup_logging() for console
and optional file output.
"""

import logging
import sys
from pathlib import Path

ROOT_LOGGER_NAME = "simplehttp"


class SimpleHttpLogger:
    """Centralized logger for the library"""

    def __init__(
        self,
        name: str = ROOT_LOGGER_NAME,
        log_file: Path | None = None,
        console_output: bool = True,
    ):
        """
        Initialize logger

        Args:
            name: Logger name (usually "simplehttp" for the library logger)
            log_file: Path to log file (optional)
            console_output: Whether to print to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        # Clear existing handlers
        self.logger.handlers = []

        # Format: timestamp - module - level - message
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

        if console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(logging.INFO)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    def get_logger(self) -> logging.Logger:
        """Get the underlying logger instance"""
        return self.logger


def setup_logging(log_file: Path | None = None, verbose: bool = True) -> logging.Logger:
    """
    Attach handlers to the library logger

    Args:
        log_file: File that receives DEBUG and above, including request traces
        verbose: Whether to also print INFO and above to stdout

    Returns:
        Configured logger instance
    """
    logger_wrapper = SimpleHttpLogger(
        name=ROOT_LOGGER_NAME, log_file=log_file, console_output=verbose
    )
    return logger_wrapper.get_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Get logger for a specific module

    Args:
        module_name: Name of the module (e.g., 'http_client', 'query')

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{module_name}")
