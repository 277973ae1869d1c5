import sys
from pathlib import Path
from loguru import logger

LOGS_DIR = Path("logs")

# Remove default logger
logger.remove()

# Severity levels and their corresponding files
SEVERITY_FILES = {
    "ERROR": "error.log",
    "WARNING": "warning.log",
    "CRITICAL": "critical.log",
    "INFO": "info.log",
    "DEBUG": "debug.log",
    "TRACE": "trace.log",
    "SUCCESS": "success.log"
}

# Common log format for files
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]}:{function}:{line} - {message}"

# Common log format for console (with colors)
CONSOLE_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[module]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"

logger.configure(extra={"module": "logsync"})

_console_handlers = []


def _add_console_handlers(level: str = "INFO") -> None:
    for handler_id in _console_handlers:
        logger.remove(handler_id)
    _console_handlers.clear()

    _console_handlers.append(logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=True,
        filter=lambda record: record["level"].no < logger.level("WARNING").no
    ))

    _console_handlers.append(logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level="WARNING",
        colorize=True,
        filter=lambda record: record["level"].no >= logger.level("WARNING").no
    ))


_add_console_handlers()


def configure_console_logging(level: str = "INFO", debug_mode: bool = False):
    """Re-add console handlers with the configured level."""
    _add_console_handlers("DEBUG" if debug_mode else level)


def configure_file_logging(write_to_files: bool = True):
    """Configure file-based logging based on settings."""
    if write_to_files:
        LOGS_DIR.mkdir(exist_ok=True)
        # Add file loggers for each severity level
        for level, filename in SEVERITY_FILES.items():
            logger.add(
                LOGS_DIR / filename,
                rotation="100 MB",
                retention="7 days",
                compression="zip",
                format=FILE_FORMAT,
                level=level,
                backtrace=True,
                diagnose=True,
                filter=lambda record, level=level: record["level"].name == level
            )

# Export the configured logger
__all__ = ["logger", "configure_console_logging", "configure_file_logging"]
