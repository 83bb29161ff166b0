"""
Structured logging for the coordinate toolkit.
Provides JSON logging and contextual logging for the command-line tools.
"""

import logging
import json
import sys
from typing import Any, Dict, List, Optional
from datetime import datetime

_installed_handlers: List[logging.Handler] = []


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Outputs logs as JSON for easy parsing and aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Add custom fields from extras
        if hasattr(record, 'context'):
            log_data.update(record.context)

        return json.dumps(log_data, default=str)


class ContextLogger:
    """
    Logger with context support for structured logging.

    Allows adding contextual information, such as the command being run,
    to all subsequent logs.
    """

    def __init__(self, name: str):
        """
        Initialize context logger.

        Args:
            name: Logger name
        """
        self.logger = logging.getLogger(name)
        self.context: Dict[str, Any] = {}

    def set_context(self, **kwargs) -> None:
        """
        Set logging context.

        Args:
            **kwargs: Context key-value pairs
        """
        self.context.update(kwargs)

    def clear_context(self) -> None:
        """Clear logging context."""
        self.context.clear()

    def _log(self, level: int, msg: str, **kwargs) -> None:
        """Internal logging method with context."""
        extra = {'context': {**self.context, **kwargs}}
        self.logger.log(level, msg, extra=extra)

    def debug(self, msg: str, **kwargs) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, **kwargs)


def _make_formatter(json_format: bool, fmt: Optional[str]) -> logging.Formatter:
    if json_format:
        return JSONFormatter()
    return logging.Formatter(fmt or '%(asctime)s - %(name)s - %(levelname)s - %(message)s')


def setup_logging(log_level: str = "INFO",
                  json_format: bool = False,
                  log_file: Optional[str] = None,
                  fmt: Optional[str] = None) -> ContextLogger:
    """
    Setup structured logging for the coordinate toolkit.

    Logs go to stderr so command output on stdout stays clean.

    Args:
        log_level: Logging level
        json_format: Use JSON format
        log_file: Optional log file path
        fmt: Optional text format string (ignored for JSON)

    Returns:
        Configured context logger
    """
    logger = ContextLogger('geo-coordinates')
    root = logging.getLogger()

    # Replace handlers from an earlier call
    reset_logging()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(_make_formatter(json_format, fmt))
    console_handler.setLevel(log_level)
    _installed_handlers.append(console_handler)

    # File handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_make_formatter(json_format, fmt))
        file_handler.setLevel(log_level)
        _installed_handlers.append(file_handler)

    for handler in _installed_handlers:
        root.addHandler(handler)
    root.setLevel(log_level)

    return logger


def reset_logging() -> None:
    """Remove the handlers installed by setup_logging."""
    root = logging.getLogger()
    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()
