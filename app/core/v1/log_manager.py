"""Log Manager for application logging."""

import logging
import sys
from typing import Optional
from datetime import datetime

from app.settings.v1.general import SETTINGS


class LogManager:
    """Log Manager wrapping a stdlib logger with keyword context."""

    def __init__(self, name: str = __name__):
        """Initialize Log Manager.

        Args:
            name (str): Logger name.
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(self._level())
        
        # Avoid duplicate handlers
        if not self.logger.handlers:
            self._setup_logger()

    @staticmethod
    def _level() -> int:
        return getattr(logging, SETTINGS.LOG_LEVEL.upper(), logging.INFO)

    def _setup_logger(self):
        """Attach a stdout handler using the configured format."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self._level())
        console_handler.setFormatter(
            logging.Formatter(fmt=SETTINGS.LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
        )
        self.logger.addHandler(console_handler)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self.logger.info(self._compose(message, kwargs))

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self.logger.warning(self._compose(message, kwargs))

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self.logger.error(self._compose(message, kwargs))

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self.logger.debug(self._compose(message, kwargs))

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self.logger.critical(self._compose(message, kwargs))

    def _compose(self, message: str, context: dict) -> str:
        formatted = self._format_context(context)
        return f"{message} {formatted}" if formatted else message

    def _format_context(self, context: dict) -> str:
        """Format context information for logging.

        Args:
            context (dict): Context information.

        Returns:
            str: Formatted context string, empty when there is no context.
        """
        if not context:
            return ""
        
        formatted_items = []
        for key, value in context.items():
            if isinstance(value, str):
                formatted_items.append(f"{key}='{value}'")
            else:
                formatted_items.append(f"{key}={value}")
        
        return f"[{', '.join(formatted_items)}]"

    def log_request(self, method: str, path: str, session_id: Optional[str] = None):
        """Log an incoming HTTP request.

        Args:
            method (str): HTTP method.
            path (str): Request path.
            session_id (Optional[str]): Chat session the request refers to, if known.
        """
        self.info(
            f"HTTP Request: {method} {path}",
            session_id=session_id,
            timestamp=datetime.now().isoformat()
        )

    def log_response(self, method: str, path: str, status_code: int, duration: float):
        """Log an HTTP response with its duration in seconds."""
        self.info(
            f"HTTP Response: {method} {path} - {status_code}",
            duration=f"{duration:.3f}s",
            timestamp=datetime.now().isoformat()
        )
