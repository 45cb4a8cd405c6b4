"""Structured JSON logging"""

import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional
import uuid


_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields
        if hasattr(record, "extra"):
            log_data.update(record.extra)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ProxyLogger:
    """Logger for proxy events"""

    def __init__(self, name: str = "agent_proxy"):
        """
        Initialize logger

        Args:
            name: Logger name
        """
        self.logger = logging.getLogger(name)

    @property
    def request_id(self) -> Optional[str]:
        """Request ID of the current request context"""
        return _request_id.get()

    def set_request_id(self, request_id: str):
        """Set request ID for current context"""
        _request_id.set(request_id)

    def generate_request_id(self) -> str:
        """Generate new request ID for current context"""
        request_id = f"chatcmpl-{uuid.uuid4().hex[:29]}"
        _request_id.set(request_id)
        return request_id

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs):
        """Internal log method with extra fields"""
        extra = kwargs.copy()
        if self.request_id:
            extra["request_id"] = self.request_id

        self.logger.log(level, message, exc_info=exc_info, extra={"extra": extra})

    def info(self, message: str, **kwargs):
        """Log info message"""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message"""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message"""
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log error message with the active exception's traceback"""
        self._log(logging.ERROR, message, exc_info=True, **kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message"""
        self._log(logging.DEBUG, message, **kwargs)

    def log_api_call(
        self,
        family: str,
        session_label: str,
        model: str,
        message_count: int,
        stream: bool,
        **kwargs
    ):
        """
        Log chat request event

        Args:
            family: Protocol family of the request
            session_label: Session label sent downstream
            model: Echoed model name
            message_count: Number of messages after normalization
            stream: Whether incremental delivery was requested
            **kwargs: Additional fields
        """
        self.info(
            "Chat request received",
            event_type="api_call",
            family=family,
            session_label=session_label,
            model=model,
            message_count=message_count,
            stream=stream,
            **kwargs
        )

    def log_completion(
        self,
        session_label: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        total_tokens: int,
        **kwargs
    ):
        """
        Log chat completion event

        Token counts are the length-based estimate, not real tokenization.

        Args:
            session_label: Session label sent downstream
            model: Echoed model name
            prompt_tokens: Estimated prompt tokens
            completion_tokens: Estimated completion tokens
            total_tokens: Estimated total tokens
            **kwargs: Additional fields
        """
        self.info(
            "Chat request completed",
            event_type="api_completion",
            session_label=session_label,
            model=model,
            tokens={
                "prompt": prompt_tokens,
                "completion": completion_tokens,
                "total": total_tokens
            },
            **kwargs
        )

    def log_gateway_error(
        self,
        gateway: str,
        error_type: str,
        error_message: str,
        **kwargs
    ):
        """
        Log downstream gateway error event

        Args:
            gateway: Gateway address
            error_type: Type of error
            error_message: Error message
            **kwargs: Additional fields
        """
        self.error(
            "Gateway error",
            event_type="gateway_error",
            gateway=gateway,
            error_type=error_type,
            error_message=error_message,
            **kwargs
        )


def setup_logging(log_level: str = "INFO"):
    """
    Set up logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    # Create root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create console handler with JSON formatter
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    # Set level for third-party loggers
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# Global logger instance
logger = ProxyLogger()
