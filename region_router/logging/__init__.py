"""Structured logging for region detection and the HTTP API.

Provides structured logging for:
- Detection attempts per strategy (latency, failures)
- Cache operations (hits, coalesced joins, clears)
- API requests

Supports:
- Console logging (development)
- Rotating file logging (development and production)
"""

import logging
import os
import sys
import time
from contextvars import ContextVar
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

# Request context for correlating logs
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_client_ip: ContextVar[Optional[str]] = ContextVar("client_ip", default=None)


class EventCategory(str, Enum):
    """Categories of logged events."""
    DETECTION = "detection"
    CACHE = "cache"
    ADAPTER = "adapter"
    SYSTEM = "system"
    ERROR = "error"
    PERFORMANCE = "performance"


class LogConfig:
    """Logging configuration from environment variables."""

    # Environment: development, staging, production
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Log level: DEBUG, INFO, WARNING, ERROR
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Log format: json or text
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json" if ENVIRONMENT == "production" else "text")

    # File logging
    LOG_TO_FILE: bool = os.getenv("LOG_TO_FILE", "false").lower() == "true"
    LOG_DIR: Path = Path(os.getenv("LOG_DIR", "logs"))
    LOG_FILE_MAX_BYTES: int = int(os.getenv("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024))  # 10MB
    LOG_FILE_BACKUP_COUNT: int = int(os.getenv("LOG_FILE_BACKUP_COUNT", 5))


def _rotating_handler(filename: str, level: int) -> logging.Handler:
    LogConfig.LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        LogConfig.LOG_DIR / filename,
        maxBytes=LogConfig.LOG_FILE_MAX_BYTES,
        backupCount=LogConfig.LOG_FILE_BACKUP_COUNT,
    )
    handler.setFormatter(logging.Formatter('%(message)s'))
    handler.setLevel(level)
    return handler


def configure_production_logging() -> None:
    """Configure stdlib handlers and structlog processors for all environments."""
    level = getattr(logging, LogConfig.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    # Console handler (always enabled)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if LogConfig.LOG_TO_FILE:
        root_logger.addHandler(_rotating_handler("app.log", level))
        root_logger.addHandler(_rotating_handler("error.log", logging.ERROR))

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_request_context,
        add_environment_context,
    ]

    # JSON for production, colored console for dev
    if LogConfig.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).info(
        "logging_configured",
        environment=LogConfig.ENVIRONMENT,
        log_level=LogConfig.LOG_LEVEL,
        log_format=LogConfig.LOG_FORMAT,
        file_logging=LogConfig.LOG_TO_FILE,
    )


def add_request_context(logger, method_name, event_dict):
    """Add request context to log events."""
    request_id = _request_id.get()
    client_ip = _client_ip.get()

    if request_id:
        event_dict["request_id"] = request_id
    if client_ip:
        event_dict["client_ip"] = client_ip

    return event_dict


def add_environment_context(logger, method_name, event_dict):
    """Add environment info to log events."""
    event_dict["env"] = LogConfig.ENVIRONMENT
    return event_dict


def set_request_context(
    request_id: Optional[str] = None,
    client_ip: Optional[str] = None,
):
    """Set request context for correlation."""
    if request_id:
        _request_id.set(request_id)
    if client_ip:
        _client_ip.set(client_ip)


def clear_request_context():
    """Clear request context."""
    _request_id.set(None)
    _client_ip.set(None)


logger = structlog.get_logger(__name__)


def log_detection_attempt(
    strategy: str,
    ip: str,
    success: bool,
    duration_ms: float,
    country: Optional[str] = None,
    error: Optional[str] = None,
    retryable: Optional[bool] = None,
):
    """Log one detection strategy attempt.

    Args:
        strategy: Strategy name (ipapi, ip-api, ...)
        ip: Client IP being resolved
        success: Whether the strategy produced a country code
        duration_ms: Attempt duration in milliseconds
        country: Country code found, if any
        error: Failure reason if the attempt failed
        retryable: Whether the failure is transient (timeouts, 5xx)
    """
    level = "info" if success else "warning"
    getattr(logger, level)(
        "detection_attempt",
        category=EventCategory.DETECTION.value,
        strategy=strategy,
        ip=ip,
        success=success,
        duration_ms=round(duration_ms, 2),
        country=country,
        error=error,
        retryable=retryable,
    )


def log_detection_fallback(ip: str, errors: list[str]):
    """Log that every strategy failed and the default profile was used."""
    logger.error(
        "detection_fallback",
        category=EventCategory.DETECTION.value,
        ip=ip,
        errors=errors,
    )


def log_cache_operation(
    operation: str,  # "hit", "miss", "join", "store", "clear"
    ip: Optional[str] = None,
    hit_rate: Optional[float] = None,
):
    """Log a resolver cache operation.

    Args:
        operation: Type of cache operation
        ip: IP the operation concerned
        hit_rate: Current cache hit rate
    """
    logger.debug(
        "cache_operation",
        category=EventCategory.CACHE.value,
        operation=operation,
        ip=ip,
        hit_rate=hit_rate,
    )


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    user_agent: Optional[str] = None,
    error: Optional[str] = None,
):
    """Log API request."""
    level = "info" if status_code < 400 else "warning" if status_code < 500 else "error"
    getattr(logger, level)(
        "api_request",
        category=EventCategory.SYSTEM.value,
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        user_agent=user_agent[:100] if user_agent else None,
        error=error,
    )


class LogTimer:
    """Context manager for timing and logging operations."""

    def __init__(
        self,
        operation: str,
        category: EventCategory = EventCategory.PERFORMANCE,
        **extra_fields,
    ):
        self.operation = operation
        self.category = category
        self.extra_fields = extra_fields
        self.start_time: float = 0
        self.duration_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is not None:
            logger.error(
                self.operation,
                category=self.category.value,
                duration_ms=self.duration_ms,
                success=False,
                error=str(exc_val),
                **self.extra_fields,
            )
        else:
            logger.info(
                self.operation,
                category=self.category.value,
                duration_ms=self.duration_ms,
                success=True,
                **self.extra_fields,
            )

        return False  # Don't suppress exceptions
