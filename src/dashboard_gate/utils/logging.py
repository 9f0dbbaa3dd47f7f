"""
Logging configuration and utilities for the dashboard gate.

This module provides centralized logging setup with support for both
structured JSON logging (for production) and human-readable text logging
(for development). It integrates with structlog for structured logging
and rich for console output.

Features:
- Service-specific loggers (gate, notifier, scheduler, server)
- HTTP request/response logging for the outbound webhook
- Masking of secrets in logged headers and bodies
- Error logging with context
"""

import json
import logging
import sys
import uuid
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import structlog
from rich.console import Console
from rich.logging import RichHandler

from dashboard_gate.config import LoggingConfig


SENSITIVE_KEYS = ("authorization", "token", "key", "secret", "password")


def setup_logging(config: LoggingConfig) -> None:
    """
    Set up application logging based on configuration.

    Configures the standard library logging (used by aiohttp's access log)
    and structlog so both end up on the same output.

    Args:
        config: Logging configuration settings

    Example:
        ```python
        from dashboard_gate.config import load_config
        from dashboard_gate.utils.logging import setup_logging

        app_config = load_config()
        setup_logging(app_config.logging)
        ```
    """
    # Clear any existing handlers
    logging.getLogger().handlers.clear()
    logging.getLogger().setLevel(config.level)

    if config.format == "json":
        _setup_json_logging(config)
    else:
        _setup_rich_logging(config)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                parameters=[structlog.processors.CallsiteParameter.FILENAME,
                           structlog.processors.CallsiteParameter.LINENO]
            ),
            _structlog_processor if config.format == "json" else _rich_processor,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.level)
        ),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    configure_external_loggers()


def _setup_json_logging(config: LoggingConfig) -> None:
    """Set up structured JSON logging for production."""
    formatter = logging.Formatter(
        fmt='{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}',
        datefmt="%Y-%m-%dT%H:%M:%SZ"
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(config.level)

    logging.getLogger().addHandler(handler)


def _setup_rich_logging(config: LoggingConfig) -> None:
    """Set up rich text logging for development."""
    console = Console(force_terminal=True, width=120)

    handler = RichHandler(
        console=console,
        show_time=True,
        show_level=True,
        show_path=True,
        markup=False,
        rich_tracebacks=True,
    )

    handler.setLevel(config.level)
    logging.getLogger().addHandler(handler)


def _structlog_processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> str:
    """Process structlog events for JSON output."""
    return json.dumps(event_dict, default=str)


def _rich_processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> str:
    """Process structlog events for rich text output."""
    message = event_dict.pop("event", "")

    if event_dict:
        context_items = []
        for key, value in event_dict.items():
            if key not in {"timestamp", "level", "filename", "lineno"}:
                context_items.append(f"{key}={value}")

        if context_items:
            message += f" ({', '.join(context_items)})"

    return message


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Optional logger name (defaults to calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)


def get_service_logger(service_name: str) -> structlog.BoundLogger:
    """
    Get a service-specific logger with consistent naming.

    Args:
        service_name: Name of the service (e.g. 'gate', 'notifier', 'scheduler')

    Returns:
        Logger bound with service context
    """
    logger = get_logger(f"service.{service_name}")
    return logger.bind(service=service_name)


def generate_correlation_id() -> str:
    """Generate a short unique ID for tracking one outbound request."""
    return str(uuid.uuid4())[:8]


def mask_value(value: Any) -> str:
    """Mask a secret, keeping at most its last four characters."""
    value = str(value)
    return f"***{value[-4:] if len(value) > 8 else ''}"


def _is_sensitive(key: str) -> bool:
    return any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an error with context information.

    Automatically includes exception type and message.

    Args:
        error: The exception that occurred
        context: Additional context information

    Example:
        ```python
        try:
            await notifier.deliver(password)
        except NotificationError as e:
            log_error(e, {"webhook": host})
        ```
    """
    logger = get_logger()
    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        error_context.update(context)

    logger.error("Exception occurred", **error_context)


def log_http_request(
    method: str,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    body: Optional[Union[str, Dict[str, Any]]] = None,
    service: str = "unknown",
    correlation_id: Optional[str] = None
) -> None:
    """
    Log HTTP request details.

    Sensitive headers and body fields are masked so derived passwords
    never reach the logs.

    Args:
        method: HTTP method (GET, POST, etc.)
        url: Request URL
        headers: Request headers
        body: Request body (dict bodies are masked field by field)
        service: Service name
        correlation_id: Optional correlation ID for request tracking
    """
    logger = get_service_logger(service)
    parsed_url = urlparse(url)

    safe_headers = {}
    if headers:
        for key, value in headers.items():
            safe_headers[key] = mask_value(value) if _is_sensitive(key) else value

    safe_body = body
    if isinstance(body, str) and len(body) > 1000:
        safe_body = body[:1000] + "... (truncated)"
    elif isinstance(body, dict):
        safe_body = {k: (mask_value(v) if _is_sensitive(k) else v)
                    for k, v in body.items()}

    logger.info(
        "HTTP request initiated",
        method=method,
        host=parsed_url.netloc,
        path=parsed_url.path,
        headers=safe_headers,
        body=safe_body,
        correlation_id=correlation_id or "none"
    )


def log_http_response(
    status_code: int,
    response_time_ms: float,
    body_excerpt: Optional[str] = None,
    error: Optional[str] = None,
    service: str = "unknown",
    correlation_id: Optional[str] = None
) -> None:
    """
    Log HTTP response details.

    Args:
        status_code: HTTP status code (0 when no response was received)
        response_time_ms: Response time in milliseconds
        body_excerpt: Short excerpt of the response body
        error: Error message if request failed
        service: Service name
        correlation_id: Optional correlation ID for request tracking
    """
    logger = get_service_logger(service)

    log_level = "info"
    if status_code == 0 or status_code >= 500:
        log_level = "error"
    elif status_code >= 400 or error:
        log_level = "warning"

    log_data = {
        "status_code": status_code,
        "response_time_ms": round(response_time_ms, 2),
        "correlation_id": correlation_id or "none"
    }

    if body_excerpt:
        log_data["body_excerpt"] = body_excerpt

    if error:
        log_data["error"] = error

    message = "HTTP request failed" if error else "HTTP response received"
    getattr(logger, log_level)(message, **log_data)


def configure_external_loggers():
    """
    Configure logging levels for external libraries to reduce noise.
    """
    logging.getLogger('aiohttp.access').setLevel(logging.INFO)
    logging.getLogger('aiohttp.server').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.client').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
