"""
Structured logging configuration for the POS service.

Every record is emitted as one JSON object so till terminals, kitchen
printers and the back office can ship logs to the same collector.
"""

import logging
import logging.handlers
import os
import re
import sys
import json
import time
import traceback
import uuid
from datetime import datetime
from typing import Any, Dict, Optional
from contextvars import ContextVar
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

# Context variables for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
terminal_id_var: ContextVar[Optional[str]] = ContextVar('terminal_id', default=None)


class StructuredFormatter(logging.Formatter):
    """JSON formatter; one line per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "@timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": os.getenv('SERVICE_NAME', 'pos-service'),
            "environment": os.getenv('ENVIRONMENT', 'development'),
            "version": os.getenv('SERVICE_VERSION', '1.0.0'),
        }

        trace_context = self._get_trace_context()
        if trace_context:
            log_obj["trace"] = trace_context

        log_obj["location"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
            "module": record.module
        }

        if record.exc_info:
            log_obj["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stacktrace": traceback.format_exception(*record.exc_info)
            }

        # Order ids, totals, status changes etc. arrive through extra_fields
        if hasattr(record, 'extra_fields'):
            log_obj["custom"] = record.extra_fields

        if hasattr(record, 'duration_ms'):
            log_obj["performance"] = {
                "duration_ms": record.duration_ms
            }

        return json.dumps(log_obj, default=str)

    def _get_trace_context(self) -> Optional[Dict[str, Any]]:
        context = {}
        request_id = request_id_var.get()
        if request_id:
            context["request_id"] = request_id
        correlation_id = correlation_id_var.get()
        if correlation_id:
            context["correlation_id"] = correlation_id
        terminal_id = terminal_id_var.get()
        if terminal_id:
            context["terminal_id"] = terminal_id
        return context or None


class PerformanceFilter(logging.Filter):
    """Filter to add performance metrics to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(record, 'duration'):
            record.duration_ms = record.duration * 1000
        return True


class CustomerDataFilter(logging.Filter):
    """
    Mask customer phone numbers before they leave the process.

    Unpaid-dues settlement and the customer ledger both carry phone numbers;
    only the last four digits are kept in log output.
    """

    PHONE_PATTERN = re.compile(r'\+?\d[\d\s-]{6,}(\d{4})')

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.PHONE_PATTERN.sub(r'***\1', record.msg)
        extra_fields = getattr(record, 'extra_fields', None)
        if isinstance(extra_fields, dict) and extra_fields.get('customer_phone'):
            phone = str(extra_fields['customer_phone'])
            record.extra_fields = {**extra_fields, 'customer_phone': '***' + phone[-4:]}
        return True


def setup_logging(
    service_name: str,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = False,
    log_file: str = None
) -> None:
    """
    Setup structured logging for the service

    Args:
        service_name: Name reported in every record
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Enable console output
        enable_file: Enable file output
        log_file: Path to log file
    """
    os.environ['SERVICE_NAME'] = service_name

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers = []

    formatter = StructuredFormatter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(PerformanceFilter())
        console_handler.addFilter(CustomerDataFilter())
        root_logger.addHandler(console_handler)

    if enable_file and log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10485760,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(PerformanceFilter())
        file_handler.addFilter(CustomerDataFilter())
        root_logger.addHandler(file_handler)

    logging.getLogger('uvicorn').setLevel(logging.WARNING)
    logging.getLogger('fastapi').setLevel(logging.INFO)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)

    root_logger.info(
        "Logging initialized",
        extra={
            'extra_fields': {
                'service': service_name,
                'level': level,
                'handlers': {
                    'console': enable_console,
                    'file': enable_file
                }
            }
        }
    )


class LoggerAdapter(logging.LoggerAdapter):
    """Injects the current request context into every record."""

    def process(self, msg, kwargs):
        extra = kwargs.get('extra', {})

        request_id = request_id_var.get()
        if request_id:
            extra['request_id'] = request_id

        correlation_id = correlation_id_var.get()
        if correlation_id:
            extra['correlation_id'] = correlation_id

        terminal_id = terminal_id_var.get()
        if terminal_id:
            extra['terminal_id'] = terminal_id

        kwargs['extra'] = extra
        return msg, kwargs


def get_logger(name: str) -> LoggerAdapter:
    """
    Get a logger instance with request context support

    Args:
        name: Logger name (usually __name__)
    """
    return LoggerAdapter(logging.getLogger(name), {})


def set_request_context(
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    terminal_id: Optional[str] = None
) -> None:
    """
    Set request context for log correlation

    Args:
        request_id: Unique request identifier
        correlation_id: Correlation ID propagated by the caller
        terminal_id: Till or kitchen display that issued the request
    """
    if request_id:
        request_id_var.set(request_id)
    if correlation_id:
        correlation_id_var.set(correlation_id)
    if terminal_id:
        terminal_id_var.set(terminal_id)


def generate_request_id() -> str:
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request and response, tags them with a request id and
    the issuing terminal, and tracks request duration.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get('X-Request-ID', generate_request_id())

        set_request_context(
            request_id=request_id,
            correlation_id=request.headers.get('X-Correlation-ID'),
            terminal_id=request.headers.get('X-Terminal-ID'),
        )

        logger = get_logger(__name__)
        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                'extra_fields': {
                    'method': request.method,
                    'path': request.url.path,
                    'client_host': request.client.host if request.client else None
                }
            }
        )

        start_time = time.time()

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            logger.info(
                f"Request completed: {request.method} {request.url.path}",
                extra={
                    'extra_fields': {
                        'method': request.method,
                        'path': request.url.path,
                        'status_code': response.status_code,
                        'duration_ms': duration * 1000
                    }
                }
            )

            response.headers['X-Request-ID'] = request_id
            return response

        except Exception:
            duration = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                exc_info=True,
                extra={
                    'extra_fields': {
                        'method': request.method,
                        'path': request.url.path,
                        'duration_ms': duration * 1000
                    }
                }
            )
            raise
