"""
Centralized logging configuration.
Writes structured JSON logs and human-readable logs side by side, and carries
request/job context through ContextVars so every record can be correlated.
"""

import json
import logging
import logging.handlers
import uuid
from datetime import datetime, timezone
from pathlib import Path
from contextvars import ContextVar
from typing import Optional, Dict, Any
import traceback

# Context variables for correlation
_request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
_job_id: ContextVar[Optional[str]] = ContextVar('job_id', default=None)
_operation: ContextVar[Optional[str]] = ContextVar('operation', default=None)


def _context_fields() -> Dict[str, str]:
    fields = {}
    for name, var in (("request_id", _request_id), ("job_id", _job_id), ("operation", _operation)):
        value = var.get()
        if value:
            fields[name] = value
    return fields


class StructuredJSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(_context_fields())

        if getattr(record, 'event', None):
            log_data["event"] = record.event

        log_data["message"] = record.getMessage()

        if getattr(record, 'context', None):
            log_data["context"] = record.context

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs indented, human-readable records."""

    max_value_length = 500

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        log_lines = [
            f"{timestamp} {record.levelname:8s} [{record.name}] {record.funcName}() - {record.getMessage()}"
        ]

        for key, value in _context_fields().items():
            log_lines.append(f"  {key}: {value}")

        if getattr(record, 'event', None):
            log_lines.append(f"  event: {record.event}")

        context = getattr(record, 'context', None)
        if isinstance(context, dict):
            for key, value in context.items():
                if isinstance(value, (dict, list)):
                    value_str = json.dumps(value, indent=2, ensure_ascii=False, default=str)
                    log_lines.append(f"  {key}:")
                    log_lines.append('\n'.join('    ' + line for line in value_str.split('\n')))
                else:
                    value_str = str(value)
                    if len(value_str) > self.max_value_length:
                        value_str = value_str[:self.max_value_length] + "... (truncated)"
                    log_lines.append(f"  {key}: {value_str}")
        elif context:
            log_lines.append(f"  context: {context}")

        if record.exc_info:
            exc_type, exc_value, exc_traceback = record.exc_info
            log_lines.append(f"  exception_type: {exc_type.__name__ if exc_type else 'Unknown'}")
            log_lines.append(f"  exception_message: {str(exc_value) if exc_value else 'N/A'}")
            if exc_traceback:
                log_lines.append("  traceback:")
                for tb_line in traceback.format_exception(exc_type, exc_value, exc_traceback):
                    for line in tb_line.rstrip().split('\n'):
                        log_lines.append(f"    {line}")

        return '\n'.join(log_lines)


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None, console: bool = True) -> None:
    """
    Initialize the logging system.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files. If None, uses the configured logs/ directory
        console: Also emit human-readable records to stderr
    """
    if log_dir is None:
        from summarizer.core.config import get_settings
        log_dir = get_settings().logs_dir
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    json_log_file = log_dir / "application.log.json"
    json_file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(json_log_file),
        when='midnight',
        interval=1,
        backupCount=30,
        encoding='utf-8'
    )
    json_file_handler.setLevel(level)
    json_file_handler.setFormatter(StructuredJSONFormatter())
    root_logger.addHandler(json_file_handler)

    text_log_file = log_dir / "application.log"
    text_file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(text_log_file),
        when='midnight',
        interval=1,
        backupCount=30,
        encoding='utf-8'
    )
    text_file_handler.setLevel(level)
    text_file_handler.setFormatter(HumanReadableFormatter())
    root_logger.addHandler(text_file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(HumanReadableFormatter())
        root_logger.addHandler(console_handler)

    log_event(
        level="INFO",
        logger=__name__,
        operation="logging_setup",
        event="logging_initialized",
        message="Logging system initialized",
        context={
            "log_level": log_level,
            "log_dir": str(log_dir),
        }
    )


def set_request_id(request_id: Optional[str]) -> None:
    _request_id.set(request_id)


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:12]}"


def set_job_id(job_id: Optional[str]) -> None:
    _job_id.set(job_id)


def log_event(
    level: str,
    logger: str,
    operation: Optional[str] = None,
    event: Optional[str] = None,
    message: str = "",
    context: Optional[Dict[str, Any]] = None,
    exc_info: Optional[BaseException] = None
) -> None:
    """
    Log a structured event.

    Args:
        level: Log level name
        logger: Logger name (usually module path)
        operation: High-level operation name, set only for this record
        event: Specific event type
        message: Human-readable message
        context: Operation-specific data
        exc_info: Exception to attach
    """
    logger_instance = logging.getLogger(logger)
    log_method = getattr(logger_instance, level.lower(), logger_instance.info)

    extra = {}
    if event:
        extra['event'] = event
    if context:
        extra['context'] = context

    token = _operation.set(operation) if operation else None
    try:
        log_method(message, extra=extra, exc_info=exc_info, stacklevel=2)
    finally:
        if token is not None:
            _operation.reset(token)


def log_operation_start(
    logger: str,
    operation: str,
    message: str = "",
    context: Optional[Dict[str, Any]] = None
) -> None:
    """Log the start of an operation."""
    log_event(
        level="INFO",
        logger=logger,
        operation=operation,
        event="operation_start",
        message=message or f"Starting {operation}",
        context=context
    )


def log_operation_complete(
    logger: str,
    operation: str,
    message: str = "",
    context: Optional[Dict[str, Any]] = None,
    duration: Optional[float] = None
) -> None:
    """Log the completion of an operation."""
    context = dict(context or {})
    if duration is not None:
        context["duration_seconds"] = round(duration, 3)

    log_event(
        level="INFO",
        logger=logger,
        operation=operation,
        event="operation_complete",
        message=message or f"Completed {operation}",
        context=context
    )


def log_operation_error(
    logger: str,
    operation: str,
    error: BaseException,
    message: str = "",
    context: Optional[Dict[str, Any]] = None
) -> None:
    """Log an operation error."""
    context = dict(context or {})
    context["error_type"] = type(error).__name__
    context["error_message"] = str(error)

    log_event(
        level="ERROR",
        logger=logger,
        operation=operation,
        event="operation_error",
        message=message or f"Error in {operation}",
        context=context,
        exc_info=error
    )
