"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- key
- operation
- duration_ms

Usage:
    from filemanager.utils.logging import configure_logging, log_storage_operation

    configure_logging('filemanager-api', 'INFO')
    log_storage_operation(logger, operation='delete', key='a.txt', duration_ms=12.5)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (filemanager-api or filemanager-cli)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # CLI output goes to stdout, so logs go to stderr there
        stream = sys.stderr if service_name.endswith("-cli") else sys.stdout
        handler = logging.StreamHandler(stream)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    key: Optional[str] = None,
    operation: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        key: Optional object key
        operation: Optional storage operation name
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if key:
        extra["key"] = key
    if operation:
        extra["operation"] = operation
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


def log_storage_operation(
    logger: logging.Logger,
    operation: str,
    key: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successful storage call.

    Args:
        logger: Logger instance
        operation: Operation name (list, presign, copy, delete) (required)
        key: Optional object key
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="storage_operation",
        key=key,
        operation=operation,
        duration_ms=duration_ms,
        **kwargs
    )

    message = f"Storage {operation}"
    if key:
        message += f": {key}"
    logger.debug(message, extra=extra)


def log_storage_failure(
    logger: logging.Logger,
    operation: str,
    error: str,
    key: Optional[str] = None,
    duration_ms: Optional[float] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log a failed storage call.

    Args:
        logger: Logger instance
        operation: Operation name (required)
        error: Error message (required)
        key: Optional object key
        duration_ms: Optional duration in milliseconds
        include_traceback: Whether to include stack trace
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="storage_failure",
        key=key,
        operation=operation,
        duration_ms=duration_ms,
        error=str(error),
        **kwargs
    )

    message = f"Storage failure: {operation}"
    if key:
        message += f" {key}"
    message += f" - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
            return
    logger.error(message, extra=extra)


def log_rename_partial_failure(
    logger: logging.Logger,
    old_key: str,
    new_key: str,
    attempts: int,
    error: str,
    **kwargs
):
    """
    Log a rename whose copy succeeded but whose delete did not.

    The object now exists under both keys; the log carries both so the
    duplicate can be found and removed by hand.
    """
    extra = _build_log_extra(
        event="rename_partial_failure",
        key=old_key,
        operation="rename",
        new_key=new_key,
        attempts=attempts,
        error=str(error),
        **kwargs
    )

    logger.error(
        f"Rename left duplicate: {old_key} -> {new_key} after {attempts} delete attempts - {error}",
        extra=extra
    )


# Convenience alias
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
