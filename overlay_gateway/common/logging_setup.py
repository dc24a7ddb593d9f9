"""
Structured Logging Setup

Consistent logging configuration across the overlay gateway.
Uses JSON format for structured logs in production.
"""

import logging
import sys
import os
from datetime import datetime, timezone
from typing import Any
import json


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in (
                "name", "msg", "args", "levelname", "levelno", "pathname",
                "filename", "module", "exc_info", "exc_text", "stack_info",
                "lineno", "funcName", "created", "msecs", "relativeCreated",
                "thread", "threadName", "processName", "process", "service",
                "message", "taskName",
            ):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a service.

    Args:
        service_name: Name of the service (e.g., "overlay.patch")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for dev)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"overlay_gateway.{service_name}")
    logger.setLevel(numeric_level)

    # Clear existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


LOGGER_PREFIX = "overlay_gateway."

# Level and format applied by configure_logging
_log_defaults = {"level": "INFO", "format": "json"}


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Environment variables take precedence over configure_logging values.

    Args:
        service_name: Name of the service

    Returns:
        Logger adapter with service name in all logs
    """
    log_level = os.environ.get("OVERLAY_GATEWAY_LOG_LEVEL", _log_defaults["level"])
    log_format = os.environ.get("OVERLAY_GATEWAY_LOG_FORMAT", _log_defaults["format"])
    json_format = log_format.lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Apply a level and format to every overlay gateway logger.

    Loggers created later through get_service_logger pick up the same
    values.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "json" or "text"
    """
    _log_defaults["level"] = log_level
    _log_defaults["format"] = log_format

    json_format = log_format.lower() == "json"
    for name, existing in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith(LOGGER_PREFIX) and isinstance(existing, logging.Logger):
            setup_logging(name[len(LOGGER_PREFIX):], log_level, json_format)


def log_patch_result(logger: logging.LoggerAdapter, result: Any) -> None:
    """Log the outcome of one overlay patch attempt"""
    status = result.status.value
    extra = {
        "status": status,
        "overlay_version": result.version,
        "previous_version": result.previous_version,
    }

    if status == "applied":
        logger.info(
            f"Overlay applied: {result.previous_version} -> {result.version} "
            f"(sections: {', '.join(result.sections) or 'none'})",
            extra={**extra, "sections": list(result.sections)},
        )
    elif status == "stale_ignored":
        logger.info(
            f"Overlay ignored: version {result.version} is not newer "
            f"than {result.previous_version}",
            extra=extra,
        )
    else:
        logger.error(
            f"Overlay patch failed in section {result.section}: {result.error}",
            extra={**extra, "section": result.section},
        )
