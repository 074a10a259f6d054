"""
Structured Logging Setup

Consistent logging configuration across the monitor services.
Uses JSON format for structured logs on the appliance.
"""

import logging
import sys
import os
from datetime import datetime, timezone
import json


LOGGER_PREFIX = "sdr_monitor."
TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "service",
    "message", "taskName",
))


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

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def _build_handler(level: int, json_format: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S"))
    return handler


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Configure the `sdr_monitor.<service_name>` logger.

    Args:
        service_name: Dotted service name, e.g. "device.presence"
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines on the appliance, plain text when debugging
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"{LOGGER_PREFIX}{service_name}")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(_build_handler(level, json_format))
    logger.propagate = False
    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Level and format come from SDR_MONITOR_LOG_LEVEL and
    SDR_MONITOR_LOG_FORMAT ("json" or "text").
    """
    log_level = os.environ.get("SDR_MONITOR_LOG_LEVEL", "INFO")
    json_format = os.environ.get("SDR_MONITOR_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def reconfigure_all(log_level: str, json_format: bool) -> None:
    """Re-apply level and format to every service logger created so far"""
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(LOGGER_PREFIX):
            setup_logging(name[len(LOGGER_PREFIX):], log_level, json_format)


def log_edge(
    logger: logging.LoggerAdapter,
    edge: str,
    previous_state: str,
    new_state: str,
) -> None:
    """Log a device connection transition"""
    log_method = logger.warning if edge == "disconnected" else logger.info
    log_method(
        f"SDR {edge}: {previous_state} -> {new_state}",
        extra={
            "edge": edge,
            "previous_state": previous_state,
            "new_state": new_state,
        },
    )
