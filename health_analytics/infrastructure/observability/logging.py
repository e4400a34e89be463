"""
Structured logging for the health analytics API and ingestion worker.

Both processes log JSON lines to stdout. Request ids (API) and the consumer's
kind/offset context (worker) travel as bound fields on every line.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

SERVICE_NAME = "health-analytics"

_NOISY_LOGGERS = ("aiokafka", "aiokafka.consumer.group_coordinator", "pymongo", "uvicorn.access")


def setup_logging(log_level: str = "INFO", process: str = "api") -> None:
    """
    Configure structlog with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        process: "api" or "worker"; stamped on every line
    """

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _service_context(process),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _service_context(process: str):
    def processor(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("process", process)
        return event_dict

    return processor


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_health_check(service: str, healthy: bool, latency_ms: float, error: str = None):
    """Log a dependency health check result."""
    logger = get_logger("health")

    log_data = {
        "dependency": service,
        "healthy": healthy,
        "latency_ms": latency_ms,
    }

    if error:
        log_data["error"] = error

    if healthy:
        logger.info("Health check passed", **log_data)
    else:
        logger.error("Health check failed", **log_data)


def log_request(method: str, path: str, status_code: int, duration_ms: float):
    """Log a finished HTTP request; 5xx as error, 4xx as warning."""
    logger = get_logger("http")

    log_data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }

    if status_code >= 500:
        logger.error("HTTP request failed", **log_data)
    elif status_code >= 400:
        logger.warning("HTTP request rejected", **log_data)
    else:
        logger.info("HTTP request completed", **log_data)
