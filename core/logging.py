"""
Structured Logging

structlog setup shared by the HTTP API and the extraction workers.

Both structlog loggers and standard-library loggers (uvicorn, urllib3)
render through one processor chain, so every line carries the service
name and request correlation ID, and credential-bearing fields are
masked before output.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional

import structlog


# Propagates into asyncio.to_thread() workers with the rest of the context
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "x-api-key",
        "api_key",
        "token",
        "password",
        "cookie",
    }
)

REDACTED = "***"

NOISY_LOGGERS = ("urllib3", "uvicorn.access")


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> None:
    correlation_id_var.set(cid)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    cid = correlation_id_var.get()
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def add_service_info(service_name: str) -> structlog.typing.Processor:
    def processor(
        logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["service"] = service_name
        return event_dict

    return processor


def redact_value(key: str, value: Any) -> Any:
    """Mask the value when the key names a credential; recurse into dicts."""
    if key.lower() in SENSITIVE_KEYS:
        return REDACTED
    if isinstance(value, dict):
        return {k: redact_value(str(k), v) for k, v in value.items()}
    return value


def redact_sensitive(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor that masks credentials in top-level and nested dicts."""
    return {key: redact_value(key, value) for key, value in event_dict.items()}


def build_processors(service_name: str) -> list[structlog.typing.Processor]:
    """Processors applied to every event before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_info(service_name),
        add_correlation_id,
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    service_name: str = "api-extraction-service",
) -> None:
    """
    Configure structlog and route standard-library logging through it.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines when True, colored console output otherwise
        service_name: Added to every event as ``service``
    """
    level = getattr(logging, log_level.upper())
    shared_processors = build_processors(service_name)

    if json_format:
        renderer: structlog.typing.Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger, optionally named.

    Example:
        log = get_logger("extraction")
        log.info("extraction_started", endpoint="https://api.example.com/items")
    """
    return structlog.get_logger(name)
