from __future__ import annotations

"""
Structured logging for Studio Compiler.

structlog renders both its own events and stdlib records (uvicorn, httpx) as
JSON by default, or with the console renderer for the CLI. Request-scoped
context (the request id) is merged into every event.

    from studio_compiler.logging import setup_logging, get_logger

    setup_logging(service_name="studio-compiler")
    log = get_logger(__name__)
    log.warning("import_ambiguous", importer="Main.sol", candidates=[...])
"""

import logging
import os
from typing import Any, Dict, List, Optional

import structlog
from structlog.contextvars import merge_contextvars

# ambiguity candidates and cycle paths can name every file in a large project
MAX_LISTED = 10


def _cap_lists(_: logging.Logger, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, list) and len(value) > MAX_LISTED:
            event_dict[key] = value[:MAX_LISTED] + [f"+{len(value) - MAX_LISTED} more"]
    return event_dict


def _processors(service_name: str) -> List[Any]:
    def _ensure_service(_: logging.Logger, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        return ev

    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        merge_contextvars,
        structlog.processors.format_exc_info,
        _cap_lists,
        _ensure_service,
    ]


def setup_logging(
    *,
    service_name: str = "studio-compiler",
    level: Optional[str | int] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Configure structlog and the root stdlib logger. Call once at process start.

    ``level`` defaults to $LOG_LEVEL or INFO; ``log_format`` is "json" (the
    default, or $LOG_FORMAT) or "console".
    """
    level = level or os.getenv("LOG_LEVEL", "").upper() or "INFO"
    log_format = (log_format or os.getenv("LOG_FORMAT", "") or "json").lower()

    processors = _processors(service_name)
    if log_format == "console":
        renderer: Any = structlog.dev.ConsoleRenderer(colors=False, sort_keys=False)
    else:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=processors,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    # the compiler client would otherwise log every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Lazy logger; picks up whatever ``setup_logging`` configured later."""
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_request_context(**kv: Any) -> None:
    structlog.contextvars.bind_contextvars(**kv)


def clear_request_context(*keys: str) -> None:
    """Unbind ``keys``, or everything when none are given."""
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


__all__ = [
    "MAX_LISTED",
    "setup_logging",
    "get_logger",
    "bind_request_context",
    "clear_request_context",
]
