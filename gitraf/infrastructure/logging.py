"""structlog configuration; every log line goes to stderr"""

import logging
import sys
from typing import Any, List, Optional, TextIO

import structlog
from structlog.types import Processor

from gitraf.core.config import Settings, get_settings
from gitraf.infrastructure.logging_processors import (
    add_service_context,
    add_session_context,
    format_exception_info,
    sanitize_sensitive_data,
    set_log_severity,
)


def build_processors(settings: Settings) -> List[Processor]:
    """Processors shared by structlog and foreign stdlib records"""
    chain: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        add_session_context,
        structlog.processors.add_log_level,
        set_log_severity,
    ]
    if settings.is_development:
        chain.append(
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )
    chain += [
        format_exception_info,
        structlog.processors.TimeStamper(fmt="iso"),
        # Redaction must see the final event dict
        sanitize_sensitive_data,
    ]
    return chain


def _renderer(settings: Settings) -> Processor:
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(settings: Optional[Settings] = None, stream: Optional[TextIO] = None) -> None:
    """
    Route structlog and stdlib logging through one stderr handler

    stdout is reserved for the pack protocol during SSH sessions, so the
    stream defaults to stderr.
    """
    settings = settings or get_settings()
    shared = build_processors(settings)

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)

    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)
