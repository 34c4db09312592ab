"""structlog processors adding session context and scrubbing secrets"""

import socket
import sys
import traceback
from functools import lru_cache
from typing import Any, Optional

from structlog.contextvars import get_contextvars
from structlog.types import EventDict, ExcInfo, WrappedLogger

# Context bound by the gateway for the lifetime of one SSH session
SESSION_KEYS = ("session_id", "username", "service", "repository", "ref")

SENSITIVE_KEYS = frozenset({
    "password", "token", "secret", "api_key", "authorization",
    "private_key", "access_token", "bearer",
})

REDACTED = "***REDACTED***"


@lru_cache(maxsize=1)
def _hostname() -> Optional[str]:
    try:
        return socket.gethostname()
    except OSError:
        return None


def add_service_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every line with the service, environment and host"""
    from gitraf.core.config import get_settings

    event_dict.setdefault("service_name", "gitraf")
    event_dict.setdefault("environment", get_settings().environment)

    hostname = _hostname()
    if hostname:
        event_dict.setdefault("hostname", hostname)

    return event_dict


def add_session_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Copy SSH session context from contextvars"""
    context = get_contextvars()

    for key in SESSION_KEYS:
        if key in context and key not in event_dict:
            event_dict[key] = context[key]

    return event_dict


def _is_sensitive(key: Any) -> bool:
    lowered = str(key).lower()
    return any(word in lowered for word in SENSITIVE_KEYS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: REDACTED if _is_sensitive(k) else _redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(item) for item in value)
    return value


def sanitize_sensitive_data(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask values whose key names look like credentials, at any depth"""
    return _redact(event_dict)


def _exc_info_tuple(exc_info: Any) -> Optional[ExcInfo]:
    if isinstance(exc_info, BaseException):
        return type(exc_info), exc_info, exc_info.__traceback__
    if isinstance(exc_info, tuple):
        return exc_info
    current = sys.exc_info()
    return current if current[0] is not None else None


def format_exception_info(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace exc_info with a structured exception entry"""
    exc_info = event_dict.pop("exc_info", None)
    if not exc_info:
        return event_dict

    info = _exc_info_tuple(exc_info)
    if info is not None:
        exc_type, exc_value, exc_tb = info
        event_dict["exception"] = {
            "type": exc_type.__name__,
            "message": str(exc_value),
            "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
        }

    return event_dict


def set_log_severity(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Uppercase severity field for log aggregation systems"""
    level = event_dict.get("level")
    if level:
        event_dict["severity"] = str(level).upper()
    return event_dict
