"""structlog setup for chirpy.

Events render as JSON lines unless ``LOG_JSON`` is off or ``LOG_DEV_MODE``
is on. The request id bound by the HTTP middleware is merged into every
event logged while that request is handled.
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any, Dict, Optional

import structlog

REQUEST_ID_KEY = "request_id"

# values under these keys never reach the log
_SECRET_KEYS = frozenset({
    "password",
    "hashed_password",
    "jwt_secret",
    "polka_key",
    "api_key",
    "authorization",
    "token",
})
_REDACTED = "[redacted]"


def bind_request_id(request_id: Optional[str] = None) -> str:
    """Start a fresh log context for one request and return its id."""
    rid = request_id or str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**{REQUEST_ID_KEY: rid})
    return rid


def current_request_id() -> Optional[str]:
    return structlog.contextvars.get_contextvars().get(REQUEST_ID_KEY)


def _mask_email(value: str) -> str:
    local, at, domain = value.partition("@")
    if not at:
        return _REDACTED
    return f"{local[:1]}***@{domain}"


def _is_secret_key(key: str) -> bool:
    lowered = key.lower()
    return lowered in _SECRET_KEYS or lowered.endswith("_token")


def redact_credentials(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Drop credential values and mask email addresses.

    Any ``*_token`` key counts as a credential, so refresh and access
    tokens are covered without listing them.
    """
    for key, value in list(event_dict.items()):
        if not isinstance(value, str) or not value:
            continue
        if _is_secret_key(key):
            event_dict[key] = _REDACTED
        elif key.lower() == "email":
            event_dict[key] = _mask_email(value)
    return event_dict


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def configure_logging(
    level: Optional[str] = None,
    *,
    json_output: Optional[bool] = None,
    dev_mode: Optional[bool] = None,
) -> None:
    """Install the structlog pipeline; unset arguments come from the env."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if json_output is None:
        json_output = _env_flag("LOG_JSON", "true")
    if dev_mode is None:
        dev_mode = _env_flag("LOG_DEV_MODE", "false")

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_credentials,
        structlog.processors.StackInfoRenderer(),
    ]
    if dev_mode or not json_output:
        processors.append(structlog.dev.ConsoleRenderer(colors=dev_mode))
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
