from __future__ import annotations

from typing import Mapping, Optional

BEARER_PREFIX = "Bearer "
API_KEY_PREFIX = "ApiKey "


def _authorization_header(headers: Mapping[str, str]) -> Optional[str]:
    # Starlette headers are case-insensitive; plain dicts are not
    value = headers.get("Authorization")
    if value is None:
        value = headers.get("authorization")
    return value


def _strip_prefix(headers: Mapping[str, str], prefix: str) -> str:
    value = _authorization_header(headers)
    if not value or not value.startswith(prefix):
        return ""
    return value[len(prefix):]


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """Token after ``Bearer `` in the Authorization header, or ``""``."""
    return _strip_prefix(headers, BEARER_PREFIX)


def get_api_key(headers: Mapping[str, str]) -> str:
    """Key after ``ApiKey `` in the Authorization header, or ``""``."""
    return _strip_prefix(headers, API_KEY_PREFIX)
