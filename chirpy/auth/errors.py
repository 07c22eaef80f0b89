from __future__ import annotations

from typing import Any, Dict, Optional


class AuthError(Exception):
    """Base class for failures raised by the authentication core.

    The core never logs or picks an HTTP status; callers translate these into
    service errors and keep ``message``/``detail`` for diagnostics only.
    """

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class HashingError(AuthError):
    """The hashing primitive failed or a stored hash is malformed."""


class TokenError(AuthError):
    """An access token could not be minted or did not validate."""


class RandomnessError(AuthError):
    """The OS entropy source is unavailable. Never retried."""


__all__ = ["AuthError", "HashingError", "TokenError", "RandomnessError"]
