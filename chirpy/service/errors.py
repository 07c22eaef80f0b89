from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """A failure a chirpy service reports back to the HTTP caller.

    Subclasses pin ``status_code`` and the ``error_code`` that ends up in
    the envelope's ``error.code``.
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = dict(detail or {})

    def to_error_body(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.message,
            "details": self.detail or None,
        }


class ValidationError(ServiceError):
    """Bad email, empty password, oversized chirp or unusable webhook payload."""

    status_code = 400
    error_code = "validation_error"


class ChirpTooLong(ValidationError):
    def __init__(self, max_length: int) -> None:
        super().__init__(
            "chirp is too long", detail={"valid": False, "max_length": max_length}
        )
        self.max_length = max_length


class AuthenticationError(ServiceError):
    """Missing or bad access token, refresh token or Polka key."""

    status_code = 401
    error_code = "unauthorized"


class InvalidCredentials(AuthenticationError):
    # unknown email, wrong password and bad tokens all read the same
    def __init__(self, message: str = "invalid credentials") -> None:
        super().__init__(message)


class ForbiddenError(ServiceError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "not_found"


class ConflictError(ServiceError):
    """The email is already registered to another account."""

    status_code = 409
    error_code = "conflict"


class ServerError(ServiceError):
    pass


__all__ = [
    "AuthenticationError",
    "ChirpTooLong",
    "ConflictError",
    "ForbiddenError",
    "InvalidCredentials",
    "NotFoundError",
    "ServerError",
    "ServiceError",
    "ValidationError",
]
