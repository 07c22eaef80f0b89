from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chirpy.auth.tokens import MAX_TOKEN_LIFETIME
from chirpy.storage.models import Chirp, User

_VALID_ERROR_CODES = frozenset({
    "unauthorized",
    "forbidden",
    "not_found",
    "validation_error",
    "conflict",
    "server_error",
})


class ErrorBody(BaseModel):
    """Error envelope body with stable code values."""

    code: str
    message: str
    details: Optional[Any] = None  # object, array, or null

    @field_validator("code")
    @classmethod
    def _validate_error_code(cls, value: str) -> str:
        if value not in _VALID_ERROR_CODES:
            raise ValueError(f"unknown error code {value!r}")
        return value


class Envelope(BaseModel):
    """API envelope format."""

    status: str = Field(..., pattern="^(ok|error)$")
    data: Optional[Any] = None
    error: Optional[ErrorBody] = None
    request_id: str = Field(default_factory=lambda: str(uuid4()))


class CreateUserRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=1024)


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=1024)


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=1024)
    expires_in_seconds: Optional[int] = Field(
        default=None, ge=0, le=int(MAX_TOKEN_LIFETIME.total_seconds())
    )


class UserResponse(BaseModel):
    id: UUID
    email: str
    created_at: datetime
    updated_at: datetime
    is_chirpy_red: bool = False

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            created_at=user.created_at,
            updated_at=user.updated_at,
            is_chirpy_red=user.is_chirpy_red,
        )


class LoginResponse(UserResponse):
    token: str
    refresh_token: str


class TokenResponse(BaseModel):
    token: str


class ChirpRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    body: str


class ChirpResponse(BaseModel):
    id: UUID
    created_at: datetime
    updated_at: datetime
    body: str
    user_id: UUID
    valid: Optional[bool] = None

    @classmethod
    def from_model(cls, chirp: Chirp, *, valid: Optional[bool] = None) -> "ChirpResponse":
        return cls(
            id=chirp.id,
            created_at=chirp.created_at,
            updated_at=chirp.updated_at,
            body=chirp.body,
            user_id=chirp.user_id,
            valid=valid,
        )


class ChirpListResponse(BaseModel):
    items: List[ChirpResponse]


class WebhookData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: Optional[str] = None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str
    data: WebhookData = Field(default_factory=WebhookData)
