from __future__ import annotations

import re

from chirpy.service.errors import ChirpTooLong, ValidationError

MAX_CHIRP_LENGTH = 140

_EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,4}$")


def validate_email(email: str) -> str:
    """Normalize and check an email address; raises ValidationError."""
    normalized = (email or "").strip().lower()
    if not _EMAIL_PATTERN.match(normalized):
        raise ValidationError("invalid email", detail={"field": "email"})
    return normalized


def validate_password(password: str) -> str:
    # No strength policy: any non-empty password is accepted
    if not password:
        raise ValidationError("invalid password", detail={"field": "password"})
    return password


def validate_chirp_body(body: str) -> str:
    if len(body) > MAX_CHIRP_LENGTH:
        raise ChirpTooLong(MAX_CHIRP_LENGTH)
    if "\x00" in body:
        raise ValidationError(
            "chirp contains a NUL character", detail={"valid": False, "field": "body"}
        )
    return body
