"""Signed access tokens (JWT, HS256).

Tokens carry ``iss``, ``sub`` (the user UUID), ``iat`` and ``exp`` and are
valid for ``iat <= now < exp``. Nothing is stored server-side, so an access
token stays valid until it expires or the signing secret changes.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from uuid import UUID

from chirpy.auth.errors import TokenError

ISSUER = "chirpy"
ALGORITHM = "HS256"
# upper bound on a single access token's lifetime
MAX_TOKEN_LIFETIME = timedelta(days=3650)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _encode_segment(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _decode_segment(segment: str) -> bytes:
    padding = "=" * ((4 - len(segment) % 4) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _sign(secret: str, signing_input: str) -> str:
    digest = hmac.new(secret.encode(), signing_input.encode(), hashlib.sha256).digest()
    return _encode_segment(digest)


def make_access_token(
    user_id: UUID,
    secret: str,
    expires_in: timedelta,
    *,
    clock: Optional[Clock] = None,
) -> str:
    """Mint a token for ``user_id`` that expires ``expires_in`` from now."""
    if not secret:
        raise TokenError("signing secret is empty")
    if expires_in > MAX_TOKEN_LIFETIME:
        raise TokenError("token lifetime is out of range")
    now = (clock or utc_now)()
    try:
        exp = int((now + expires_in).timestamp())
    except (OverflowError, ValueError) as exc:
        raise TokenError("token lifetime is out of range") from exc
    header = {"alg": ALGORITHM, "typ": "JWT"}
    claims = {
        "iss": ISSUER,
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": exp,
    }
    header_enc = _encode_segment(json.dumps(header, separators=(",", ":")).encode())
    claims_enc = _encode_segment(json.dumps(claims, separators=(",", ":")).encode())
    signing_input = f"{header_enc}.{claims_enc}"
    return f"{signing_input}.{_sign(secret, signing_input)}"


def _numeric_claim(claims: dict[str, Any], name: str) -> float:
    value = claims.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TokenError(f"token has no numeric {name} claim")
    return float(value)


def validate_access_token(
    token: str,
    secret: str,
    *,
    clock: Optional[Clock] = None,
) -> UUID:
    """Return the user id carried by ``token`` or raise TokenError."""
    if not token or not secret:
        raise TokenError("token or secret is empty")
    try:
        header_b64, claims_b64, sig_b64 = token.split(".")
    except ValueError:
        raise TokenError("token is not made of three segments") from None

    try:
        header = json.loads(_decode_segment(header_b64))
    except (ValueError, TypeError) as exc:
        raise TokenError("token header is not valid JSON") from exc
    # Reject anything but HS256 to prevent algorithm confusion
    if not isinstance(header, dict) or header.get("alg") != ALGORITHM:
        raise TokenError("unexpected signing algorithm")

    expected_sig = _sign(secret, f"{header_b64}.{claims_b64}")
    if not hmac.compare_digest(expected_sig.encode(), sig_b64.encode()):
        raise TokenError("token signature does not verify")

    try:
        claims = json.loads(_decode_segment(claims_b64))
    except (ValueError, TypeError) as exc:
        raise TokenError("token claims are not valid JSON") from exc
    if not isinstance(claims, dict):
        raise TokenError("token claims are not an object")
    if claims.get("iss") != ISSUER:
        raise TokenError("token issuer mismatch", {"iss": claims.get("iss")})

    issued_at = _numeric_claim(claims, "iat")
    expires_at = _numeric_claim(claims, "exp")
    now_ts = (clock or utc_now)().timestamp()
    if now_ts < issued_at:
        raise TokenError("token used before issued")
    if now_ts >= expires_at:
        raise TokenError("token has expired")

    subject = claims.get("sub")
    if not subject or not isinstance(subject, str):
        raise TokenError("token has no subject")
    try:
        return UUID(subject)
    except ValueError as exc:
        raise TokenError("token subject is not a user id") from exc
