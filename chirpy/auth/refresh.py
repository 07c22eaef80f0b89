from __future__ import annotations

import secrets

from chirpy.auth.errors import RandomnessError

REFRESH_TOKEN_BYTES = 32


def make_refresh_token() -> str:
    """Return 32 bytes from the OS CSPRNG as 64 hex characters.

    The token is opaque: owner, expiry and revocation are kept by the store.
    """
    try:
        raw = secrets.token_bytes(REFRESH_TOKEN_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise RandomnessError("entropy source unavailable") from exc
    return raw.hex()
