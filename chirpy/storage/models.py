from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    id: uuid.UUID
    email: str
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    is_chirpy_red: bool = False

    @classmethod
    def new(cls, email: str) -> "User":
        now = _utcnow()
        return cls(id=uuid.uuid4(), email=email, created_at=now, updated_at=now)


@dataclass
class RefreshToken:
    token: str
    user_id: uuid.UUID
    expires_at: datetime
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    revoked_at: Optional[datetime] = None

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Unrevoked and not yet past ``expires_at``."""
        current = now or _utcnow()
        return self.revoked_at is None and self.expires_at > current


@dataclass
class Chirp:
    id: uuid.UUID
    body: str
    user_id: uuid.UUID
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def new(cls, body: str, user_id: uuid.UUID) -> "Chirp":
        now = _utcnow()
        return cls(
            id=uuid.uuid4(),
            body=body,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
