from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from chirpy.logging import get_logger
from chirpy.storage.errors import ConstraintViolation
from chirpy.storage.models import Chirp, RefreshToken, User


class MemoryStore:
    """In-process backing store used for tests and local development."""

    def __init__(self) -> None:
        self.logger = get_logger(__name__)
        self.users: Dict[uuid.UUID, User] = {}
        self.credentials: Dict[uuid.UUID, str] = {}
        self.refresh_tokens: Dict[str, RefreshToken] = {}
        self.chirps: Dict[uuid.UUID, Chirp] = {}
        # RLock so helpers can re-enter while a public method holds the lock
        self._data_lock = threading.RLock()

    # user / auth
    def create_user(self, email: str, hashed_password: str) -> User:
        with self._data_lock:
            if self._find_by_email(email) is not None:
                raise ConstraintViolation.duplicate("email")
            user = User.new(email)
            self.users[user.id] = user
            self.credentials[user.id] = hashed_password
            return replace(user)

    def _find_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.email == email), None)

    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        with self._data_lock:
            user = self.users.get(user_id)
            return replace(user) if user else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._data_lock:
            user = self._find_by_email(email)
            return replace(user) if user else None

    def get_password_hash(self, user_id: uuid.UUID) -> Optional[str]:
        with self._data_lock:
            return self.credentials.get(user_id)

    def update_user(
        self,
        user_id: uuid.UUID,
        *,
        email: Optional[str] = None,
        hashed_password: Optional[str] = None,
    ) -> Optional[User]:
        with self._data_lock:
            user = self.users.get(user_id)
            if not user:
                return None
            if email is not None and email != user.email:
                if self._find_by_email(email) is not None:
                    raise ConstraintViolation.duplicate("email")
                user.email = email
            if hashed_password is not None:
                self.credentials[user_id] = hashed_password
            user.updated_at = datetime.now(timezone.utc)
            return replace(user)

    def upgrade_user(self, user_id: uuid.UUID) -> Optional[User]:
        with self._data_lock:
            user = self.users.get(user_id)
            if not user:
                return None
            user.is_chirpy_red = True
            user.updated_at = datetime.now(timezone.utc)
            return replace(user)

    def delete_all_users(self) -> int:
        """Remove every user along with their tokens and chirps."""
        with self._data_lock:
            count = len(self.users)
            self.users.clear()
            self.credentials.clear()
            self.refresh_tokens.clear()
            self.chirps.clear()
            self.logger.info("memory_store_users_deleted", count=count)
            return count

    # refresh tokens
    def create_refresh_token(
        self, token: str, user_id: uuid.UUID, expires_at: datetime
    ) -> RefreshToken:
        with self._data_lock:
            if user_id not in self.users:
                raise ConstraintViolation.missing_user(user_id)
            if token in self.refresh_tokens:
                raise ConstraintViolation.duplicate("token")
            record = RefreshToken(token=token, user_id=user_id, expires_at=expires_at)
            self.refresh_tokens[token] = record
            return replace(record)

    def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        with self._data_lock:
            record = self.refresh_tokens.get(token)
            return replace(record) if record else None

    def revoke_refresh_token(self, token: str) -> bool:
        with self._data_lock:
            record = self.refresh_tokens.get(token)
            if not record:
                return False
            now = datetime.now(timezone.utc)
            if record.revoked_at is None:
                record.revoked_at = now
            record.updated_at = now
            return True

    # chirps
    def create_chirp(self, body: str, user_id: uuid.UUID) -> Chirp:
        with self._data_lock:
            if user_id not in self.users:
                raise ConstraintViolation.missing_user(user_id)
            chirp = Chirp.new(body, user_id)
            self.chirps[chirp.id] = chirp
            return replace(chirp)

    def list_chirps(self) -> List[Chirp]:
        with self._data_lock:
            return [
                replace(c)
                for c in sorted(self.chirps.values(), key=lambda c: c.created_at)
            ]

    def get_chirp(self, chirp_id: uuid.UUID) -> Optional[Chirp]:
        with self._data_lock:
            chirp = self.chirps.get(chirp_id)
            return replace(chirp) if chirp else None


__all__ = ["MemoryStore"]
