from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional, Protocol

from chirpy.auth import errors as auth_errors
from chirpy.auth.credentials import get_bearer_token
from chirpy.auth.passwords import hash_password, verify_password
from chirpy.auth.refresh import make_refresh_token
from chirpy.auth.tokens import (
    MAX_TOKEN_LIFETIME,
    Clock,
    make_access_token,
    validate_access_token,
)
from chirpy.config import Settings
from chirpy.logging import get_logger
from chirpy.service.errors import (
    AuthenticationError,
    ConflictError,
    InvalidCredentials,
    NotFoundError,
    ServerError,
    ValidationError,
)
from chirpy.service.validation import validate_email, validate_password
from chirpy.storage.errors import BAD_VALUE, DUPLICATE, ConstraintViolation
from chirpy.storage.models import RefreshToken, User

logger = get_logger(__name__)

INVALID_CREDENTIALS = InvalidCredentials().message


class AuthStore(Protocol):
    def create_user(self, email: str, hashed_password: str) -> User: ...

    def get_user(self, user_id: uuid.UUID) -> Optional[User]: ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def get_password_hash(self, user_id: uuid.UUID) -> Optional[str]: ...

    def update_user(
        self,
        user_id: uuid.UUID,
        *,
        email: Optional[str] = None,
        hashed_password: Optional[str] = None,
    ) -> Optional[User]: ...

    def create_refresh_token(
        self, token: str, user_id: uuid.UUID, expires_at: datetime
    ) -> RefreshToken: ...

    def get_refresh_token(self, token: str) -> Optional[RefreshToken]: ...

    def revoke_refresh_token(self, token: str) -> bool: ...


class AuthService:
    """Account, login and token lifecycle on top of the auth primitives.

    Primitive failures (HashingError, TokenError, RandomnessError) are turned
    into service errors here: anything a caller could have caused becomes a
    401, anything else a 500. Store calls run in a worker thread so a
    blocking database driver never stalls the event loop.
    """

    def __init__(
        self,
        store: AuthStore,
        settings: Settings,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store: AuthStore = store
        self.settings = settings
        self._clock = clock
        self.logger = logger

    def _now(self) -> datetime:
        """Timezone-aware UTC helper to avoid naive datetime usage."""

        return self._clock() if self._clock else datetime.now(timezone.utc)

    async def _call_store(self, method, *args, **kwargs):
        return await asyncio.to_thread(method, *args, **kwargs)

    async def _hash(self, password: str) -> str:
        try:
            return await asyncio.to_thread(hash_password, password)
        except auth_errors.HashingError as exc:
            self.logger.error("password_hash_failed", error=exc.message)
            raise ServerError("could not hash password") from exc

    def _reject_user_write(self, exc: ConstraintViolation) -> None:
        if exc.kind == DUPLICATE:
            raise ConflictError("email already exists", detail=exc.detail) from exc
        if exc.kind == BAD_VALUE:
            raise ValidationError("invalid email", detail=exc.detail) from exc

    async def signup(self, email: str, password: str) -> User:
        normalized = validate_email(email)
        validate_password(password)
        pwd_hash = await self._hash(password)
        try:
            user = await self._call_store(self.store.create_user, normalized, pwd_hash)
        except ConstraintViolation as exc:
            self._reject_user_write(exc)
            raise
        self.logger.info("user_created", user_id=str(user.id))
        return user

    async def login(
        self,
        email: str,
        password: str,
        *,
        expires_in_seconds: Optional[int] = None,
    ) -> tuple[User, str, str]:
        """Check credentials and issue an access/refresh token pair.

        Unknown email and wrong password fail identically.
        """
        if expires_in_seconds is not None and not (
            0 <= expires_in_seconds <= MAX_TOKEN_LIFETIME.total_seconds()
        ):
            raise ValidationError(
                "expires_in_seconds is out of range",
                detail={
                    "field": "expires_in_seconds",
                    "max": int(MAX_TOKEN_LIFETIME.total_seconds()),
                },
            )
        user = await self._call_store(
            self.store.get_user_by_email, (email or "").strip().lower()
        )
        pwd_hash = (
            await self._call_store(self.store.get_password_hash, user.id) if user else None
        )
        if not user or not pwd_hash:
            self.logger.info("login_failed", reason="unknown_email")
            raise InvalidCredentials()
        try:
            matches = await asyncio.to_thread(verify_password, password, pwd_hash)
        except auth_errors.HashingError as exc:
            self.logger.warning(
                "login_failed", reason="bad_stored_hash", user_id=str(user.id)
            )
            raise InvalidCredentials() from exc
        if not matches:
            self.logger.info("login_failed", reason="password_mismatch", user_id=str(user.id))
            raise InvalidCredentials()

        ttl_seconds = expires_in_seconds or self.settings.access_token_ttl_seconds
        access_token = self._issue_access_token(user.id, ttl_seconds)
        refresh_token = await self._issue_refresh_token(user.id)
        self.logger.info("login_succeeded", user_id=str(user.id))
        return user, access_token, refresh_token

    def _issue_access_token(self, user_id: uuid.UUID, ttl_seconds: int) -> str:
        try:
            return make_access_token(
                user_id,
                self.settings.jwt_secret,
                timedelta(seconds=ttl_seconds),
                clock=self._clock,
            )
        except (auth_errors.TokenError, OverflowError) as exc:
            self.logger.error(
                "access_token_issue_failed", error=str(exc), ttl_seconds=ttl_seconds
            )
            raise ServerError("could not issue access token") from exc

    async def _issue_refresh_token(self, user_id: uuid.UUID) -> str:
        try:
            token = make_refresh_token()
        except auth_errors.RandomnessError as exc:
            self.logger.error("refresh_token_issue_failed", error=exc.message)
            raise ServerError("could not issue refresh token") from exc
        expires_at = self._now() + timedelta(days=self.settings.refresh_token_ttl_days)
        await self._call_store(self.store.create_refresh_token, token, user_id, expires_at)
        return token

    async def refresh(self, refresh_token: str) -> str:
        """Exchange an active refresh token for a new access token."""
        if not refresh_token:
            raise AuthenticationError("missing refresh token")
        record = await self._call_store(self.store.get_refresh_token, refresh_token)
        if not record or not record.is_active(self._now()):
            self.logger.info("refresh_rejected", known=record is not None)
            raise AuthenticationError("invalid refresh token")
        return self._issue_access_token(
            record.user_id, self.settings.access_token_ttl_seconds
        )

    async def revoke(self, refresh_token: str) -> None:
        if not refresh_token:
            raise ValidationError("missing refresh token")
        if not await self._call_store(self.store.revoke_refresh_token, refresh_token):
            raise ValidationError("unknown refresh token")
        self.logger.info("refresh_token_revoked")

    def authenticate(self, headers: Mapping[str, str]) -> uuid.UUID:
        """Resolve the caller's user id from a Bearer access token."""
        token = get_bearer_token(headers)
        if not token:
            raise AuthenticationError("missing bearer token")
        try:
            return validate_access_token(token, self.settings.jwt_secret, clock=self._clock)
        except auth_errors.TokenError as exc:
            self.logger.info("access_token_rejected", reason=exc.message)
            raise InvalidCredentials() from exc

    async def update_user(
        self,
        user_id: uuid.UUID,
        *,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        """Change the caller's email and/or password; omitted fields are kept."""
        if email is None and password is None:
            raise ValidationError("nothing to update")
        normalized = validate_email(email) if email is not None else None
        pwd_hash = None
        if password is not None:
            validate_password(password)
            pwd_hash = await self._hash(password)
        try:
            user = await self._call_store(
                self.store.update_user, user_id, email=normalized, hashed_password=pwd_hash
            )
        except ConstraintViolation as exc:
            self._reject_user_write(exc)
            raise
        if not user:
            raise NotFoundError("user not found")
        self.logger.info(
            "user_updated",
            user_id=str(user_id),
            email_changed=normalized is not None,
            password_changed=pwd_hash is not None,
        )
        return user


__all__ = ["AuthService", "AuthStore", "INVALID_CREDENTIALS"]
