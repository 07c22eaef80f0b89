"""Unit tests for the auth service.

Tests for:
- Signup validation and duplicate handling
- Login failure uniformity
- Access token issuance and expiry with an injected clock
- Refresh token exchange and revocation
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from chirpy.auth.errors import RandomnessError
from chirpy.config import Settings
from chirpy.service.auth import INVALID_CREDENTIALS, AuthService
from chirpy.service.errors import (
    AuthenticationError,
    ConflictError,
    ServerError,
    ValidationError,
)
from chirpy.storage.memory import MemoryStore

START = datetime(2025, 6, 1, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="Test-Secret-Key_for-Automation-Only-987654321!",
        access_token_ttl_seconds=3600,
        refresh_token_ttl_days=60,
    )


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def auth_service(memory_store, settings, clock):
    return AuthService(store=memory_store, settings=settings, clock=clock)


@pytest.fixture
def test_user(auth_service):
    return asyncio.run(auth_service.signup("walt@breakingbad.com", "bad-password"))


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestSignup:
    def test_signup_normalizes_email(self, auth_service):
        user = asyncio.run(auth_service.signup("  Walt@BreakingBad.com ", "pw"))
        assert user.email == "walt@breakingbad.com"

    def test_signup_stores_argon2id_hash(self, auth_service, memory_store, test_user):
        assert memory_store.get_password_hash(test_user.id).startswith("$argon2id$")

    def test_signup_duplicate_email_conflicts(self, auth_service, test_user):
        with pytest.raises(ConflictError):
            asyncio.run(auth_service.signup("walt@breakingbad.com", "other"))

    @pytest.mark.parametrize("email", ["", "walt", "walt@", "walt@example", "walt@example.toolong"])
    def test_signup_rejects_bad_email(self, auth_service, email):
        with pytest.raises(ValidationError):
            asyncio.run(auth_service.signup(email, "pw"))

    def test_signup_rejects_empty_password(self, auth_service):
        with pytest.raises(ValidationError):
            asyncio.run(auth_service.signup("walt@breakingbad.com", ""))


class TestLogin:
    def test_login_returns_token_pair(self, auth_service, test_user):
        user, access, refresh = asyncio.run(
            auth_service.login("walt@breakingbad.com", "bad-password")
        )
        assert user.id == test_user.id
        assert access.count(".") == 2
        assert len(refresh) == 64

    def test_wrong_password_and_unknown_email_fail_alike(self, auth_service, test_user):
        with pytest.raises(AuthenticationError) as wrong_pw:
            asyncio.run(auth_service.login("walt@breakingbad.com", "good-password"))
        with pytest.raises(AuthenticationError) as unknown:
            asyncio.run(auth_service.login("nobody@example.com", "bad-password"))
        assert wrong_pw.value.message == unknown.value.message == INVALID_CREDENTIALS

    def test_corrupt_stored_hash_is_invalid_credentials(
        self, auth_service, memory_store, test_user
    ):
        memory_store.update_user(test_user.id, hashed_password="$2b$12$notargon")
        with pytest.raises(AuthenticationError):
            asyncio.run(auth_service.login("walt@breakingbad.com", "bad-password"))

    def test_access_token_honours_requested_lifetime(self, auth_service, clock, test_user):
        _, access, _ = asyncio.run(
            auth_service.login("walt@breakingbad.com", "bad-password", expires_in_seconds=60)
        )
        clock.advance(seconds=59)
        assert auth_service.authenticate(_bearer(access)) == test_user.id
        clock.advance(seconds=2)
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(_bearer(access))

    def test_zero_lifetime_means_default(self, auth_service, clock, test_user):
        _, access, _ = asyncio.run(
            auth_service.login("walt@breakingbad.com", "bad-password", expires_in_seconds=0)
        )
        clock.advance(minutes=59)
        assert auth_service.authenticate(_bearer(access)) == test_user.id

    def test_out_of_range_lifetime_is_validation_error(self, auth_service, test_user):
        with pytest.raises(ValidationError):
            asyncio.run(
                auth_service.login(
                    "walt@breakingbad.com", "bad-password", expires_in_seconds=10**12
                )
            )

    def test_oversized_default_lifetime_is_server_error(self, memory_store, clock, test_user):
        settings = Settings(
            jwt_secret="Test-Secret-Key_for-Automation-Only-987654321!",
            access_token_ttl_seconds=10**12,
        )
        service = AuthService(store=memory_store, settings=settings, clock=clock)
        with pytest.raises(ServerError):
            asyncio.run(service.login("walt@breakingbad.com", "bad-password"))

    def test_randomness_failure_is_server_error(self, auth_service, test_user, monkeypatch):
        def _broken():
            raise RandomnessError("entropy source unavailable")

        monkeypatch.setattr("chirpy.service.auth.make_refresh_token", _broken)
        with pytest.raises(ServerError):
            asyncio.run(auth_service.login("walt@breakingbad.com", "bad-password"))


class TestAuthenticate:
    def test_missing_header(self, auth_service):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate({})

    def test_token_signed_with_other_secret(self, memory_store, clock, test_user):
        other = AuthService(
            store=memory_store,
            settings=Settings(jwt_secret="a-different-secret"),
            clock=clock,
        )
        _, access, _ = asyncio.run(other.login("walt@breakingbad.com", "bad-password"))
        service = AuthService(
            store=memory_store,
            settings=Settings(jwt_secret="Test-Secret-Key_for-Automation-Only-987654321!"),
            clock=clock,
        )
        with pytest.raises(AuthenticationError):
            service.authenticate(_bearer(access))


class TestRefresh:
    def test_refresh_issues_access_token(self, auth_service, test_user):
        _, _, refresh = asyncio.run(auth_service.login("walt@breakingbad.com", "bad-password"))
        access = asyncio.run(auth_service.refresh(refresh))
        assert auth_service.authenticate(_bearer(access)) == test_user.id

    def test_refresh_unknown_token(self, auth_service):
        with pytest.raises(AuthenticationError):
            asyncio.run(auth_service.refresh("f" * 64))

    def test_refresh_after_expiry(self, auth_service, clock, test_user):
        _, _, refresh = asyncio.run(auth_service.login("walt@breakingbad.com", "bad-password"))
        clock.advance(days=60)
        with pytest.raises(AuthenticationError):
            asyncio.run(auth_service.refresh(refresh))

    def test_revoked_token_cannot_refresh(self, auth_service, test_user):
        _, _, refresh = asyncio.run(auth_service.login("walt@breakingbad.com", "bad-password"))
        asyncio.run(auth_service.revoke(refresh))
        with pytest.raises(AuthenticationError):
            asyncio.run(auth_service.refresh(refresh))

    def test_revoke_unknown_token(self, auth_service):
        with pytest.raises(ValidationError):
            asyncio.run(auth_service.revoke("f" * 64))

    def test_revoke_missing_token(self, auth_service):
        with pytest.raises(ValidationError):
            asyncio.run(auth_service.revoke(""))


class TestUpdateUser:
    def test_update_email_and_password(self, auth_service, test_user):
        user = asyncio.run(
            auth_service.update_user(
                test_user.id, email="heisenberg@example.com", password="new-password"
            )
        )
        assert user.email == "heisenberg@example.com"
        asyncio.run(auth_service.login("heisenberg@example.com", "new-password"))

    def test_update_requires_a_field(self, auth_service, test_user):
        with pytest.raises(ValidationError):
            asyncio.run(auth_service.update_user(test_user.id))

    def test_update_unknown_user(self, auth_service):
        from chirpy.service.errors import NotFoundError

        with pytest.raises(NotFoundError):
            asyncio.run(auth_service.update_user(uuid.uuid4(), password="pw"))


def _loop_is_running():
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def test_store_calls_run_off_the_event_loop(settings, clock):
    seen = []

    class RecordingStore(MemoryStore):
        def create_user(self, email, hashed_password):
            seen.append(_loop_is_running())
            return super().create_user(email, hashed_password)

        def get_user_by_email(self, email):
            seen.append(_loop_is_running())
            return super().get_user_by_email(email)

    service = AuthService(store=RecordingStore(), settings=settings, clock=clock)
    asyncio.run(service.signup("walt@breakingbad.com", "bad-password"))
    asyncio.run(service.login("walt@breakingbad.com", "bad-password"))
    assert seen == [False, False]
