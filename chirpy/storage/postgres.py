from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from chirpy.logging import get_logger
from chirpy.storage.errors import ConstraintViolation
from chirpy.storage.models import Chirp, RefreshToken, User

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        email TEXT NOT NULL UNIQUE,
        hashed_password TEXT NOT NULL DEFAULT 'unset',
        is_chirpy_red BOOLEAN NOT NULL DEFAULT FALSE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_tokens (
        token TEXT PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        expires_at TIMESTAMPTZ NOT NULL,
        revoked_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chirps (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        body TEXT NOT NULL,
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE
    )
    """,
)

_USER_COLUMNS = "id, email, created_at, updated_at, is_chirpy_red"


class PostgresStore:
    """Postgres-backed store for users, refresh tokens and chirps."""

    def __init__(self, dsn: str, *, min_size: int = 1, max_size: int = 10) -> None:
        self.dsn = dsn
        self.logger = get_logger(__name__)
        self.pool = ConnectionPool(
            self.dsn,
            min_size=min_size,
            max_size=max_size,
            kwargs={"row_factory": dict_row, "autocommit": False},
            open=True,
        )
        self._ensure_schema()

    def _connect(self):
        return self.pool.connection()

    def _ensure_schema(self) -> None:
        """Create the tables if they are missing."""

        with self._connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        self.logger.info("postgres_schema_ready")

    def close(self) -> None:
        self.pool.close()

    @staticmethod
    def _user_from_row(row: Dict[str, Any]) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            is_chirpy_red=bool(row.get("is_chirpy_red", False)),
        )

    @staticmethod
    def _token_from_row(row: Dict[str, Any]) -> RefreshToken:
        return RefreshToken(
            token=row["token"],
            user_id=row["user_id"],
            expires_at=row["expires_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            revoked_at=row.get("revoked_at"),
        )

    @staticmethod
    def _chirp_from_row(row: Dict[str, Any]) -> Chirp:
        return Chirp(
            id=row["id"],
            body=row["body"],
            user_id=row["user_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # users
    def create_user(self, email: str, hashed_password: str) -> User:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    f"""
                    INSERT INTO users (id, email, hashed_password)
                    VALUES (%s, %s, %s)
                    RETURNING {_USER_COLUMNS}
                    """,
                    (uuid.uuid4(), email, hashed_password),
                ).fetchone()
        except errors.UniqueViolation:
            raise ConstraintViolation.duplicate("email")
        except errors.DataError as exc:
            raise ConstraintViolation.bad_value("email", str(exc))
        return self._user_from_row(row)

    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s", (user_id,)
            ).fetchone()
        return self._user_from_row(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s", (email,)
            ).fetchone()
        return self._user_from_row(row) if row else None

    def get_password_hash(self, user_id: uuid.UUID) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT hashed_password FROM users WHERE id = %s", (user_id,)
            ).fetchone()
        return str(row["hashed_password"]) if row else None

    def update_user(
        self,
        user_id: uuid.UUID,
        *,
        email: Optional[str] = None,
        hashed_password: Optional[str] = None,
    ) -> Optional[User]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    f"""
                    UPDATE users
                    SET email = COALESCE(%s, email),
                        hashed_password = COALESCE(%s, hashed_password),
                        updated_at = now()
                    WHERE id = %s
                    RETURNING {_USER_COLUMNS}
                    """,
                    (email, hashed_password, user_id),
                ).fetchone()
        except errors.UniqueViolation:
            raise ConstraintViolation.duplicate("email")
        except errors.DataError as exc:
            raise ConstraintViolation.bad_value("email", str(exc))
        return self._user_from_row(row) if row else None

    def upgrade_user(self, user_id: uuid.UUID) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                f"""
                UPDATE users SET is_chirpy_red = TRUE, updated_at = now()
                WHERE id = %s
                RETURNING {_USER_COLUMNS}
                """,
                (user_id,),
            ).fetchone()
        return self._user_from_row(row) if row else None

    def delete_all_users(self) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM users")
            count = cursor.rowcount
        self.logger.info("postgres_users_deleted", count=count)
        return count

    # refresh tokens
    def create_refresh_token(
        self, token: str, user_id: uuid.UUID, expires_at: datetime
    ) -> RefreshToken:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    INSERT INTO refresh_tokens (token, user_id, expires_at)
                    VALUES (%s, %s, %s)
                    RETURNING *
                    """,
                    (token, user_id, expires_at),
                ).fetchone()
        except errors.UniqueViolation:
            raise ConstraintViolation.duplicate("token")
        except errors.ForeignKeyViolation:
            raise ConstraintViolation.missing_user(user_id)
        return self._token_from_row(row)

    def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM refresh_tokens WHERE token = %s", (token,)
            ).fetchone()
        return self._token_from_row(row) if row else None

    def revoke_refresh_token(self, token: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE refresh_tokens
                SET revoked_at = COALESCE(revoked_at, now()), updated_at = now()
                WHERE token = %s
                """,
                (token,),
            )
            return cursor.rowcount > 0

    # chirps
    def create_chirp(self, body: str, user_id: uuid.UUID) -> Chirp:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    INSERT INTO chirps (id, body, user_id)
                    VALUES (%s, %s, %s)
                    RETURNING *
                    """,
                    (uuid.uuid4(), body, user_id),
                ).fetchone()
        except errors.ForeignKeyViolation:
            raise ConstraintViolation.missing_user(user_id)
        except errors.DataError as exc:
            raise ConstraintViolation.bad_value("body", str(exc))
        return self._chirp_from_row(row)

    def list_chirps(self) -> List[Chirp]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM chirps ORDER BY created_at ASC"
            ).fetchall()
        return [self._chirp_from_row(row) for row in rows]

    def get_chirp(self, chirp_id: uuid.UUID) -> Optional[Chirp]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM chirps WHERE id = %s", (chirp_id,)
            ).fetchone()
        return self._chirp_from_row(row) if row else None


__all__ = ["PostgresStore"]
