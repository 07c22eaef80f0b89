from __future__ import annotations

from typing import Any, Dict, Optional

# kinds of rejected writes; services branch on these
DUPLICATE = "duplicate"
MISSING_USER = "missing_user"
BAD_VALUE = "bad_value"


class ConstraintViolation(Exception):
    """A write the store refused.

    ``kind`` is one of:

    - ``duplicate``: a user email or refresh token is already taken
    - ``missing_user``: the row would point at a user that does not exist
    - ``bad_value``: the database could not store the value as given,
      for example text holding a NUL byte
    """

    def __init__(
        self,
        kind: str,
        message: str,
        *,
        field: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field
        self.detail = dict(detail or {})
        if field:
            self.detail.setdefault("field", field)

    @classmethod
    def duplicate(cls, field: str) -> "ConstraintViolation":
        return cls(DUPLICATE, f"{field} already exists", field=field)

    @classmethod
    def missing_user(cls, user_id: Any) -> "ConstraintViolation":
        return cls(
            MISSING_USER,
            "user does not exist",
            field="user_id",
            detail={"user_id": str(user_id)},
        )

    @classmethod
    def bad_value(cls, field: str, reason: str) -> "ConstraintViolation":
        return cls(BAD_VALUE, f"{field} cannot be stored", field=field, detail={"reason": reason})


__all__ = ["BAD_VALUE", "DUPLICATE", "MISSING_USER", "ConstraintViolation"]
