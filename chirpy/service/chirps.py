from __future__ import annotations

import uuid
from typing import List, Optional, Protocol

from chirpy.logging import get_logger
from chirpy.service.content_filter import censor
from chirpy.service.errors import AuthenticationError, NotFoundError, ValidationError
from chirpy.service.validation import validate_chirp_body
from chirpy.storage.errors import BAD_VALUE, MISSING_USER, ConstraintViolation
from chirpy.storage.models import Chirp

logger = get_logger(__name__)


class ChirpStore(Protocol):
    def create_chirp(self, body: str, user_id: uuid.UUID) -> Chirp: ...

    def list_chirps(self) -> List[Chirp]: ...

    def get_chirp(self, chirp_id: uuid.UUID) -> Optional[Chirp]: ...


class ChirpService:
    def __init__(self, store: ChirpStore) -> None:
        self.store = store

    def create(self, body: str, user_id: uuid.UUID) -> Chirp:
        """Validate length on the raw body, then store the censored text."""
        validate_chirp_body(body)
        cleaned = censor(body)
        try:
            chirp = self.store.create_chirp(cleaned, user_id)
        except ConstraintViolation as exc:
            if exc.kind == MISSING_USER:
                # token outlived its user (e.g. after an admin reset)
                raise AuthenticationError("unknown user", detail=exc.detail) from exc
            if exc.kind == BAD_VALUE:
                raise ValidationError(
                    "chirp body cannot be stored", detail={"valid": False, **exc.detail}
                ) from exc
            raise
        logger.info(
            "chirp_created",
            chirp_id=str(chirp.id),
            user_id=str(user_id),
            censored=cleaned != body,
        )
        return chirp

    def list(self) -> List[Chirp]:
        return self.store.list_chirps()

    def get(self, chirp_id: uuid.UUID) -> Chirp:
        chirp = self.store.get_chirp(chirp_id)
        if not chirp:
            raise NotFoundError("chirp not found", detail={"id": str(chirp_id)})
        return chirp


__all__ = ["ChirpService", "ChirpStore"]
