from __future__ import annotations

import hmac
import uuid
from typing import Any, Mapping, Optional, Protocol

from chirpy.auth.credentials import get_api_key
from chirpy.config import Settings
from chirpy.logging import get_logger
from chirpy.service.errors import AuthenticationError, NotFoundError, ValidationError
from chirpy.storage.models import User

logger = get_logger(__name__)

USER_UPGRADED_EVENT = "user.upgraded"


class PaymentStore(Protocol):
    def upgrade_user(self, user_id: uuid.UUID) -> Optional[User]: ...


class PaymentService:
    """Handles webhook events from the Polka payment provider."""

    def __init__(self, store: PaymentStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    def verify_api_key(self, headers: Mapping[str, str]) -> None:
        api_key = get_api_key(headers)
        expected = self.settings.polka_key
        if not api_key or not expected or not hmac.compare_digest(
            api_key.encode(), expected.encode()
        ):
            logger.warning("webhook_api_key_rejected", provided=bool(api_key))
            raise AuthenticationError("invalid api key")

    def handle_event(self, event: str, data: Mapping[str, Any]) -> bool:
        """Apply a webhook event; returns False when the event is ignored."""
        if event != USER_UPGRADED_EVENT:
            logger.info("webhook_event_ignored", webhook_event=event)
            return False
        raw_user_id = data.get("user_id")
        if raw_user_id is None:
            raise ValidationError("user_id is required", detail={"field": "data.user_id"})
        try:
            user_id = uuid.UUID(str(raw_user_id))
        except ValueError as exc:
            raise ValidationError(
                "user_id is not a valid id", detail={"field": "data.user_id"}
            ) from exc
        user = self.store.upgrade_user(user_id)
        if not user:
            raise NotFoundError("user not found", detail={"user_id": str(user_id)})
        logger.info("user_upgraded", user_id=str(user_id))
        return True


__all__ = ["PaymentService", "PaymentStore", "USER_UPGRADED_EVENT"]
