from __future__ import annotations

import threading
from typing import Optional

from chirpy.config import get_settings, reset_settings_cache
from chirpy.logging import get_logger
from chirpy.service.auth import AuthService
from chirpy.service.chirps import ChirpService
from chirpy.service.payments import PaymentService
from chirpy.storage.memory import MemoryStore
from chirpy.storage.postgres import PostgresStore

logger = get_logger(__name__)


class HitCounter:
    """Counts fileserver hits; safe to bump from concurrent requests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits = 0

    def increment(self) -> int:
        with self._lock:
            self._hits += 1
            return self._hits

    def reset(self) -> None:
        with self._lock:
            self._hits = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._hits


class Runtime:
    """Holds singleton service instances for the FastAPI app."""

    def __init__(self):
        self.settings = get_settings()
        logger.info(
            "runtime_init_started",
            use_memory_store=self.settings.use_memory_store,
            test_mode=self.settings.test_mode,
            platform=self.settings.platform,
        )
        store_type = "memory" if self.settings.use_memory_store else "postgres"
        try:
            self.store = (
                MemoryStore()
                if self.settings.use_memory_store
                else PostgresStore(self.settings.database_url)
            )
        except Exception as exc:
            logger.error(
                "runtime_store_init_failed",
                store_type=store_type,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise
        logger.info("runtime_store_initialized", store_type=store_type)

        self.hits = HitCounter()
        self.auth = AuthService(self.store, self.settings)
        self.chirps = ChirpService(self.store)
        self.payments = PaymentService(self.store, self.settings)
        if not self.settings.polka_key:
            logger.warning("polka_key_missing", message="payment webhooks will be rejected")


runtime: Optional[Runtime] = None
_runtime_lock = threading.Lock()


def get_runtime() -> Runtime:
    """Get or create the Runtime singleton in a thread-safe manner.

    Uses double-checked locking: the fast path skips the lock once the
    runtime exists.
    """
    global runtime
    if runtime is not None:
        return runtime
    with _runtime_lock:
        if runtime is None:
            runtime = Runtime()
        return runtime


def reset_runtime_for_tests() -> Runtime:
    """Reinitialize the runtime singleton for isolated test runs."""

    global runtime

    with _runtime_lock:
        if runtime is not None and isinstance(runtime.store, PostgresStore):
            runtime.store.close()
        reset_settings_cache()
        settings = get_settings()
        if not settings.test_mode:
            raise RuntimeError("runtime reset is only allowed in TEST_MODE")
        runtime = Runtime()
        return runtime


__all__ = ["HitCounter", "Runtime", "get_runtime", "reset_runtime_for_tests"]
