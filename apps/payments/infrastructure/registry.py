from __future__ import annotations

from django.conf import settings
from django.core.cache import caches

from apps.payments.domain.confirmation_state_machine import ConfirmationState, ConfirmationStatus
from apps.payments.domain.ports import RecordedOutcome

_LOCK_PREFIX = "payments:confirmation:lock:"
_OUTCOME_PREFIX = "payments:confirmation:outcome:"


class CacheConfirmationRegistry:
    """
    Dedup lock and terminal-outcome store on top of the Django cache.

    `cache.add` is atomic on the shared backends (Redis, Memcached, database),
    so at most one worker holds the lock for a given key.
    """

    def __init__(
        self,
        *,
        alias: str | None = None,
        lock_seconds: int | None = None,
        outcome_seconds: int | None = None,
    ) -> None:
        self._cache = caches[alias or getattr(settings, "PAYMENTS_CONFIRMATION_CACHE", "default")]
        self._lock_seconds = int(lock_seconds or getattr(settings, "PAYMENTS_CONFIRMATION_LOCK_SECONDS", 60))
        self._outcome_seconds = int(
            outcome_seconds or getattr(settings, "PAYMENTS_CONFIRMATION_OUTCOME_SECONDS", 86400)
        )

    def acquire(self, key: str) -> bool:
        return bool(self._cache.add(f"{_LOCK_PREFIX}{key}", "1", timeout=self._lock_seconds))

    def release(self, key: str) -> None:
        self._cache.delete(f"{_LOCK_PREFIX}{key}")

    def recorded(self, key: str) -> RecordedOutcome | None:
        data = self._cache.get(f"{_OUTCOME_PREFIX}{key}")
        if not data:
            return None
        return RecordedOutcome(state=ConfirmationState.from_dict(data), article_id=data.get("article_id"))

    def record(self, key: str, outcome: RecordedOutcome) -> None:
        data = outcome.state.to_dict()
        data["article_id"] = outcome.article_id
        self._cache.set(f"{_OUTCOME_PREFIX}{key}", data, timeout=self._outcome_seconds)

    def discard_failure(self, key: str) -> bool:
        """Drop a recorded failure. Callers hold the lock for `key`."""
        outcome = self.recorded(key)
        if outcome is None or outcome.state.status != ConfirmationStatus.FAILED:
            return False
        self._cache.delete(f"{_OUTCOME_PREFIX}{key}")
        return True
