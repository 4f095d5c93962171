"""
Short-window duplicate submission guard.

The guard is injected with a TTL store so a shared cache can replace the in-process one
when the API runs as several instances. Services pair it with a database lookback query.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from services.errors import DuplicateSubmission

logger = logging.getLogger(__name__)


class TTLStore:
    """Bounded in-process map whose entries expire after `ttl_seconds`."""

    def __init__(self, ttl_seconds: float, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._items: dict[str, float] = {}

    def _purge(self) -> None:
        now = self._clock()
        expired = [k for k, ts in self._items.items() if now - ts > self.ttl_seconds]
        for key in expired:
            self._items.pop(key, None)

    def contains(self, key: str) -> bool:
        ts = self._items.get(key)
        if ts is None:
            return False
        if self._clock() - ts > self.ttl_seconds:
            self._items.pop(key, None)
            return False
        return True

    def add(self, key: str) -> None:
        self._purge()
        # Evict oldest if needed
        if len(self._items) >= self.max_entries:
            oldest_key = min(self._items.items(), key=lambda kv: kv[1])[0]
            self._items.pop(oldest_key, None)
        self._items[key] = self._clock()

    def discard(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        self._purge()
        return len(self._items)


class SubmissionGuard:
    def __init__(self, window_seconds: float, store: Optional[TTLStore] = None):
        self.window_seconds = window_seconds
        self.store = store if store is not None else TTLStore(window_seconds)

    @staticmethod
    def key_for(*parts: object) -> str:
        """Composite identity key, e.g. name + mobile + email; case and surrounding space ignored."""
        return "|".join(str(p or "").strip().lower() for p in parts)

    def check_and_remember(self, key: str) -> None:
        if self.store.contains(key):
            logger.info("Duplicate submission blocked by in-process window")
            raise DuplicateSubmission()
        self.store.add(key)

    def forget(self, key: str) -> None:
        """Release a key when the submission it guarded failed validation or storage."""
        self.store.discard(key)
