from __future__ import annotations

import logging
import time
from collections import defaultdict
from typing import Callable

from apps.api.services.ports import FeedbackStore

logger = logging.getLogger(__name__)


class InMemoryFeedbackStore(FeedbackStore):
    """Store de proceso para DEV (sin DATABASE_URL).

    No es compartido entre procesos: cada append también se loguea para no
    perder el feedback de vista. Cada lista guarda como mucho `max_items`
    entradas (las más recientes), como un LTRIM tras el LPUSH.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_items: int = 1000) -> None:
        self._max_items = max_items
        self.lists: dict[str, list[str]] = defaultdict(list)
        self.counters: dict[str, int] = defaultdict(int)
        self._expires_at: dict[str, float] = {}
        self._clock = clock

    async def append(self, key: str, value: str) -> None:
        self._purge_if_expired(key)
        # Más reciente primero (como LPUSH).
        items = self.lists[key]
        items.insert(0, value)
        del items[self._max_items :]
        logger.info("Feedback received: %s", value)

    async def expire(self, key: str, ttl_s: int) -> None:
        self._expires_at[key] = self._clock() + ttl_s

    async def incr(self, name: str) -> int:
        self.counters[name] += 1
        return self.counters[name]

    async def health(self) -> bool:
        return True

    def _purge_if_expired(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and deadline <= self._clock():
            self.lists.pop(key, None)
            self._expires_at.pop(key, None)
