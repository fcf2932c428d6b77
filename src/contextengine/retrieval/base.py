"""Abstract interfaces for the services the retrieval pipeline depends on."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from .models import VectorMatch


class EmbeddingProvider(ABC):
    """Turns text into a dense vector."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Return the embedding for ``text``. Failures propagate to the caller."""
        ...


class VectorIndex(ABC):
    """Nearest-neighbour search over indexed knowledge-base chunks."""

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        *,
        top_k: int,
        filter: Optional[dict] = None,
        return_metadata: str = "all",
    ) -> list[VectorMatch]:
        """Return up to ``top_k`` matches ordered by similarity."""
        ...


class KeyValueCache(ABC):
    """Expiring key-value store shared across requests."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]: ...

    @abstractmethod
    async def put(self, key: str, value: Any, *, ttl_seconds: int) -> None: ...


class InMemoryCache(KeyValueCache):
    """Process-local TTL cache. Default when no external store is configured.

    Concurrent writers may race on the same key; last write wins, which is
    fine for content-addressed values.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._store: dict[str, tuple[float, Any]] = {}

    async def get(self, key: str) -> Optional[Any]:
        item = self._store.get(key)
        if item is None:
            return None
        expires_at, value = item
        if self._clock() >= expires_at:
            self._store.pop(key, None)
            return None
        return value

    async def put(self, key: str, value: Any, *, ttl_seconds: int) -> None:
        self._store[key] = (self._clock() + ttl_seconds, value)

    def __len__(self) -> int:
        return len(self._store)
