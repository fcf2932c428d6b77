"""Embedding service with a content-hash cache in front of the provider."""

from __future__ import annotations

import hashlib
import json
from typing import Optional

from src.utils.logger import get_logger

from .base import EmbeddingProvider, KeyValueCache

logger = get_logger("embeddings")

CACHE_KEY_PREFIX = "embedding:"
DEFAULT_TTL_SECONDS = 24 * 60 * 60


def normalize_text(text: str) -> str:
    return text.strip().lower()


def cache_key(text: str) -> str:
    digest = hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"


class EmbeddingService:
    """Resolves query embeddings, consulting the cache first.

    The cache only affects latency: read errors count as misses and write
    errors are ignored. Provider errors propagate.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        cache: KeyValueCache,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def embed(self, text: str) -> list[float]:
        normalized = normalize_text(text)
        key = cache_key(normalized)

        cached = await self._read(key)
        if cached is not None:
            logger.debug(f"Embedding cache hit for {key[:24]}")
            return cached

        vector = await self.provider.embed(normalized)
        await self._write(key, vector)
        return vector

    async def _read(self, key: str) -> Optional[list[float]]:
        try:
            raw = await self.cache.get(key)
        except Exception as e:
            logger.warning(f"⚠️ Embedding cache read failed, treating as miss: {e}")
            return None
        if raw is None:
            return None
        try:
            vector = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            if not isinstance(vector, list) or not vector:
                return None
            return [float(v) for v in vector]
        except (TypeError, ValueError) as e:
            logger.warning(f"⚠️ Discarding undecodable cached embedding: {e}")
            return None

    async def _write(self, key: str, vector: list[float]) -> None:
        try:
            await self.cache.put(key, json.dumps(vector), ttl_seconds=self.ttl_seconds)
        except Exception as e:
            logger.warning(f"⚠️ Embedding cache write failed: {e}")
