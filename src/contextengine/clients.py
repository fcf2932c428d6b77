"""HTTP adapters for the embedding provider and the vector index.

Both talk JSON over ``httpx.AsyncClient``. Transport and HTTP errors are
wrapped in ``UpstreamServiceError`` subclasses and propagate; the engine does
not retry.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from src.contextengine.retrieval.base import EmbeddingProvider, VectorIndex
from src.contextengine.retrieval.models import VectorMatch
from src.utils.logger import get_logger

logger = get_logger("clients")


class UpstreamServiceError(RuntimeError):
    """A remote dependency failed or returned something unusable."""


class EmbeddingProviderError(UpstreamServiceError):
    pass


class VectorIndexError(UpstreamServiceError):
    pass


def _headers(api_key: Optional[str]) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


class _JsonServiceClient:
    error_cls: type[UpstreamServiceError] = UpstreamServiceError

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = _headers(api_key)

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.post(url, json=payload, headers=self._headers)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise self.error_cls(f"{url} returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise self.error_cls(f"{url} request failed: {e}") from e
        except ValueError as e:
            raise self.error_cls(f"{url} returned invalid JSON: {e}") from e
        if not isinstance(body, dict):
            raise self.error_cls(f"{url} returned {type(body).__name__}, expected object")
        return body

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class HttpEmbeddingProvider(_JsonServiceClient, EmbeddingProvider):
    """``POST {base_url}/embed`` with ``{"model", "text": [...]}`` -> ``{"data": [[...]]}``."""

    error_cls = EmbeddingProviderError

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(base_url, api_key=api_key, timeout=timeout, client=client)
        self.model = model

    async def embed(self, text: str) -> list[float]:
        body = await self._post("/embed", {"model": self.model, "text": [text]})
        data = body.get("data")
        if not isinstance(data, list) or not data or not isinstance(data[0], list) or not data[0]:
            raise EmbeddingProviderError("embedding response has no vector")
        return [float(v) for v in data[0]]


class HttpVectorIndex(_JsonServiceClient, VectorIndex):
    """``POST {base_url}/query`` -> ``{"matches": [{"id", "score", "metadata"}]}``."""

    error_cls = VectorIndexError

    async def query(
        self,
        vector: list[float],
        *,
        top_k: int,
        filter: Optional[dict] = None,
        return_metadata: str = "all",
    ) -> list[VectorMatch]:
        payload: dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "returnMetadata": return_metadata,
        }
        if filter is not None:
            payload["filter"] = filter
        body = await self._post("/query", payload)

        matches: list[VectorMatch] = []
        for raw in body.get("matches") or []:
            if not isinstance(raw, dict):
                continue
            try:
                score = float(raw.get("score"))
            except (TypeError, ValueError):
                logger.warning(f"⚠️ Skipping match {raw.get('id')!r} with non-numeric score")
                continue
            metadata = raw.get("metadata")
            matches.append(VectorMatch(
                id=str(raw.get("id") or ""),
                score=score,
                metadata=metadata if isinstance(metadata, dict) else {},
            ))
        return matches
