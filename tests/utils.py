from datetime import datetime, timezone
from typing import Optional

from src.contextengine.retrieval.base import EmbeddingProvider, VectorIndex
from src.contextengine.retrieval.intent import IntentClassification, IntentEntities, UserContext
from src.contextengine.retrieval.models import ChunkMetadata, RetrievedChunk, VectorMatch

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def make_chunk(
    id: str,
    score: float,
    text: str = "",
    url: Optional[str] = None,
    content_type: str = "recipe",
    title: str = "",
    sku: Optional[str] = None,
    recipe_category: Optional[str] = None,
    product_category: Optional[str] = None,
    indexed_at: Optional[datetime] = None,
) -> RetrievedChunk:
    return RetrievedChunk(
        id=id,
        score=score,
        text=text or f"chunk {id}",
        metadata=ChunkMetadata(
            content_type=content_type,
            source_url=url if url is not None else f"https://example.com/{id}",
            page_title=title,
            product_sku=sku,
            recipe_category=recipe_category,
            product_category=product_category,
            indexed_at=indexed_at,
        ),
    )


def make_match(
    id: str,
    score: float,
    text: str,
    url: Optional[str] = None,
    content_type: str = "recipe",
    **extra,
) -> VectorMatch:
    metadata = {
        "chunk_text": text,
        "content_type": content_type,
        "source_url": url if url is not None else f"https://example.com/{id}",
        "page_title": extra.pop("page_title", id.replace("-", " ").title()),
    }
    metadata.update(extra)
    return VectorMatch(id=id, score=score, metadata=metadata)


def recipe_intent(user_context: Optional[UserContext] = None, ingredients=None) -> IntentClassification:
    return IntentClassification(
        intent_type="recipe",
        confidence=0.9,
        layout_id="recipe-collection",
        content_types=["recipe"],
        entities=IntentEntities(ingredients=ingredients or [], user_context=user_context),
    )


class FakeEmbeddingProvider(EmbeddingProvider):
    """Returns a fixed vector and records every text it was asked to embed."""

    def __init__(self, vector=None, error: Optional[Exception] = None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.error = error
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)


class FakeVectorIndex(VectorIndex):
    """Serves a fixed match list, truncated to top_k."""

    def __init__(self, matches=None, error: Optional[Exception] = None):
        self.matches = list(matches or [])
        self.error = error
        self.queries: list[dict] = []

    async def query(self, vector, *, top_k, filter=None, return_metadata="all"):
        self.queries.append({"vector": vector, "top_k": top_k, "filter": filter})
        if self.error is not None:
            raise self.error
        return self.matches[:top_k]


class FailingCache:
    """KeyValueCache stand-in whose every operation raises."""

    async def get(self, key):
        raise ConnectionError("cache unavailable")

    async def put(self, key, value, *, ttl_seconds):
        raise ConnectionError("cache unavailable")
