"""Core data models for the retrieval pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

RetrievalStrategy = Literal["semantic", "catalog", "filtered", "comprehensive", "ingredient"]
DedupeMode = Literal["similarity", "by-sku", "by-url"]
ContentType = Literal["product", "recipe", "editorial", "support", "brand"]
QualityTier = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class PlanFilters:
    """Metadata constraints a plan would like applied (advisory, see fetcher)."""
    content_types: frozenset[str] = frozenset()
    product_category: Optional[str] = None
    recipe_category: Optional[str] = None


@dataclass(frozen=True)
class RetrievalPlan:
    """How a single request should be retrieved. Built once, never mutated."""
    strategy: RetrievalStrategy
    semantic_query: str
    top_k: int
    relevance_threshold: float
    filters: PlanFilters
    dedupe_mode: DedupeMode
    max_results: int
    boost_terms: tuple[str, ...] = ()
    reasoning: str = ""


@dataclass(frozen=True)
class ChunkMetadata:
    content_type: str = "editorial"
    source_url: str = ""
    page_title: str = ""
    product_sku: Optional[str] = None
    product_category: Optional[str] = None
    recipe_category: Optional[str] = None
    image_url: Optional[str] = None
    indexed_at: Optional[datetime] = None


@dataclass(frozen=True)
class RetrievedChunk:
    """A knowledge-base passage and its current relevance score.

    Scoring stages never modify a chunk in place; they return copies with
    an updated score via ``with_score``.
    """
    id: str
    score: float
    text: str = ""
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)

    def with_score(self, score: float) -> "RetrievedChunk":
        return RetrievedChunk(id=self.id, score=score, text=self.text, metadata=self.metadata)


@dataclass
class RetrievalContext:
    """Bounded, ranked context handed to the downstream generator."""
    chunks: list[RetrievedChunk] = field(default_factory=list)
    total_relevance: float = 0.0
    has_product_info: bool = False
    has_recipes: bool = False
    source_urls: list[str] = field(default_factory=list)
    quality: QualityTier = "low"


@dataclass
class VectorMatch:
    """One raw nearest-neighbour hit as returned by the vector index."""
    id: str
    score: float
    metadata: dict = field(default_factory=dict)


@dataclass
class RetrievalResult:
    """A context plus the diagnostics that produced it."""
    context: RetrievalContext
    plan: RetrievalPlan
    augmented_query: str
    stage_counts: dict[str, int] = field(default_factory=dict)
