"""Context retrieval and ranking for generative page content."""

from .base import EmbeddingProvider, InMemoryCache, KeyValueCache, VectorIndex
from .embeddings import EmbeddingService
from .intent import IntentClassification, IntentEntities, UserContext
from .logging import LoguruRetrievalLogger, NullLogger, RetrievalLogger
from .models import RetrievalContext, RetrievalPlan, RetrievalResult, RetrievedChunk
from .pipeline import RetrievalEngine
from .planner import StrategyPlanner, plan_retrieval

__all__ = [
    "EmbeddingProvider",
    "EmbeddingService",
    "InMemoryCache",
    "IntentClassification",
    "IntentEntities",
    "KeyValueCache",
    "LoguruRetrievalLogger",
    "NullLogger",
    "RetrievalContext",
    "RetrievalEngine",
    "RetrievalLogger",
    "RetrievalPlan",
    "RetrievalResult",
    "RetrievedChunk",
    "StrategyPlanner",
    "UserContext",
    "VectorIndex",
    "plan_retrieval",
]
