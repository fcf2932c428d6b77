"""RetrievalEngine: single entry point for context retrieval and ranking."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Optional

from src.contextengine.settings import RetrievalConfig
from src.utils.logger import get_logger

from .assembler import ContextAssembler
from .augmenter import augment
from .base import VectorIndex
from .dedupe import Deduplicator
from .dietary import ContextFilter
from .diversity import DiversityEnforcer
from .embeddings import EmbeddingService
from .fetcher import CandidateFetcher
from .intent import IntentClassification, UserContext
from .logging import NullLogger, RetrievalLogger
from .models import RetrievalContext, RetrievalResult
from .planner import StrategyPlanner
from .scoring import ScoringPipeline

logger = get_logger("pipeline")


class RetrievalEngine:
    """Plans, fetches, scores, filters and assembles context for one query.

    Stages run strictly in sequence:
    planner -> augmenter -> embeddings -> fetcher -> scoring ->
    dietary filter -> dedupe -> diversity -> assembler.

    Holds no per-request state, so one engine can serve concurrent requests.
    Embedding or index failures propagate; everything else degrades to a
    smaller (possibly empty, "low" quality) context.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        index: VectorIndex,
        config: Optional[RetrievalConfig] = None,
        logger: Optional[RetrievalLogger] = None,
        planner: Optional[StrategyPlanner] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or RetrievalConfig()
        self.embedding_service = embedding_service
        self.logger = logger or NullLogger()
        self.planner = planner or StrategyPlanner(brand=self.config.brand)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        cfg = self.config
        self.fetcher = CandidateFetcher(index, cfg.dietary_top_k_multiplier, cfg.max_top_k)
        self.scoring = ScoringPipeline(cfg)
        self.context_filter = ContextFilter()
        self.deduplicator = Deduplicator(cfg.similarity_threshold, cfg.diversity_penalty)
        self.diversity = DiversityEnforcer(
            max_per_source=cfg.max_per_source,
            max_per_category=cfg.max_per_category,
            min_results=cfg.min_results,
            min_input=cfg.diversity_min_input,
        )
        self.assembler = ContextAssembler(cfg.max_context_tokens)

    async def retrieve(
        self,
        query: str,
        intent: IntentClassification,
        user_context: Optional[UserContext] = None,
    ) -> RetrievalContext:
        result = await self.retrieve_with_trace(query, intent, user_context)
        return result.context

    async def retrieve_with_trace(
        self,
        query: str,
        intent: IntentClassification,
        user_context: Optional[UserContext] = None,
    ) -> RetrievalResult:
        """Run the full pipeline and return the context with its plan and stage counts."""
        started = time.perf_counter()
        user_context = user_context or intent.entities.user_context or UserContext()

        plan = self.planner.plan(query, intent)
        logger.info(f"🧭 Plan '{plan.strategy}' for '{query}': {plan.reasoning}")

        augmented = augment(plan.semantic_query, user_context, self.config.augment_max_tokens)
        if augmented != plan.semantic_query:
            logger.debug(f"Augmented query: '{augmented}'")

        try:
            vector = await self.embedding_service.embed(augmented)
        except Exception as e:
            await self.logger.log_upstream_failure(query, "embedding", e)
            raise

        try:
            candidates = await self.fetcher.fetch(plan, vector, user_context)
        except Exception as e:
            await self.logger.log_upstream_failure(query, "vector_index", e)
            raise

        counts = {"fetched": len(candidates)}

        chunks = self.scoring.score(candidates, plan, user_context, now=self.clock())
        counts["scored"] = len(chunks)

        chunks = self.context_filter.filter(chunks, user_context)
        counts["dietary"] = len(chunks)

        chunks = self.deduplicator.dedupe(chunks, plan.dedupe_mode)
        counts["deduped"] = len(chunks)

        chunks = self.diversity.diversify(chunks)
        counts["diversified"] = len(chunks)

        context = self.assembler.assemble(chunks, plan)
        counts["final"] = len(context.chunks)

        latency_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"📚 Retrieved {counts['final']} chunks ({context.quality}) "
            f"fetched={counts['fetched']} scored={counts['scored']} dietary={counts['dietary']} "
            f"deduped={counts['deduped']} in {latency_ms:.0f}ms"
        )
        if context.quality == "low":
            logger.warning(f"⚠️ Low-quality context for '{query}' ({counts['final']} chunks)")

        result = RetrievalResult(
            context=context,
            plan=plan,
            augmented_query=augmented,
            stage_counts=counts,
        )
        await self.logger.log_retrieval(query, result, latency_ms)
        return result
