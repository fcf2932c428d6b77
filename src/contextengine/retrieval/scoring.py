"""Multi-stage relevance scoring.

Each stage is a pure ``list[RetrievedChunk] -> list[RetrievedChunk]`` function
returning new chunks sorted by score (stable, so ties keep their prior order).
Stage order is fixed: threshold + freshness, plan term boost, ingredient
boost, cuisine boost, conflict penalty. Adjustments are multiplicative.

Threshold filtering runs before any boost, so a boost can re-rank survivors
but never rescue a chunk that failed the similarity gate.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from src.contextengine.settings import RetrievalConfig
from src.utils.logger import get_logger

from .intent import UserContext
from .models import RetrievalPlan, RetrievedChunk
from .terms import count_term_hits, normalize_tag

logger = get_logger("scoring")

# Constraint tag -> phrases in a chunk that contradict it
CONFLICT_TERMS: dict[str, tuple[str, ...]] = {
    "quick": ("overnight", "slow-cooked", "slow cooked", "slow cooker", "marinate for hours", "several hours", "all day"),
    "5 minutes": ("overnight", "slow-cooked", "slow cooked", "slow cooker", "marinate for hours", "several hours", "all day"),
    "simple": ("advanced technique", "multi-step", "sous vide", "complex", "professional technique"),
    "no cook": ("bake", "roast", "simmer", "saute", "stovetop", "oven"),
    "one pot": ("multiple pans", "separate pan", "second pot"),
    "budget friendly": ("premium", "luxury", "truffle", "saffron"),
}


def sort_by_score(chunks: Iterable[RetrievedChunk]) -> list[RetrievedChunk]:
    return sorted(chunks, key=lambda c: c.score, reverse=True)


def freshness_multiplier(
    indexed_at: Optional[datetime],
    now: datetime,
    horizon_days: float = 600.0,
    floor: float = 0.85,
) -> float:
    """1.0 for fresh content, decaying linearly toward ``floor``; 1.0 when undated."""
    if indexed_at is None:
        return 1.0
    days = max(0.0, (now - indexed_at).total_seconds() / 86400.0)
    return max(floor, 1.0 - days / horizon_days)


def boost_multiplier(hits: int, per_term: float = 0.15, cap: float = 0.6) -> float:
    return 1.0 + min(cap, per_term * hits)


def apply_threshold_and_freshness(
    chunks: list[RetrievedChunk],
    threshold: float,
    now: datetime,
    config: RetrievalConfig,
) -> list[RetrievedChunk]:
    survivors = [c for c in chunks if c.score >= threshold]
    return sort_by_score(
        c.with_score(
            c.score
            * freshness_multiplier(
                c.metadata.indexed_at, now, config.freshness_horizon_days, config.freshness_floor
            )
        )
        for c in survivors
    )


def boost_by_terms(
    chunks: list[RetrievedChunk],
    terms: Iterable[str],
    config: RetrievalConfig,
) -> list[RetrievedChunk]:
    """Multiply each chunk by 1 + min(cap, per_term * distinct terms found in its text)."""
    terms = list(terms)
    if not terms:
        return list(chunks)
    boosted = []
    for chunk in chunks:
        hits = count_term_hits(chunk.text, terms)
        if hits:
            chunk = chunk.with_score(chunk.score * boost_multiplier(hits, config.boost_per_term, config.max_boost))
        boosted.append(chunk)
    return sort_by_score(boosted)


def ingredient_terms(user_context: UserContext) -> list[str]:
    """Must-use ingredients first, then what the user has on hand."""
    return list(dict.fromkeys(user_context.must_use + user_context.available))


def cuisine_terms(user_context: UserContext) -> list[str]:
    return list(dict.fromkeys(user_context.cultural.cuisine + user_context.cultural.regional))


def conflict_terms(user_context: UserContext) -> list[str]:
    terms: list[str] = []
    for constraint in user_context.constraints:
        terms.extend(CONFLICT_TERMS.get(normalize_tag(constraint), ()))
    return list(dict.fromkeys(terms))


def penalize_conflicts(
    chunks: list[RetrievedChunk],
    terms: Iterable[str],
    penalty: float = 0.7,
) -> list[RetrievedChunk]:
    """Multiply by ``penalty`` (once) when a chunk mentions any conflicting phrase."""
    terms = [t.lower() for t in terms]
    if not terms:
        return list(chunks)
    adjusted = []
    for chunk in chunks:
        text = chunk.text.lower()
        if any(t in text for t in terms):
            chunk = chunk.with_score(chunk.score * penalty)
        adjusted.append(chunk)
    return sort_by_score(adjusted)


class ScoringPipeline:
    """Threads candidate chunks through every scoring stage in order."""

    def __init__(self, config: Optional[RetrievalConfig] = None) -> None:
        self.config = config or RetrievalConfig()

    def score(
        self,
        chunks: list[RetrievedChunk],
        plan: RetrievalPlan,
        user_context: UserContext,
        now: Optional[datetime] = None,
    ) -> list[RetrievedChunk]:
        now = now or datetime.now(timezone.utc)
        cfg = self.config

        scored = apply_threshold_and_freshness(chunks, plan.relevance_threshold, now, cfg)
        logger.debug(
            f"Threshold {plan.relevance_threshold}: {len(scored)}/{len(chunks)} candidates survive"
        )
        if not scored:
            return scored

        scored = boost_by_terms(scored, plan.boost_terms, cfg)

        ingredients = ingredient_terms(user_context)
        if ingredients:
            logger.debug(f"Ingredient boost (must-use first): {ingredients}")
            scored = boost_by_terms(scored, ingredients, cfg)

        cuisines = cuisine_terms(user_context)
        if cuisines:
            logger.debug(f"Cuisine boost: {cuisines}")
            scored = boost_by_terms(scored, cuisines, cfg)

        conflicts = conflict_terms(user_context)
        if conflicts:
            logger.debug(f"Conflict penalty for constraints {user_context.constraints}")
            scored = penalize_conflicts(scored, conflicts, cfg.conflict_penalty)

        return scored
