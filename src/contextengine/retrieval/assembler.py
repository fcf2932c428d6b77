"""Final context assembly: truncation, aggregates, and a quality tier.

Quality is advisory. It tells the downstream generator how far to trust the
context (high: state facts; low: hedge or fall back) and never changes which
chunks are returned.
"""

from __future__ import annotations

import math
from typing import Optional

from .models import QualityTier, RetrievalContext, RetrievalPlan, RetrievedChunk

_CHARS_PER_TOKEN = 4

HIGH_TOP_SCORE = 0.85
HIGH_MEAN_SCORE = 0.75
HIGH_STRONG_SCORE = 0.75
HIGH_MIN_STRONG = 2
MEDIUM_TOP_SCORE = 0.7
MEDIUM_MEAN_SCORE = 0.65


def estimate_tokens(text: str) -> int:
    """Rough token estimate: ~4 characters per token."""
    return math.ceil(len(text) / _CHARS_PER_TOKEN)


def _limit_tokens(chunks: list[RetrievedChunk], budget: int) -> list[RetrievedChunk]:
    limited: list[RetrievedChunk] = []
    used = 0
    for chunk in chunks:
        cost = estimate_tokens(chunk.text)
        if used + cost > budget:
            break
        limited.append(chunk)
        used += cost
    return limited


def assess_quality(chunks: list[RetrievedChunk]) -> QualityTier:
    if not chunks:
        return "low"
    scores = [c.score for c in chunks]
    top = max(scores)
    mean = sum(scores) / len(scores)
    strong = sum(1 for s in scores if s > HIGH_STRONG_SCORE)

    if top > HIGH_TOP_SCORE and mean > HIGH_MEAN_SCORE and strong >= HIGH_MIN_STRONG:
        return "high"
    if top > MEDIUM_TOP_SCORE or mean > MEDIUM_MEAN_SCORE:
        return "medium"
    return "low"


class ContextAssembler:
    """Builds the RetrievalContext handed to content generation."""

    def __init__(self, max_context_tokens: Optional[int] = None) -> None:
        self.max_context_tokens = max_context_tokens

    def assemble(self, chunks: list[RetrievedChunk], plan: RetrievalPlan) -> RetrievalContext:
        selected = list(chunks[: plan.max_results])
        if self.max_context_tokens is not None:
            selected = _limit_tokens(selected, self.max_context_tokens)

        if not selected:
            return RetrievalContext()

        return RetrievalContext(
            chunks=selected,
            total_relevance=sum(c.score for c in selected) / len(selected),
            has_product_info=any(c.metadata.content_type == "product" for c in selected),
            has_recipes=any(c.metadata.content_type == "recipe" for c in selected),
            source_urls=list(dict.fromkeys(c.metadata.source_url for c in selected if c.metadata.source_url)),
            quality=assess_quality(selected),
        )
