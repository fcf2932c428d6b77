"""Candidate fetch: one nearest-neighbour query per request."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from src.utils.logger import get_logger

from .base import VectorIndex
from .intent import UserContext
from .models import ChunkMetadata, PlanFilters, RetrievalPlan, RetrievedChunk, VectorMatch

logger = get_logger("fetcher")


def build_metadata_filter(filters: PlanFilters) -> Optional[dict]:
    """Index-side metadata filter for a plan.

    Always None: content_type / category fields are not populated reliably
    in the index, so filtering happens in the scoring and dietary stages.
    """
    return None


def effective_top_k(
    plan: RetrievalPlan,
    user_context: Optional[UserContext],
    multiplier: int = 2,
    cap: int = 50,
) -> int:
    """Over-fetch when dietary filtering will remove candidates later."""
    if user_context is not None and user_context.has_dietary_filters:
        return min(plan.top_k * multiplier, cap)
    return plan.top_k


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_chunk(match: VectorMatch) -> RetrievedChunk:
    """Convert a raw match, defaulting any missing or malformed metadata."""
    meta = match.metadata if isinstance(match.metadata, dict) else {}
    return RetrievedChunk(
        id=str(match.id or ""),
        score=float(match.score),
        text=_as_str(meta.get("chunk_text")),
        metadata=ChunkMetadata(
            content_type=_as_str(meta.get("content_type")) or "editorial",
            source_url=_as_str(meta.get("source_url")),
            page_title=_as_str(meta.get("page_title")),
            product_sku=_as_optional_str(meta.get("product_sku")),
            product_category=_as_optional_str(meta.get("product_category")),
            recipe_category=_as_optional_str(meta.get("recipe_category")),
            image_url=_as_optional_str(meta.get("image_url")),
            indexed_at=_parse_timestamp(meta.get("indexed_at")),
        ),
    )


class CandidateFetcher:
    def __init__(self, index: VectorIndex, multiplier: int = 2, cap: int = 50) -> None:
        self.index = index
        self.multiplier = multiplier
        self.cap = cap

    async def fetch(
        self,
        plan: RetrievalPlan,
        vector: list[float],
        user_context: Optional[UserContext] = None,
    ) -> list[RetrievedChunk]:
        top_k = effective_top_k(plan, user_context, self.multiplier, self.cap)
        matches = await self.index.query(
            vector,
            top_k=top_k,
            filter=build_metadata_filter(plan.filters),
            return_metadata="all",
        )
        logger.debug(f"Fetched {len(matches)} candidates (top_k={top_k}, strategy={plan.strategy})")
        return [to_chunk(m) for m in matches]
