"""Source/category diversity with a minimum result floor."""

from __future__ import annotations

from collections import Counter
from typing import Optional

from src.utils.logger import get_logger

from .models import RetrievedChunk
from .scoring import sort_by_score

logger = get_logger("diversity")


def category_key(chunk: RetrievedChunk) -> Optional[str]:
    """Recipe or product category; None when the chunk is uncategorised."""
    return chunk.metadata.recipe_category or chunk.metadata.product_category


class DiversityEnforcer:
    """Caps how many chunks one source or category may contribute.

    Capping is a soft preference: when it would leave fewer than
    ``min(min_results, len(chunks))`` chunks, the best deferred chunks are
    admitted back until that floor is reached.
    """

    def __init__(
        self,
        max_per_source: int = 2,
        max_per_category: int = 3,
        min_results: int = 5,
        min_input: int = 3,
    ) -> None:
        self.max_per_source = max_per_source
        self.max_per_category = max_per_category
        self.min_results = min_results
        self.min_input = min_input

    def diversify(self, chunks: list[RetrievedChunk]) -> list[RetrievedChunk]:
        if len(chunks) <= self.min_input:
            return list(chunks)

        per_source: Counter = Counter()
        per_category: Counter = Counter()
        admitted: list[RetrievedChunk] = []
        deferred: list[RetrievedChunk] = []

        for chunk in sort_by_score(chunks):
            source = chunk.metadata.source_url
            category = category_key(chunk)
            if per_source[source] >= self.max_per_source or (
                category is not None and per_category[category] >= self.max_per_category
            ):
                deferred.append(chunk)
                continue
            per_source[source] += 1
            if category is not None:
                per_category[category] += 1
            admitted.append(chunk)

        floor = min(self.min_results, len(chunks))
        if len(admitted) < floor:
            backfill = deferred[: floor - len(admitted)]
            admitted.extend(backfill)
            logger.debug(f"Diversity backfilled {len(backfill)} chunks to reach floor {floor}")

        if deferred:
            logger.debug(
                f"Diversity: {len(admitted)} admitted from {len(per_source)} sources, "
                f"{len(chunks) - len(admitted)} deferred"
            )
        return sort_by_score(admitted)
