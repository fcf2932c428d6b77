"""Deduplication of retrieved chunks by SKU, source URL, or text similarity."""

from __future__ import annotations

from typing import Callable

from .models import DedupeMode, RetrievedChunk
from .scoring import sort_by_score

DEFAULT_SIMILARITY_THRESHOLD = 0.8
DEFAULT_DIVERSITY_PENALTY = 0.1


def text_similarity(a: str, b: str) -> float:
    """Jaccard index of the two texts' lowercase word sets."""
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    union = words_a | words_b
    if not union:
        return 1.0  # two empty texts are identical
    return len(words_a & words_b) / len(union)


def sku_key(chunk: RetrievedChunk) -> str:
    return chunk.metadata.product_sku or chunk.metadata.source_url


def url_key(chunk: RetrievedChunk) -> str:
    return chunk.metadata.source_url


def _best_per_key(
    chunks: list[RetrievedChunk],
    key: Callable[[RetrievedChunk], str],
) -> list[RetrievedChunk]:
    best: dict[str, RetrievedChunk] = {}
    for chunk in chunks:
        k = key(chunk)
        if k not in best or chunk.score > best[k].score:
            best[k] = chunk
    return sort_by_score(best.values())


def dedupe_by_similarity(
    chunks: list[RetrievedChunk],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    penalty: float = DEFAULT_DIVERSITY_PENALTY,
) -> list[RetrievedChunk]:
    """Greedy pass in score order.

    Near-duplicates of an already kept chunk are dropped. A chunk that only
    shares a source URL with a kept chunk stays, discounted once by
    ``penalty``.
    """
    kept: list[RetrievedChunk] = []
    for chunk in sort_by_score(chunks):
        if any(text_similarity(chunk.text, k.text) > threshold for k in kept):
            continue
        if any(chunk.metadata.source_url == k.metadata.source_url for k in kept):
            chunk = chunk.with_score(chunk.score * (1 - penalty))
        kept.append(chunk)
    return sort_by_score(kept)


class Deduplicator:
    def __init__(
        self,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        diversity_penalty: float = DEFAULT_DIVERSITY_PENALTY,
    ) -> None:
        self.similarity_threshold = similarity_threshold
        self.diversity_penalty = diversity_penalty

    def dedupe(self, chunks: list[RetrievedChunk], mode: DedupeMode) -> list[RetrievedChunk]:
        if mode == "by-sku":
            return _best_per_key(chunks, sku_key)
        if mode == "by-url":
            return _best_per_key(chunks, url_key)
        return dedupe_by_similarity(chunks, self.similarity_threshold, self.diversity_penalty)
