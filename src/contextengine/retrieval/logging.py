"""Abstract logging interface for retrieval pipeline events."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from src.utils.logger import get_logger

from .models import RetrievalResult


class RetrievalLogger(ABC):
    """Abstract interface for retrieval event logging."""

    @abstractmethod
    async def log_retrieval(
        self,
        query: str,
        result: RetrievalResult,
        latency_ms: float,
    ) -> None: ...

    @abstractmethod
    async def log_upstream_failure(
        self,
        query: str,
        stage: str,
        error: BaseException,
    ) -> None: ...


class NullLogger(RetrievalLogger):
    """No-op logger. Default when no logger configured."""

    async def log_retrieval(
        self,
        query: str,
        result: RetrievalResult,
        latency_ms: float,
    ) -> None:
        pass

    async def log_upstream_failure(
        self,
        query: str,
        stage: str,
        error: BaseException,
    ) -> None:
        pass


class LoguruRetrievalLogger(RetrievalLogger):
    """Writes one compact JSON record per event through loguru.

    Records are bound with ``retrieval_event=True`` so a sink can route them
    separately from ordinary log lines.
    """

    def __init__(self) -> None:
        self._logger = get_logger("events").bind(retrieval_event=True)

    async def log_retrieval(
        self,
        query: str,
        result: RetrievalResult,
        latency_ms: float,
    ) -> None:
        context = result.context
        self._write({
            "event_type": "retrieval",
            "query": query,
            "strategy": result.plan.strategy,
            "augmented_query": result.augmented_query,
            "stage_counts": result.stage_counts,
            "chunks": len(context.chunks),
            "quality": context.quality,
            "total_relevance": round(context.total_relevance, 4),
            "latency_ms": round(latency_ms, 1),
        })

    async def log_upstream_failure(
        self,
        query: str,
        stage: str,
        error: BaseException,
    ) -> None:
        self._write({
            "event_type": "upstream_failure",
            "query": query,
            "stage": stage,
            "error": f"{type(error).__name__}: {error}",
        })

    def _write(self, entry: dict) -> None:
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._logger.info(json.dumps(entry, separators=(",", ":"), default=str))
