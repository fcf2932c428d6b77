from __future__ import annotations
import json
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from src.contextengine.clients import HttpEmbeddingProvider, HttpVectorIndex, UpstreamServiceError
from src.contextengine.retrieval.base import InMemoryCache
from src.contextengine.retrieval.embeddings import EmbeddingService
from src.contextengine.retrieval.intent import IntentClassification, IntentEntities, UserContext
from src.contextengine.retrieval.logging import LoguruRetrievalLogger
from src.contextengine.retrieval.models import RetrievalContext, RetrievalPlan
from src.contextengine.retrieval.pipeline import RetrievalEngine
from src.contextengine.retrieval.planner import plan_retrieval
from src.contextengine.retrieval.quality_check import run_quality_check
from src.contextengine.settings import EngineSettings, RetrievalConfig, load_config
from src.utils.logger import get_logger

logger = get_logger("cli")

UNAVAILABLE_MESSAGE = "content temporarily unavailable"


def _dumps(data) -> str:
    return json.dumps(data, indent=2, default=str)


def plan_to_dict(plan: RetrievalPlan) -> dict:
    data = asdict(plan)
    data["filters"]["content_types"] = sorted(plan.filters.content_types)
    data["boost_terms"] = list(plan.boost_terms)
    return data


def context_to_dict(context: RetrievalContext) -> dict:
    return {
        "quality": context.quality,
        "total_relevance": round(context.total_relevance, 4),
        "has_product_info": context.has_product_info,
        "has_recipes": context.has_recipes,
        "source_urls": context.source_urls,
        "chunks": [
            {
                "id": c.id,
                "score": round(c.score, 4),
                "content_type": c.metadata.content_type,
                "title": c.metadata.page_title,
                "source_url": c.metadata.source_url,
                "text": c.text,
            }
            for c in context.chunks
        ],
    }


def build_intent(
    intent_type: str = "general",
    products: Optional[list[str]] = None,
    layout: str = "",
    user_context: Optional[UserContext] = None,
) -> IntentClassification:
    return IntentClassification(
        intent_type=intent_type,
        confidence=1.0,
        layout_id=layout,
        entities=IntentEntities(products=products or [], user_context=user_context),
    )


def load_user_context(path: Path) -> UserContext:
    """Read a user context from a JSON or YAML file (camelCase or snake_case keys)."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return UserContext.model_validate(raw)


def build_engine(
    settings: EngineSettings,
    config: RetrievalConfig,
) -> tuple[RetrievalEngine, HttpEmbeddingProvider, HttpVectorIndex]:
    """Wire an engine against the HTTP services named in settings.

    The clients are returned so the caller can close them.
    """
    provider = HttpEmbeddingProvider(
        settings.embedding_url,
        model=settings.embedding_model,
        api_key=settings.api_key,
        timeout=settings.timeout_seconds,
    )
    index = HttpVectorIndex(
        settings.index_url,
        api_key=settings.api_key,
        timeout=settings.timeout_seconds,
    )
    engine = RetrievalEngine(
        EmbeddingService(provider, InMemoryCache(), ttl_seconds=config.embedding_ttl_seconds),
        index,
        config=config,
        logger=LoguruRetrievalLogger(),
    )
    return engine, provider, index


def cmd_plan(
    query: str,
    intent_type: str = "general",
    products: Optional[list[str]] = None,
    layout: str = "",
) -> str:
    plan = plan_retrieval(query, build_intent(intent_type, products, layout))
    return _dumps(plan_to_dict(plan))


async def cmd_retrieve(
    query: str,
    intent_type: str = "general",
    products: Optional[list[str]] = None,
    layout: str = "",
    user_context_path: Optional[Path] = None,
    settings: Optional[EngineSettings] = None,
) -> str:
    settings = settings or EngineSettings()
    config = load_config(settings.config_path)

    user_context = None
    if user_context_path is not None:
        try:
            user_context = load_user_context(user_context_path)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.error(f"❌ Could not load user context from {user_context_path}: {e}")
            return f"Invalid user context file: {user_context_path}"

    intent = build_intent(intent_type, products, layout, user_context)
    engine, provider, index = build_engine(settings, config)
    async with provider, index:
        try:
            result = await engine.retrieve_with_trace(query, intent)
        except UpstreamServiceError as e:
            logger.error(f"❌ Retrieval failed: {e}")
            return UNAVAILABLE_MESSAGE

    return _dumps({
        "plan": plan_to_dict(result.plan),
        "augmented_query": result.augmented_query,
        "stage_counts": result.stage_counts,
        "context": context_to_dict(result.context),
    })


async def cmd_check(
    selector: Optional[str] = None,
    verbose: bool = False,
    settings: Optional[EngineSettings] = None,
    engine: Optional[RetrievalEngine] = None,
) -> str:
    if engine is not None:
        return await _run_check(engine, selector, verbose)

    settings = settings or EngineSettings()
    config = load_config(settings.config_path)
    engine, provider, index = build_engine(settings, config)
    async with provider, index:
        return await _run_check(engine, selector, verbose)


async def _run_check(engine: RetrievalEngine, selector: Optional[str], verbose: bool) -> str:
    try:
        report = await run_quality_check(engine, selector=selector, verbose=verbose)
    except KeyError as e:
        return str(e.args[0])
    except UpstreamServiceError as e:
        logger.error(f"❌ Quality check aborted: {e}")
        return UNAVAILABLE_MESSAGE
    return _dumps(report)
