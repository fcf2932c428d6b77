"""Dietary-safety context filter.

Chunks mentioning anything the user must avoid are removed outright, no
matter how well they score. Avoid terms come from three places:

- ``dietary.avoid`` as given ("carrots", "nuts")
- blacklists implied by dietary preferences ("vegan" -> milk, honey, ...)
- allergen families expanded to their members ("nuts" -> walnut, pecan, ...)

Matching is whole-word and plural tolerant against chunk text and page
title, so "nut" catches "nuts" but not "doughnut" or "walnut" (walnut is
caught through the family expansion instead).
"""

from __future__ import annotations

from typing import Optional

from src.utils.logger import get_logger

from .intent import UserContext
from .models import RetrievedChunk
from .terms import contains_word, normalize_tag, singularize

logger = get_logger("dietary")

PREFERENCE_EXCLUSIONS: dict[str, tuple[str, ...]] = {
    "vegan": (
        "meat", "chicken", "beef", "pork", "bacon", "ham", "turkey", "lamb", "fish",
        "salmon", "tuna", "shrimp", "milk", "yogurt", "cheese", "butter", "cream",
        "egg", "honey", "whey", "gelatin", "ghee",
    ),
    "vegetarian": (
        "meat", "chicken", "beef", "pork", "bacon", "ham", "turkey", "lamb", "fish",
        "salmon", "tuna", "shrimp", "anchovy", "gelatin",
    ),
    "keto": (
        "bread", "pasta", "rice", "sugar", "potato", "banana", "oat", "flour",
        "honey", "maple syrup", "corn", "tortilla",
    ),
    "paleo": (
        "bread", "pasta", "rice", "grain", "oat", "wheat", "sugar", "milk", "cheese",
        "yogurt", "bean", "lentil", "peanut", "soy", "tofu", "corn",
    ),
    "gluten free": ("wheat", "barley", "rye", "flour", "bread", "pasta", "couscous", "seitan"),
    "dairy free": ("milk", "cheese", "butter", "cream", "yogurt", "whey", "ghee", "kefir"),
}

ALLERGEN_FAMILIES: dict[str, tuple[str, ...]] = {
    "nut": ("almond", "walnut", "pecan", "cashew", "pistachio", "hazelnut", "macadamia"),
    "tree nut": ("almond", "walnut", "pecan", "cashew", "pistachio", "hazelnut", "macadamia"),
    "peanut": ("peanut", "peanut butter"),
    "dairy": ("milk", "cheese", "butter", "cream", "yogurt", "whey", "ghee"),
    "lactose": ("milk", "cheese", "cream", "yogurt"),
    "shellfish": ("shrimp", "crab", "lobster", "prawn", "scallop", "clam", "mussel", "oyster"),
    "fish": ("salmon", "tuna", "cod", "anchovy", "sardine", "tilapia"),
    "egg": ("egg", "mayonnaise", "meringue"),
    "gluten": ("wheat", "barley", "rye", "flour", "bread", "pasta"),
    "soy": ("soy", "tofu", "edamame", "tempeh", "miso"),
}


def _family_key(term: str) -> str:
    return singularize(normalize_tag(term))


def build_avoid_terms(user_context: Optional[UserContext]) -> list[str]:
    """All terms a chunk must not mention, de-duplicated in discovery order."""
    if user_context is None:
        return []

    terms: list[str] = []
    for avoid in user_context.dietary.avoid:
        normalized = normalize_tag(avoid)
        if not normalized:
            continue
        terms.append(normalized)
        terms.extend(ALLERGEN_FAMILIES.get(_family_key(normalized), ()))

    for preference in user_context.dietary.preferences:
        terms.extend(PREFERENCE_EXCLUSIONS.get(normalize_tag(preference), ()))

    return list(dict.fromkeys(terms))


def find_violation(chunk: RetrievedChunk, avoid_terms: list[str]) -> Optional[str]:
    """Return the first avoid term the chunk mentions, or None."""
    for term in avoid_terms:
        if contains_word(chunk.text, term) or contains_word(chunk.metadata.page_title, term):
            return term
    return None


class ContextFilter:
    """Hard-excludes chunks that violate the user's dietary restrictions."""

    def filter(
        self,
        chunks: list[RetrievedChunk],
        user_context: Optional[UserContext],
    ) -> list[RetrievedChunk]:
        avoid_terms = build_avoid_terms(user_context)
        if not avoid_terms:
            return list(chunks)

        kept: list[RetrievedChunk] = []
        for chunk in chunks:
            violation = find_violation(chunk, avoid_terms)
            if violation is not None:
                logger.debug(f"🚫 Excluding {chunk.id}: mentions '{violation}'")
                continue
            kept.append(chunk)

        if len(kept) < len(chunks):
            logger.info(f"Dietary filter removed {len(chunks) - len(kept)}/{len(chunks)} chunks")
        return kept
