"""Query augmentation from user-context signals.

Appends short descriptive phrases to the semantic query so the embedding
leans toward content that fits the user ("diabetes" -> "low sugar ...").
Rules are evaluated in table order, which keeps the output deterministic.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from .intent import UserContext
from .terms import normalize_tag

DEFAULT_MAX_TOKENS = 6


class AugmentRule(NamedTuple):
    path: str  # dotted UserContext tag path
    triggers: tuple[str, ...]  # matched as substrings of normalised tags
    tokens: tuple[str, ...]


AUGMENT_RULES: tuple[AugmentRule, ...] = (
    # Health
    AugmentRule("health.conditions", ("diabet",), ("low sugar", "diabetic friendly", "no added sugar")),
    AugmentRule("health.conditions", ("heart",), ("heart healthy", "low sodium")),
    AugmentRule("health.conditions", ("digestive", "gut"), ("gut friendly", "high fiber")),
    AugmentRule("health.conditions", ("pregnan",), ("pregnancy safe", "nutrient dense")),
    AugmentRule("health.considerations", ("low sodium",), ("low sodium",)),
    AugmentRule("health.considerations", ("low sugar",), ("low sugar",)),
    AugmentRule("health.considerations", ("high fiber",), ("high fiber",)),
    AugmentRule("health.goals", ("weight loss",), ("low calorie", "light")),
    AugmentRule("health.goals", ("muscle",), ("high protein",)),
    AugmentRule("health.goals", ("immun",), ("immune boosting", "vitamin c")),
    AugmentRule("health.goals", ("energy",), ("energizing",)),
    # Audience
    AugmentRule("audience", ("toddler", "baby", "infant"), ("baby food", "toddler", "smooth")),
    AugmentRule("audience", ("child", "kid"), ("kid friendly",)),
    AugmentRule("audience", ("senior", "elderly"), ("easy to eat", "soft")),
    AugmentRule("audience", ("guest", "party", "crowd"), ("entertaining", "crowd pleaser")),
    # Practical constraints
    AugmentRule("constraints", ("quick", "minute", "fast"), ("quick", "fast", "easy")),
    AugmentRule("constraints", ("simple", "easy"), ("simple", "few ingredients")),
    AugmentRule("constraints", ("make ahead",), ("make ahead",)),
    AugmentRule("constraints", ("one pot",), ("one pot",)),
    # Fitness
    AugmentRule("fitness_context", ("pre workout",), ("pre workout", "energy")),
    AugmentRule("fitness_context", ("post workout", "recovery"), ("post workout", "protein", "recovery")),
    # Household
    AugmentRule("household.texture", ("smooth", "creamy"), ("smooth", "creamy")),
    AugmentRule("household.spice_level", ("mild", "no spice"), ("mild",)),
    # Time and season
    AugmentRule("occasion", ("holiday",), ("holiday", "festive")),
    AugmentRule("season", ("summer",), ("refreshing", "frozen")),
    AugmentRule("season", ("winter", "fall", "autumn"), ("warming", "hearty")),
    # Storage and budget
    AugmentRule("storage", ("freezer",), ("freezer friendly",)),
    AugmentRule("storage", ("meal prep",), ("meal prep",)),
    AugmentRule("budget", ("budget", "cheap"), ("budget friendly", "affordable")),
)


def augmentation_tokens(
    user_context: Optional[UserContext],
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> list[str]:
    if user_context is None:
        return []

    tokens: list[str] = []
    for rule in AUGMENT_RULES:
        tags = [normalize_tag(t) for t in user_context.tags(rule.path)]
        if not any(trigger in tag for tag in tags for trigger in rule.triggers):
            continue
        for token in rule.tokens:
            if token not in tokens:
                tokens.append(token)
    return tokens[:max_tokens]


def augment(
    base_query: str,
    user_context: Optional[UserContext],
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> str:
    """Return ``base_query`` with up to ``max_tokens`` context phrases appended."""
    tokens = augmentation_tokens(user_context, max_tokens)
    if not tokens:
        return base_query
    return f"{base_query} {' '.join(tokens)}"
