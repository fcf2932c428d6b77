"""Request inputs: the caller's user context and the upstream intent classification.

Both arrive as JSON from outside the engine, so they are pydantic models that
accept the camelCase wire names (``mustUse``, ``fitnessContext``, ``intentType``)
as well as the snake_case attribute names.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

IntentType = Literal["product_info", "recipe", "comparison", "support", "general"]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class DietaryContext(_WireModel):
    avoid: list[str] = Field(default_factory=list)
    preferences: list[str] = Field(default_factory=list)


class HealthContext(_WireModel):
    conditions: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    considerations: list[str] = Field(default_factory=list)


class HouseholdContext(_WireModel):
    picky_eaters: list[str] = Field(default_factory=list)
    texture: list[str] = Field(default_factory=list)
    spice_level: list[str] = Field(default_factory=list)
    portions: list[str] = Field(default_factory=list)


class CookingContext(_WireModel):
    equipment: list[str] = Field(default_factory=list)
    skill_level: list[str] = Field(default_factory=list)
    kitchen: list[str] = Field(default_factory=list)


class CulturalContext(_WireModel):
    cuisine: list[str] = Field(default_factory=list)
    religious: list[str] = Field(default_factory=list)
    regional: list[str] = Field(default_factory=list)


class UserContext(_WireModel):
    """Personalisation signals extracted from the query.

    Every leaf is a list of free-text tags that defaults to empty, so an
    absent section and an empty one read the same way.
    """

    dietary: DietaryContext = Field(default_factory=DietaryContext)
    health: HealthContext = Field(default_factory=HealthContext)
    audience: list[str] = Field(default_factory=list)
    household: HouseholdContext = Field(default_factory=HouseholdContext)
    cooking: CookingContext = Field(default_factory=CookingContext)
    cultural: CulturalContext = Field(default_factory=CulturalContext)
    occasion: list[str] = Field(default_factory=list)
    season: list[str] = Field(default_factory=list)
    lifestyle: list[str] = Field(default_factory=list)
    fitness_context: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    budget: list[str] = Field(default_factory=list)
    shopping: list[str] = Field(default_factory=list)
    storage: list[str] = Field(default_factory=list)
    available: list[str] = Field(default_factory=list)
    must_use: list[str] = Field(default_factory=list)

    def tags(self, path: str) -> list[str]:
        """Return the tag list at a dotted path, e.g. ``"health.conditions"``.

        Raises AttributeError for paths that are not part of the model.
        """
        node: object = self
        for part in path.split("."):
            node = getattr(node, part)
        if not isinstance(node, list):
            raise AttributeError(f"{path} is a section, not a tag list")
        return node

    @property
    def has_dietary_filters(self) -> bool:
        return bool(self.dietary.avoid or self.dietary.preferences)


class IntentEntities(_WireModel):
    products: list[str] = Field(default_factory=list)
    ingredients: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    user_context: Optional[UserContext] = None


class IntentClassification(_WireModel):
    """Output of the upstream intent classifier."""

    intent_type: IntentType = "general"
    confidence: float = 0.0
    layout_id: str = ""
    content_types: list[str] = Field(default_factory=list)
    entities: IntentEntities = Field(default_factory=IntentEntities)
