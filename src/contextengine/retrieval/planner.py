"""Retrieval strategy planner.

Different query shapes need different retrieval settings:
- Catalog browsing: fetch wide, one result per product
- Comparison: comprehensive product data
- Ingredient search: semantic + boost chunks mentioning the ingredients
- Recipe / support / single product: semantic with tuned thresholds
- Everything else: plain semantic similarity

Rules are evaluated in order and the first match wins. Category keywords are
folded into the semantic query instead of being used as metadata filters,
because category fields are not reliably populated in the index.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional

from .intent import IntentClassification
from .models import PlanFilters, RetrievalPlan

DEFAULT_BRAND = "vitamix"

COMMON_INGREDIENTS: tuple[str, ...] = (
    # Fruits
    "banana", "apple", "orange", "mango", "pineapple", "strawberry", "blueberry",
    "raspberry", "blackberry", "peach", "pear", "grape", "watermelon", "lemon",
    "lime", "avocado", "coconut", "cherry", "kiwi", "papaya", "acai", "date",
    # Vegetables
    "spinach", "kale", "carrot", "celery", "cucumber", "tomato", "beet", "ginger",
    "garlic", "onion", "pepper", "broccoli", "cauliflower", "zucchini", "squash",
    "sweet potato", "potato", "pumpkin", "corn",
    # Proteins & dairy
    "milk", "yogurt", "protein", "almond milk", "oat milk", "soy milk", "cheese",
    "cream", "butter", "egg", "chicken", "tofu",
    # Nuts & seeds
    "almond", "cashew", "walnut", "peanut", "chia", "flax", "hemp", "sunflower",
    # Other
    "oat", "honey", "maple", "chocolate", "cocoa", "coffee", "matcha", "vanilla",
    "cinnamon", "turmeric", "ice",
)

PRODUCT_CATEGORIES: dict[str, str] = {
    "blender": "blender",
    "blenders": "blender",
    "mixer": "blender",
    "container": "container",
    "containers": "container",
    "accessory": "accessory",
    "accessories": "accessory",
    "attachment": "accessory",
    "attachments": "accessory",
    "blade": "accessory",
    "blades": "accessory",
    "cup": "container",
    "cups": "container",
    "bowl": "container",
    "bowls": "container",
}

RECIPE_CATEGORIES: dict[str, str] = {
    "smoothie": "smoothie",
    "smoothies": "smoothie",
    "shake": "smoothie",
    "shakes": "smoothie",
    "soup": "soup",
    "soups": "soup",
    "sauce": "sauce",
    "sauces": "sauce",
    "dip": "dip",
    "dips": "dip",
    "dessert": "dessert",
    "desserts": "dessert",
    "ice cream": "dessert",
    "sorbet": "dessert",
    "breakfast": "breakfast",
    "baby": "baby food",
    "baby food": "baby food",
    "juice": "juice",
    "juices": "juice",
    "cocktail": "cocktail",
    "cocktails": "cocktail",
    "drink": "drink",
    "drinks": "drink",
    "butter": "nut butter",
    "nut butter": "nut butter",
    "peanut butter": "nut butter",
    "almond butter": "nut butter",
    "dough": "dough",
    "batter": "batter",
    "flour": "flour",
    "hummus": "dip",
    "pesto": "sauce",
    "salsa": "sauce",
    "puree": "puree",
}

SUPPORT_EXPANSIONS: dict[str, str] = {
    "noise": "grinding noise loud sound troubleshooting",
    "leak": "leaking dripping seal gasket troubleshooting",
    "won't turn on": "not turning on power issue troubleshooting",
    "doesn't start": "not starting power issue troubleshooting",
    "smoke": "smoking burning smell overheating troubleshooting",
    "smell": "burning smell odor troubleshooting",
    "stuck": "stuck jammed blade troubleshooting",
    "clean": "cleaning maintenance wash care",
    "warranty": "warranty coverage repair service",
}

QUERY_SYNONYMS: dict[str, tuple[str, ...]] = {
    "blender": ("blenders", "vitamix", "mixer"),
    "smoothie": ("smoothies", "shake", "blend", "drink"),
    "soup": ("soups", "hot soup", "blended soup"),
    "recipe": ("recipes", "how to make", "instructions"),
    "clean": ("cleaning", "wash", "maintenance"),
    "noise": ("noisy", "loud", "sound", "grinding"),
}

_CATALOG_PATTERNS = [
    re.compile(r"\ball\b\s+(?:the\s+)?(?:vitamix\s+)?(blenders?|products?|models?|containers?|accessories)"),
    re.compile(r"show\s+(?:me\s+)?(?:all\s+)?(?:the\s+)?(?:vitamix\s+)?(blenders?|products?|models?)"),
    re.compile(r"list\s+(?:of\s+)?(?:all\s+)?(?:vitamix\s+)?(blenders?|products?|models?)"),
    re.compile(r"what\s+(blenders?|products?|models?|options?)\s+(?:do\s+you\s+have|are\s+available)"),
    re.compile(r"(?:vitamix\s+)?(blenders?|products?)\s+(?:you\s+have|available|lineup|range|selection)"),
    re.compile(r"browse\s+(?:all\s+)?(?:vitamix\s+)?(blenders?|products?)"),
    re.compile(r"see\s+all\s+(blenders?|products?|models?)"),
]

_COMPARISON_PATTERNS = [
    re.compile(r"best\s+(?:vitamix\s+)?(?:blender\s+)?(?:for\s+me|for\s+my)"),
    re.compile(r"which\s+(?:vitamix\s+)?(?:blender\s+)?(?:should|would|do\s+you)"),
    re.compile(r"help\s+me\s+(?:choose|pick|decide|select)"),
    re.compile(r"recommend\s+(?:a\s+)?(?:vitamix|blender)"),
    re.compile(r"what\s+(?:vitamix|blender)\s+(?:should\s+i|do\s+you\s+recommend)"),
    re.compile(r"compare\s+(?:vitamix\s+)?(?:blenders?|models?|all)"),
    re.compile(r"difference\s+between"),
    re.compile(r"\bvs\.?\s+|\bversus\b"),
]

# Scoped patterns tried before the unscoped vocabulary scan
_INGREDIENT_PATTERNS = [
    re.compile(r"\b(?:with|using|containing|has|have)\s+([\w\s,]+?)(?:\s+recipes?|\s+smoothies?|\s+ideas?|$)"),
    re.compile(r"recipes?\s+(?:with|for|using)\s+([\w\s,]+)"),
    re.compile(r"([\w\s,]+?)\s+(?:recipes?|smoothies?|ideas?)"),
]
_INGREDIENT_SEPARATORS = re.compile(r"[,\s]+and\s+|,\s*|\s+and\s+")

CATALOG_LAYOUT = "category-browse"


def normalize_query(query: str) -> str:
    return query.strip().lower()


def _first_category(query: str, table: dict[str, str]) -> Optional[str]:
    for term, category in table.items():
        if term in query:
            return category
    return None


def extract_product_category(query: str) -> Optional[str]:
    return _first_category(normalize_query(query), PRODUCT_CATEGORIES)


def extract_recipe_category(query: str) -> Optional[str]:
    return _first_category(normalize_query(query), RECIPE_CATEGORIES)


def extract_ingredients(query: str, hints: Optional[list[str]] = None) -> list[str]:
    """Find known ingredients in a query.

    Scoped phrases ("with kale", "banana recipes") are tried first; if they
    yield nothing the whole query is scanned for vocabulary substrings.
    ``hints`` (classifier-extracted ingredients) are only consulted when the
    query itself names none.
    """
    text = normalize_query(query)
    found: list[str] = []

    for pattern in _INGREDIENT_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        for part in _INGREDIENT_SEPARATORS.split(match.group(1)):
            candidate = part.strip()
            if candidate in COMMON_INGREDIENTS:
                found.append(candidate)

    if not found:
        found = [ingredient for ingredient in COMMON_INGREDIENTS if ingredient in text]

    if not found and hints:
        found = [h.strip().lower() for h in hints if h.strip().lower() in COMMON_INGREDIENTS]

    return list(dict.fromkeys(found))


def expand_support_query(query: str) -> str:
    lowered = query.lower()
    for term, expansion in SUPPORT_EXPANSIONS.items():
        if term in lowered:
            return f"{query} {expansion}"
    return query


def expand_query(query: str) -> str:
    """Append one synonym for the first recognised keyword."""
    lowered = query.lower()
    for term, synonyms in QUERY_SYNONYMS.items():
        if term in lowered:
            synonym = synonyms[0]
            if synonym not in lowered:
                return f"{query} {synonym}"
            return query
    return query


def is_catalog_query(query: str, intent: IntentClassification) -> bool:
    if any(p.search(query) for p in _CATALOG_PATTERNS):
        return True
    return intent.layout_id == CATALOG_LAYOUT and not intent.entities.products


def is_comparison_query(query: str, intent: IntentClassification) -> bool:
    if any(p.search(query) for p in _COMPARISON_PATTERNS):
        return True
    return intent.intent_type == "comparison"


@dataclass(frozen=True)
class QueryAnalysis:
    """Everything the rules need, computed once per query."""
    query: str
    intent: IntentClassification
    ingredients: tuple[str, ...]


class PlanRule(NamedTuple):
    name: str
    matches: Callable[[QueryAnalysis], bool]
    build: Callable[[QueryAnalysis], RetrievalPlan]


class StrategyPlanner:
    """Maps (query, intent) to a RetrievalPlan via an ordered rule table."""

    def __init__(self, brand: str = DEFAULT_BRAND) -> None:
        self.brand = brand
        self.rules: list[PlanRule] = [
            PlanRule("catalog", lambda a: is_catalog_query(a.query, a.intent), self._catalog_plan),
            PlanRule("comparison", lambda a: is_comparison_query(a.query, a.intent), self._comparison_plan),
            PlanRule(
                "ingredient",
                lambda a: bool(a.ingredients) and a.intent.intent_type == "recipe",
                self._ingredient_plan,
            ),
            PlanRule("recipe", lambda a: a.intent.intent_type == "recipe", self._recipe_plan),
            PlanRule("support", lambda a: a.intent.intent_type == "support", self._support_plan),
            PlanRule(
                "single-product",
                lambda a: a.intent.intent_type == "product_info" and len(a.intent.entities.products) == 1,
                self._single_product_plan,
            ),
            PlanRule("default", lambda a: True, self._default_plan),
        ]

    def analyze(self, query: str, intent: IntentClassification) -> QueryAnalysis:
        normalized = normalize_query(query)
        return QueryAnalysis(
            query=normalized,
            intent=intent,
            ingredients=tuple(extract_ingredients(normalized, intent.entities.ingredients)),
        )

    def match_rule(self, analysis: QueryAnalysis) -> PlanRule:
        for rule in self.rules:
            if rule.matches(analysis):
                return rule
        raise LookupError("no retrieval rule matched")  # unreachable: default rule always matches

    def plan(self, query: str, intent: IntentClassification) -> RetrievalPlan:
        analysis = self.analyze(query, intent)
        return self.match_rule(analysis).build(analysis)

    # -- plan builders ---------------------------------------------------

    def _catalog_plan(self, a: QueryAnalysis) -> RetrievalPlan:
        category = extract_product_category(a.query)
        return RetrievalPlan(
            strategy="catalog",
            semantic_query=f"{self.brand} {category or 'blender'} products models",
            top_k=50,
            relevance_threshold=0.5,
            filters=PlanFilters(content_types=frozenset({"product"})),
            dedupe_mode="by-sku",
            max_results=12,
            reasoning=(
                f'Catalog query detected. Semantic search for "{category or "blender"}" '
                "products, deduping by SKU."
            ),
        )

    def _comparison_plan(self, a: QueryAnalysis) -> RetrievalPlan:
        return RetrievalPlan(
            strategy="comprehensive",
            semantic_query=self._comparison_query(a.intent),
            top_k=30,
            relevance_threshold=0.5,
            filters=PlanFilters(content_types=frozenset({"product"})),
            dedupe_mode="by-sku",
            max_results=10,
            reasoning="Comparison query detected. Getting comprehensive product data for comparison.",
        )

    def _comparison_query(self, intent: IntentClassification) -> str:
        products = intent.entities.products
        goals = intent.entities.goals
        if len(products) >= 2:
            return f"compare {' vs '.join(products)} {self.brand} blender features specifications"
        if goals:
            return f"best {self.brand} blender for {' '.join(goals)}"
        return f"{self.brand} blender comparison features specifications models"

    def _ingredient_plan(self, a: QueryAnalysis) -> RetrievalPlan:
        category = extract_recipe_category(a.query)
        suffix = f" {category}" if category else ""
        return RetrievalPlan(
            strategy="ingredient",
            semantic_query=f"{self.brand} recipes with {' and '.join(a.ingredients)}{suffix}",
            top_k=25,
            relevance_threshold=0.55,
            filters=PlanFilters(content_types=frozenset({"recipe"}), recipe_category=category),
            dedupe_mode="by-url",
            max_results=8,
            boost_terms=a.ingredients,
            reasoning=(
                f"Ingredient query detected. Searching for recipes with: {', '.join(a.ingredients)}. "
                "Will boost results containing these ingredients."
            ),
        )

    def _recipe_plan(self, a: QueryAnalysis) -> RetrievalPlan:
        category = extract_recipe_category(a.query)
        return RetrievalPlan(
            strategy="filtered",
            semantic_query=f"{self.brand} {category} recipes {a.query}" if category else a.query,
            top_k=20,
            relevance_threshold=0.6,
            filters=PlanFilters(content_types=frozenset({"recipe"}), recipe_category=category),
            dedupe_mode="by-url",
            max_results=8,
            reasoning=f'Recipe query with semantic search for "{category or "recipes"}".',
        )

    def _support_plan(self, a: QueryAnalysis) -> RetrievalPlan:
        return RetrievalPlan(
            strategy="filtered",
            semantic_query=expand_support_query(a.query),
            top_k=15,
            relevance_threshold=0.65,
            filters=PlanFilters(content_types=frozenset({"support", "product"})),
            dedupe_mode="by-url",
            max_results=6,
            reasoning="Support query. Searching support docs and product info.",
        )

    def _single_product_plan(self, a: QueryAnalysis) -> RetrievalPlan:
        product = a.intent.entities.products[0]
        return RetrievalPlan(
            strategy="filtered",
            semantic_query=f"{product} {self.brand} blender features specifications",
            top_k=15,
            relevance_threshold=0.6,
            filters=PlanFilters(content_types=frozenset({"product"})),
            dedupe_mode="similarity",
            max_results=5,
            reasoning=f'Single product query for "{product}".',
        )

    def _default_plan(self, a: QueryAnalysis) -> RetrievalPlan:
        return RetrievalPlan(
            strategy="semantic",
            semantic_query=expand_query(a.query),
            top_k=10,
            relevance_threshold=0.7,
            filters=PlanFilters(content_types=frozenset(a.intent.content_types)),
            dedupe_mode="similarity",
            max_results=5,
            reasoning="Default semantic search.",
        )


_default_planner = StrategyPlanner()


def plan_retrieval(query: str, intent: IntentClassification) -> RetrievalPlan:
    """Plan with the default brand vocabulary."""
    return _default_planner.plan(query, intent)
