"""Tests for the retrieval strategy planner."""
import pytest
from src.contextengine.retrieval.intent import IntentClassification, IntentEntities
from src.contextengine.retrieval.planner import (
    StrategyPlanner,
    expand_query,
    expand_support_query,
    extract_ingredients,
    extract_product_category,
    extract_recipe_category,
    plan_retrieval,
)


def _intent(intent_type="general", products=None, layout="", goals=None, ingredients=None, content_types=None):
    return IntentClassification(
        intent_type=intent_type,
        layout_id=layout,
        content_types=content_types or [],
        entities=IntentEntities(
            products=products or [],
            goals=goals or [],
            ingredients=ingredients or [],
        ),
    )


class TestCatalogStrategy:
    def test_all_blenders_is_catalog(self):
        plan = plan_retrieval("all blenders", _intent())
        assert plan.strategy == "catalog"
        assert plan.dedupe_mode == "by-sku"
        assert "blender" in plan.semantic_query
        assert plan.top_k == 50
        assert plan.max_results == 12
        assert plan.relevance_threshold == 0.5

    def test_show_me_products(self):
        assert plan_retrieval("Show me all the Vitamix products", _intent()).strategy == "catalog"

    def test_category_browse_layout_without_products(self):
        plan = plan_retrieval("what do you sell", _intent(layout="category-browse"))
        assert plan.strategy == "catalog"

    def test_category_browse_layout_with_product_is_not_catalog(self):
        plan = plan_retrieval("tell me about it", _intent(layout="category-browse", products=["A3500"]))
        assert plan.strategy != "catalog"

    def test_catalog_uses_detected_category(self):
        plan = plan_retrieval("all containers", _intent())
        assert plan.semantic_query == "vitamix container products models"


class TestComparisonStrategy:
    def test_versus_query(self):
        plan = plan_retrieval("A3500 vs E310", _intent(products=["A3500", "E310"]))
        assert plan.strategy == "comprehensive"
        assert plan.semantic_query.startswith("compare A3500 vs E310")
        assert plan.dedupe_mode == "by-sku"
        assert plan.max_results == 10

    def test_comparison_intent_with_goals(self):
        plan = plan_retrieval("something good", _intent("comparison", goals=["smoothies", "soups"]))
        assert plan.semantic_query == "best vitamix blender for smoothies soups"

    def test_comparison_without_products_or_goals(self):
        plan = plan_retrieval("help me choose", _intent())
        assert plan.strategy == "comprehensive"
        assert "comparison" in plan.semantic_query

    def test_catalog_wins_over_comparison(self):
        plan = plan_retrieval("compare all blenders", _intent("comparison"))
        assert plan.strategy == "catalog"


class TestIngredientAndRecipeStrategy:
    def test_kale_smoothie_boosts_kale(self):
        plan = plan_retrieval("green smoothie recipes with kale", _intent("recipe", ingredients=["kale"]))
        assert plan.strategy == "ingredient"
        assert plan.boost_terms == ("kale",)
        assert plan.dedupe_mode == "by-url"
        assert plan.top_k == 25
        assert plan.relevance_threshold == 0.55
        assert "kale" in plan.semantic_query
        assert plan.semantic_query.endswith(" smoothie")

    def test_multiple_ingredients_joined(self):
        plan = plan_retrieval("recipes with banana and spinach", _intent("recipe"))
        assert plan.boost_terms == ("banana", "spinach")
        assert "banana and spinach" in plan.semantic_query

    def test_entity_ingredients_used_when_query_names_none(self):
        plan = plan_retrieval("something tasty", _intent("recipe", ingredients=["Mango"]))
        assert plan.strategy == "ingredient"
        assert plan.boost_terms == ("mango",)

    def test_recipe_without_ingredients_is_filtered(self):
        plan = plan_retrieval("soup recipes", _intent("recipe"))
        assert plan.strategy == "filtered"
        assert plan.semantic_query == "vitamix soup recipes soup recipes"
        assert plan.relevance_threshold == 0.6
        assert plan.filters.recipe_category == "soup"

    def test_ingredients_ignored_for_non_recipe_intent(self):
        plan = plan_retrieval("banana bread", _intent("general"))
        assert plan.strategy == "semantic"


class TestOtherStrategies:
    def test_support_expands_query(self):
        plan = plan_retrieval("my blender makes a loud noise", _intent("support"))
        assert plan.strategy == "filtered"
        assert "troubleshooting" in plan.semantic_query
        assert plan.relevance_threshold == 0.65
        assert plan.max_results == 6
        assert plan.filters.content_types == frozenset({"support", "product"})

    def test_single_product(self):
        plan = plan_retrieval("tell me about it", _intent("product_info", products=["A3500"]))
        assert plan.semantic_query == "A3500 vitamix blender features specifications"
        assert plan.dedupe_mode == "similarity"
        assert plan.max_results == 5

    def test_default_semantic(self):
        plan = plan_retrieval("healthy smoothie", _intent(content_types=["recipe"]))
        assert plan.strategy == "semantic"
        assert plan.relevance_threshold == 0.7
        assert plan.semantic_query == "healthy smoothie smoothies"
        assert plan.filters.content_types == frozenset({"recipe"})

    def test_custom_brand(self):
        plan = StrategyPlanner(brand="acme").plan("all blenders", _intent())
        assert plan.semantic_query.startswith("acme ")

    def test_every_plan_has_reasoning(self):
        for query, intent in [
            ("all blenders", _intent()),
            ("help me choose", _intent()),
            ("kale smoothie", _intent("recipe")),
            ("soup recipes", _intent("recipe")),
            ("leak", _intent("support")),
            ("hello", _intent()),
        ]:
            assert plan_retrieval(query, intent).reasoning


class TestVocabularyHelpers:
    def test_extract_ingredients_scoped(self):
        assert extract_ingredients("smoothie with mango, kale and banana") == ["mango", "kale", "banana"]

    def test_extract_ingredients_unscoped_scan(self):
        assert "spinach" in extract_ingredients("a spinach drink")

    def test_extract_ingredients_empty(self):
        assert extract_ingredients("how do I clean it") == []

    def test_categories(self):
        assert extract_product_category("best containers") == "container"
        assert extract_recipe_category("Frozen Desserts") == "dessert"
        assert extract_recipe_category("nothing here") is None

    def test_expand_query_skips_present_synonym(self):
        assert expand_query("smoothies please") == "smoothies please"
        assert expand_query("blender") == "blender blenders"

    def test_support_expansion_passthrough(self):
        assert expand_support_query("hello") == "hello"

    @pytest.mark.parametrize("query", ["A vs B", "a versus b", "difference between x and y"])
    def test_comparison_patterns(self, query):
        assert plan_retrieval(query, _intent()).strategy == "comprehensive"
