"""Tests for the multi-stage scoring pipeline."""
from datetime import timedelta
import pytest
from src.contextengine.retrieval.intent import UserContext
from src.contextengine.retrieval.models import PlanFilters, RetrievalPlan
from src.contextengine.retrieval.scoring import (
    ScoringPipeline,
    boost_multiplier,
    conflict_terms,
    freshness_multiplier,
    ingredient_terms,
    penalize_conflicts,
)
from src.contextengine.settings import RetrievalConfig
from tests.utils import NOW, make_chunk


def _plan(threshold=0.6, boost_terms=()):
    return RetrievalPlan(
        strategy="filtered",
        semantic_query="q",
        top_k=20,
        relevance_threshold=threshold,
        filters=PlanFilters(),
        dedupe_mode="by-url",
        max_results=8,
        boost_terms=tuple(boost_terms),
    )


class TestMultipliers:
    def test_freshness_undated_is_neutral(self):
        assert freshness_multiplier(None, NOW) == 1.0

    def test_freshness_decays_to_floor(self):
        assert freshness_multiplier(NOW, NOW) == 1.0
        assert freshness_multiplier(NOW - timedelta(days=60), NOW) == pytest.approx(0.9)
        assert freshness_multiplier(NOW - timedelta(days=3000), NOW) == pytest.approx(0.85)

    def test_freshness_future_date_is_neutral(self):
        assert freshness_multiplier(NOW + timedelta(days=5), NOW) == 1.0

    def test_boost_is_capped(self):
        assert boost_multiplier(1) == pytest.approx(1.15)
        assert boost_multiplier(4) == pytest.approx(1.6)
        assert boost_multiplier(10) == pytest.approx(1.6)


class TestScoringPipeline:
    def test_threshold_drops_low_scores(self):
        chunks = [make_chunk("a", 0.9), make_chunk("b", 0.6), make_chunk("c", 0.59)]
        result = ScoringPipeline().score(chunks, _plan(0.6), UserContext(), now=NOW)
        assert [c.id for c in result] == ["a", "b"]

    def test_boost_never_rescues_sub_threshold_chunk(self):
        chunks = [make_chunk("a", 0.5, "kale kale kale")]
        assert ScoringPipeline().score(chunks, _plan(0.6, ["kale"]), UserContext(), now=NOW) == []

    def test_plan_boost_reranks(self):
        chunks = [make_chunk("plain", 0.8, "banana smoothie"), make_chunk("kale", 0.75, "kale smoothie")]
        result = ScoringPipeline().score(chunks, _plan(boost_terms=["kale"]), UserContext(), now=NOW)
        assert [c.id for c in result] == ["kale", "plain"]
        assert result[0].score == pytest.approx(0.75 * 1.15)

    def test_ingredient_boost_matches_singular_phrase(self):
        uc = UserContext(must_use=["ripe-bananas"])
        chunks = [make_chunk("other", 0.8, "apple pie"), make_chunk("banana", 0.78, "one ripe banana, mashed")]
        result = ScoringPipeline().score(chunks, _plan(), uc, now=NOW)
        assert result[0].id == "banana"

    def test_generic_head_noun_does_not_boost(self):
        chunks = [
            make_chunk("thai", 0.8, "thai street food noodle soup"),
            make_chunk("tomato", 0.8, "tomato basil soup"),
        ]
        cuisine = ScoringPipeline().score(chunks, _plan(), UserContext(cultural={"cuisine": ["italian food"]}), now=NOW)
        assert {c.id: c.score for c in cuisine} == {"thai": 0.8, "tomato": 0.8}

        latte = [make_chunk("latte", 0.8, "whole milk latte")]
        available = ScoringPipeline().score(latte, _plan(), UserContext(available=["almond milk"]), now=NOW)
        assert available[0].score == 0.8

    def test_ingredient_terms_must_use_first(self):
        uc = UserContext(available=["spinach", "kale"], must_use=["kale"])
        assert ingredient_terms(uc) == ["kale", "spinach"]

    def test_cuisine_boost(self):
        uc = UserContext(cultural={"cuisine": ["thai"]})
        chunks = [make_chunk("a", 0.8, "classic tomato soup"), make_chunk("b", 0.75, "thai coconut soup")]
        result = ScoringPipeline().score(chunks, _plan(), uc, now=NOW)
        assert result[0].id == "b"

    def test_quick_constraint_penalizes_exactly_once(self):
        uc = UserContext(constraints=["quick"])
        chunks = [
            make_chunk("slow", 0.8, "slow cooker overnight oats"),
            make_chunk("fast", 0.8, "five minute oats"),
        ]
        result = ScoringPipeline().score(chunks, _plan(), uc, now=NOW)
        by_id = {c.id: c.score for c in result}
        assert by_id["slow"] == pytest.approx(0.7 * by_id["fast"])
        assert [c.id for c in result] == ["fast", "slow"]

    def test_unknown_constraint_has_no_conflicts(self):
        assert conflict_terms(UserContext(constraints=["fancy"])) == []

    def test_penalize_without_terms_is_identity(self):
        chunks = [make_chunk("a", 0.8)]
        assert penalize_conflicts(chunks, []) == chunks

    def test_stale_content_ranks_below_fresh(self):
        chunks = [
            make_chunk("old", 0.8, indexed_at=NOW - timedelta(days=600)),
            make_chunk("new", 0.75, indexed_at=NOW),
        ]
        result = ScoringPipeline().score(chunks, _plan(), UserContext(), now=NOW)
        assert [c.id for c in result] == ["new", "old"]
        assert result[1].score == pytest.approx(0.8 * 0.85)

    def test_output_sorted_and_inputs_untouched(self):
        chunks = [make_chunk("a", 0.7, "kale"), make_chunk("b", 0.9)]
        result = ScoringPipeline(RetrievalConfig(boost_per_term=0.5)).score(
            chunks, _plan(boost_terms=["kale"]), UserContext(), now=NOW
        )
        assert [c.score for c in result] == sorted((c.score for c in result), reverse=True)
        assert chunks[0].score == 0.7
