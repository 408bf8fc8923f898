"""Unit tests for ingredient normalization, matching and the knowledge base."""

import pytest

from app.services.ingredient_matcher import IngredientMatcher
from app.services.knowledge_base import ConditionKnowledgeBase
from app.utils.helpers import build_ingredient_set, normalize_ingredient


class TestNormalizeIngredient:
    """Tests for normalize_ingredient."""

    @pytest.mark.parametrize("raw,expected", [
        ("  Aqua (Water) ", "aqua water"),
        ("Zinc   PCA", "zinc pca"),
        ("[Niacinamide]", "niacinamide"),
        ("Alcohol Denat.", "alcohol denat."),
        ("", ""),
    ])
    def test_normalizes(self, raw, expected):
        """Should lowercase, drop brackets and collapse whitespace."""
        assert normalize_ingredient(raw) == expected

    @pytest.mark.parametrize("raw", ["( Glycerin )", " Aqua (Water)\t", "Sodium  [Hyaluronate]"])
    def test_idempotent(self, raw):
        """Should give the same token when applied twice."""
        once = normalize_ingredient(raw)
        assert normalize_ingredient(once) == once


class TestBuildIngredientSet:
    """Tests for build_ingredient_set."""

    def test_splits_and_dedupes_in_listed_order(self):
        """Should split on separators and keep the first position of repeats."""
        ingredient_set = build_ingredient_set("Aqua; Glycerin,\nNiacinamide, glycerin, , ")
        assert ingredient_set.ordered == ("aqua", "glycerin", "niacinamide")
        assert len(ingredient_set) == 3
        assert "glycerin" in ingredient_set

    def test_empty_sources(self):
        """Should return an empty set for None and blank text."""
        assert len(build_ingredient_set(None)) == 0
        assert len(build_ingredient_set("")) == 0
        assert len(build_ingredient_set(" , ; ")) == 0

    def test_accepts_lists(self):
        """Should treat each list item as one ingredient."""
        ingredient_set = build_ingredient_set(["Zinc PCA", "Aqua (Water)"])
        assert ingredient_set.ordered == ("zinc pca", "aqua water")

    def test_leading(self):
        """Should return the first listed tokens."""
        ingredient_set = build_ingredient_set("a1, b2, c3")
        assert ingredient_set.leading(2) == ("a1", "b2")


class TestIngredientMatcher:
    """Tests for IngredientMatcher."""

    @pytest.fixture
    def matcher(self):
        return IngredientMatcher()

    def test_exact_match(self, matcher):
        """Should match a normalized target equal to a token."""
        assert matcher.has_ingredient(build_ingredient_set("Niacinamide, Aqua"), "Niacinamide")

    def test_whole_word_match_inside_token(self, matcher):
        """Should find a target bounded by non-word characters in a longer token."""
        ingredient_set = build_ingredient_set("Stearyl Alcohol, Zinc PCA")
        assert matcher.has_ingredient(ingredient_set, "alcohol")
        assert matcher.has_ingredient(ingredient_set, "zinc")

    def test_no_partial_word_match(self, matcher):
        """Should not match a target that is only part of a word."""
        ingredient_set = build_ingredient_set("Zincite, Glyceryl Stearate")
        assert not matcher.has_ingredient(ingredient_set, "zinc")
        assert not matcher.has_ingredient(ingredient_set, "glycerin")

    def test_target_ending_in_punctuation(self, matcher):
        """Should match targets like 'alcohol denat.' inside a longer token."""
        ingredient_set = build_ingredient_set("SD Alcohol Denat. 40-B, Aqua")
        assert matcher.has_ingredient(ingredient_set, "alcohol denat.")

    def test_regex_characters_are_literal(self, matcher):
        """Should escape targets such as 'caprylic/capric triglyceride'."""
        ingredient_set = build_ingredient_set("Caprylic/Capric Triglyceride, Aqua")
        assert matcher.has_ingredient(ingredient_set, "caprylic/capric triglyceride")
        assert not matcher.has_ingredient(build_ingredient_set("Ceteareth-60"), "ceteareth-6")

    def test_empty_inputs(self, matcher):
        """Should never match an empty target or an empty set."""
        assert not matcher.has_ingredient(build_ingredient_set("Aqua"), "  ")
        assert not matcher.has_ingredient(build_ingredient_set(None), "aqua")

    def test_counts_calls(self, matcher):
        """Should count every has_ingredient call."""
        ingredient_set = build_ingredient_set("Aqua")
        matcher.has_ingredient(ingredient_set, "aqua")
        matcher.has_ingredient(ingredient_set, "zinc")
        assert matcher.call_count == 2

    def test_appears_in_leading(self, matcher):
        """Should use substring containment over the leading window only."""
        ingredient_set = build_ingredient_set("Aqua, Zinc PCA, Glycerin, Panthenol, Allantoin, Niacinamide")
        assert matcher.appears_in_leading(ingredient_set, "zinc", 5)
        assert not matcher.appears_in_leading(ingredient_set, "niacinamide", 5)


class TestConditionKnowledgeBase:
    """Tests for ConditionKnowledgeBase."""

    def test_known_condition(self, knowledge_base):
        """Should expose beneficial and avoid lists for a supported condition."""
        assert "niacinamide" in knowledge_base.beneficial_of("acne")
        assert "dimethicone" in knowledge_base.avoid_of("acne")
        assert "acne" in knowledge_base
        assert len(knowledge_base.conditions) == 9

    def test_unknown_condition_is_empty(self, knowledge_base):
        """Should return empty results instead of failing."""
        assert knowledge_base.beneficial_of("freckles") == ()
        assert knowledge_base.avoid_of("freckles") == ()
        assert "freckles" not in knowledge_base

    def test_warms_matcher(self, matcher, knowledge_base):
        """Should precompile one pattern per distinct ingredient."""
        assert matcher.pattern_count == len(knowledge_base.all_ingredients())

    def test_relevant_categories(self, knowledge_base):
        """Should merge categories without repeats, ignoring unknown conditions."""
        categories = knowledge_base.relevant_categories(["acne", "oily", "freckles"])
        assert categories == ["acne treatment", "spot treatment", "cleanser", "toner", "oil control", "mattifying"]

    def test_custom_database(self):
        """Should accept an injected database."""
        kb = ConditionKnowledgeBase(database={"test": {"beneficial": ["aqua"], "avoid": []}}, categories={})
        assert kb.conditions == ("test",)
        assert kb.relevant_categories(["test"]) == []
