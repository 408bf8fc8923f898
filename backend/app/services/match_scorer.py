"""
Rule-based product match scoring engine.

Scores how well a product suits a set of skin conditions using the
condition knowledge base and the product's ingredient list. The rule is
purely additive per condition, so the result does not depend on the
order conditions are given in:

- +12 per beneficial ingredient present
- +5 more when that ingredient is among the first 5 listed
- -25 per ingredient to avoid present
- +8 when the product name mentions the condition
- +15 when the product description mentions the condition

Products listing more than 10 distinct ingredients get a x1.1 quality
multiplier. The total is clamped to 0-100 and only then rounded.

Scores are cached per (product id, condition set). A live cached score
is returned as is, even if the catalog entry holding the product has
been refreshed in the meantime.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from app.models.product import Product
from app.services.cache_service import CacheService, score_cache_key
from app.services.ingredient_matcher import IngredientMatcher
from app.services.knowledge_base import ConditionKnowledgeBase
from app.utils.constants import (
    CONCENTRATION_WINDOW,
    MAX_MATCH_SCORE,
    QUALITY_INGREDIENT_THRESHOLD,
    QUALITY_MULTIPLIER,
    SCORE_WEIGHTS
)
from app.utils.helpers import build_ingredient_set

# Configure logging
logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative input."""
    return int(math.floor(value + 0.5))


@dataclass
class MatchBreakdown:
    """
    Explanation of a single product score.

    Attributes:
        product_id: Scored product
        conditions: Known conditions that contributed, sorted
        matched_beneficial: Condition -> beneficial ingredients found
        matched_avoid: Condition -> avoid ingredients found
        raw_score: Sum of all contributions before the multiplier
        multiplier: Quality multiplier applied (1.0 or 1.1)
        ingredient_count: Distinct ingredient tokens considered
        score: Final clamped, rounded score
    """
    product_id: object
    conditions: List[str] = field(default_factory=list)
    matched_beneficial: Dict[str, List[str]] = field(default_factory=dict)
    matched_avoid: Dict[str, List[str]] = field(default_factory=dict)
    raw_score: float = 0.0
    multiplier: float = 1.0
    ingredient_count: int = 0
    score: int = 0

    @property
    def beneficial_count(self) -> int:
        return sum(len(items) for items in self.matched_beneficial.values())

    @property
    def avoid_count(self) -> int:
        return sum(len(items) for items in self.matched_avoid.values())

    def to_dict(self) -> Dict:
        return {
            "product_id": self.product_id,
            "conditions": self.conditions,
            "matched_beneficial": self.matched_beneficial,
            "matched_avoid": self.matched_avoid,
            "raw_score": round(self.raw_score, 2),
            "multiplier": self.multiplier,
            "ingredient_count": self.ingredient_count,
            "score": self.score
        }


class MatchScorer:
    """
    Match scoring engine with a read-through score cache.

    Attributes:
        knowledge_base: Condition ingredient lists
        matcher: Ingredient matcher (its call counter shows recomputation)
        cache_service: Owner of the score cache
    """

    def __init__(
        self,
        knowledge_base: ConditionKnowledgeBase,
        matcher: IngredientMatcher,
        cache_service: CacheService
    ):
        self.knowledge_base = knowledge_base
        self.matcher = matcher
        self.cache_service = cache_service
        self.weights = SCORE_WEIGHTS

        logger.info(f"MatchScorer initialized with weights: {self.weights}")

    def score(
        self,
        product: Product,
        conditions: Iterable[str],
        use_cache: bool = True
    ) -> int:
        """
        Compute the 0-100 match score of a product for a condition set.

        Args:
            product: Normalized catalog product
            conditions: Condition identifiers; duplicates and unknown
                        identifiers are ignored
            use_cache: Read the score cache before computing (default: True).
                       The computed score is always written back.

        Returns:
            int: Match score in [0, 100]

        Example:
            scorer = MatchScorer(knowledge_base, matcher, cache_service)
            scorer.score(product, ["acne", "oily"])
        """
        conditions = sorted(set(conditions))
        cache_key = score_cache_key(product.id, conditions)

        if use_cache:
            cached = self.cache_service.scores.get(cache_key)
            if cached is not None:
                return cached

        breakdown = self.explain(product, conditions)
        self.cache_service.scores.set(cache_key, breakdown.score)

        if breakdown.score >= 60:
            logger.debug(
                f"{product.name}: {breakdown.score}% "
                f"(beneficial={breakdown.beneficial_count}, avoid={breakdown.avoid_count})"
            )

        return breakdown.score

    def is_cached(self, product: Product, conditions: Iterable[str]) -> bool:
        """True if a live cached score exists for this product and condition set."""
        return self.cache_service.scores.contains(score_cache_key(product.id, conditions))

    def explain(self, product: Product, conditions: Iterable[str]) -> MatchBreakdown:
        """
        Compute a score with its full breakdown, bypassing the cache.

        Algorithm:
        1. Build the canonical ingredient set (structured field, else description)
        2. Add every condition's contributions
        3. Apply the quality multiplier
        4. Clamp to [0, 100], then round

        Args:
            product: Normalized catalog product
            conditions: Condition identifiers

        Returns:
            MatchBreakdown: Matched ingredients, raw subtotal and final score
        """
        ingredient_set = build_ingredient_set(product.ingredient_source)
        name = product.name.lower()
        targeting_text = product.targeting_text.lower()

        breakdown = MatchBreakdown(
            product_id=product.id,
            ingredient_count=len(ingredient_set)
        )
        raw_score = 0.0

        for condition in sorted(set(conditions)):
            if condition not in self.knowledge_base:
                continue
            breakdown.conditions.append(condition)

            for ingredient in self.knowledge_base.beneficial_of(condition):
                if not self.matcher.has_ingredient(ingredient_set, ingredient):
                    continue
                raw_score += self.weights["beneficial"]
                if self.matcher.appears_in_leading(ingredient_set, ingredient, CONCENTRATION_WINDOW):
                    raw_score += self.weights["concentration"]
                breakdown.matched_beneficial.setdefault(condition, []).append(ingredient)

            for ingredient in self.knowledge_base.avoid_of(condition):
                if self.matcher.has_ingredient(ingredient_set, ingredient):
                    raw_score += self.weights["avoid"]
                    breakdown.matched_avoid.setdefault(condition, []).append(ingredient)

            spelled_out = condition.replace("-", " ")
            if spelled_out in name or condition in name:
                raw_score += self.weights["name_match"]
            if spelled_out in targeting_text or condition in targeting_text:
                raw_score += self.weights["condition_match"]

        breakdown.raw_score = raw_score

        score = raw_score
        if len(ingredient_set) > QUALITY_INGREDIENT_THRESHOLD:
            breakdown.multiplier = QUALITY_MULTIPLIER
            score *= QUALITY_MULTIPLIER

        score = max(0.0, min(float(MAX_MATCH_SCORE), score))
        breakdown.score = round_half_up(score)

        return breakdown
