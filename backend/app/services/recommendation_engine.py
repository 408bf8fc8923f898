"""
Product recommendation engine.

Per request, this module:
1. Merges user-selected conditions with AI-detected ones (union; AI
   detections only ever add conditions)
2. Resolves the catalog for the budget tier (cached, shared per tier)
3. Filters products by the tier's inclusive price range
4. Scores every remaining product (each score independently cached)
5. Drops products below the minimum score, sorts by score descending
   with ties kept in catalog order, and truncates to the limit
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from app.models.product import Product, ScoredProduct
from app.services.catalog_service import CatalogService
from app.services.knowledge_base import ConditionKnowledgeBase
from app.services.match_scorer import MatchScorer
from app.utils.constants import BUDGET_RANGES

# Configure logging
logger = logging.getLogger(__name__)

BudgetRange = Tuple[float, float]


@dataclass
class RecommendationResult:
    """
    Outcome of a recommendation run.

    Attributes:
        products: Ranked products (best match first)
        conditions: Effective condition set used for scoring
        catalog_size: Products in the resolved catalog
        in_budget: Products left after the price filter
        score_cache_hits: Products whose score came from the cache
        relevant_categories: Store categories associated with the conditions
    """
    products: List[ScoredProduct] = field(default_factory=list)
    conditions: List[str] = field(default_factory=list)
    catalog_size: int = 0
    in_budget: int = 0
    score_cache_hits: int = 0
    relevant_categories: List[str] = field(default_factory=list)


def merge_conditions(
    selected: Iterable[str],
    detected: Optional[Iterable[str]] = None
) -> List[str]:
    """
    Union of user-selected and detected conditions.

    User selections come first in their original order, followed by
    detected conditions not already selected.

    Example:
        >>> merge_conditions(["acne", "oily"], ["oily", "redness"])
        ["acne", "oily", "redness"]
    """
    return list(dict.fromkeys([*selected, *(detected or [])]))


def budget_range_for(budget_tier: Optional[str]) -> Optional[BudgetRange]:
    """Inclusive price range of a tier, or None when no budget was given."""
    if not budget_tier:
        return None
    return BUDGET_RANGES[budget_tier.lower()]


def filter_by_budget(
    products: Sequence[Product],
    budget_range: Optional[BudgetRange]
) -> List[Product]:
    """
    Keep products whose price lies within [min, max], both ends inclusive.

    Products without a usable price never match a budget. With no budget
    range every product is kept.
    """
    if budget_range is None:
        return list(products)

    low, high = budget_range
    return [
        product for product in products
        if product.price is not None and low <= product.price <= high
    ]


class RecommendationEngine:
    """
    Orchestrates catalog resolution, budget filtering, scoring and ranking.

    Attributes:
        catalog_service: Cached catalog access
        scorer: Match scoring engine
        knowledge_base: Condition knowledge base
        min_score: Minimum score to recommend a product
        limit: Maximum products returned
    """

    def __init__(
        self,
        catalog_service: CatalogService,
        scorer: MatchScorer,
        knowledge_base: ConditionKnowledgeBase,
        min_score: int = 40,
        limit: int = 12
    ):
        self.catalog_service = catalog_service
        self.scorer = scorer
        self.knowledge_base = knowledge_base
        self.min_score = min_score
        self.limit = limit

        logger.info(
            f"RecommendationEngine initialized with min_score={self.min_score}, "
            f"limit={self.limit}"
        )

    def rank_products(
        self,
        catalog: Sequence[Product],
        conditions: Iterable[str],
        budget_range: Optional[BudgetRange] = None,
        limit: Optional[int] = None,
        threshold: Optional[int] = None
    ) -> List[ScoredProduct]:
        """
        Score, filter and rank products for a condition set.

        Args:
            catalog: Products in catalog order
            conditions: Effective condition set
            budget_range: Inclusive (min, max) price range, or None
            limit: Maximum results (default: engine limit)
            threshold: Minimum score kept (default: engine min_score)

        Returns:
            List[ScoredProduct]: Best match first; equal scores keep catalog order
        """
        conditions = list(conditions)
        limit = self.limit if limit is None else limit
        threshold = self.min_score if threshold is None else threshold

        scored = [
            ScoredProduct(product=product, match_score=self.scorer.score(product, conditions))
            for product in filter_by_budget(catalog, budget_range)
        ]

        kept = [item for item in scored if item.match_score >= threshold]
        # sorted() is stable, so ties stay in catalog order
        ranked = sorted(kept, key=lambda item: item.match_score, reverse=True)

        logger.debug(
            f"Ranked {len(scored)} products: {len(kept)} at or above {threshold}, "
            f"returning {min(len(ranked), limit)}"
        )
        return ranked[:limit]

    def recommend(
        self,
        budget_tier: Optional[str],
        conditions: Sequence[str],
        detected_conditions: Optional[Sequence[str]] = None
    ) -> RecommendationResult:
        """
        Run the full recommendation pipeline for one request.

        Args:
            budget_tier: Validated budget tier name, or None
            conditions: Validated user-selected conditions
            detected_conditions: Conditions reported by image analysis

        Returns:
            RecommendationResult: Ranked products and run statistics

        Raises:
            UpstreamFailure: If the catalog cannot be fetched
        """
        effective = merge_conditions(
            conditions,
            [c for c in (detected_conditions or []) if c in self.knowledge_base]
        )
        if detected_conditions:
            logger.info(f"Combined conditions: {effective}")

        catalog = self.catalog_service.get_catalog(budget_tier)
        budget_range = budget_range_for(budget_tier)
        in_budget = filter_by_budget(catalog, budget_range)
        if budget_range is not None:
            logger.info(
                f"Products in budget range ({budget_range[0]:g}-{budget_range[1]:g}): {len(in_budget)}"
            )

        start = time.monotonic()
        cache_hits = sum(1 for product in in_budget if self.scorer.is_cached(product, effective))
        ranked = self.rank_products(in_budget, effective)
        elapsed_ms = (time.monotonic() - start) * 1000

        if in_budget:
            logger.info(
                f"Scored {len(in_budget)} products in {elapsed_ms:.0f}ms "
                f"(score cache hits: {cache_hits}/{len(in_budget)}, "
                f"{cache_hits / len(in_budget) * 100:.1f}% hit rate)"
            )

        if ranked:
            logger.info(
                f"Top {len(ranked)} products: "
                + ", ".join(f"{item.product.name} ({item.match_score}%)" for item in ranked[:3])
            )
        else:
            logger.info(
                f"No products scored at or above {self.min_score} for conditions {effective}"
            )

        return RecommendationResult(
            products=ranked,
            conditions=effective,
            catalog_size=len(catalog),
            in_budget=len(in_budget),
            score_cache_hits=cache_hits,
            relevant_categories=self.knowledge_base.relevant_categories(effective)
        )
