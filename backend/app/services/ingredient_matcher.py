"""
Ingredient matching service.

Decides whether a product's canonical ingredient set contains a target
ingredient. Matching is exact first, then whole-word: the target must
appear inside a member token bounded by non-word characters or the ends
of the token. This is word-boundary matching, not equality, so the member
"stearyl alcohol" does contain the target "alcohol".

Compiled patterns are cached per distinct target; the knowledge base
ingredient lists are static, so the cache is warmed once at load time.
"""

import logging
import re
import threading
from typing import Dict, Iterable, Pattern

from app.utils.helpers import IngredientSet, normalize_ingredient

# Configure logging
logger = logging.getLogger(__name__)


class IngredientMatcher:
    """
    Exact and whole-word ingredient matcher.

    Attributes:
        call_count: Number of has_ingredient calls served (for monitoring)
    """

    def __init__(self):
        """Initialize the matcher with an empty pattern cache."""
        self._patterns: Dict[str, Pattern] = {}
        self._lock = threading.Lock()
        self.call_count = 0

    def warm(self, targets: Iterable[str]) -> int:
        """
        Precompile patterns for a collection of target ingredients.

        Args:
            targets: Raw target ingredient names

        Returns:
            int: Number of compiled patterns held after warming
        """
        for target in targets:
            self._pattern_for(normalize_ingredient(target))
        logger.debug(f"Ingredient pattern cache warmed: {len(self._patterns)} patterns")
        return len(self._patterns)

    def _pattern_for(self, normalized_target: str) -> Pattern:
        pattern = self._patterns.get(normalized_target)
        if pattern is None:
            pattern = re.compile(r'(?<!\w)' + re.escape(normalized_target) + r'(?!\w)')
            with self._lock:
                self._patterns.setdefault(normalized_target, pattern)
        return pattern

    def has_ingredient(self, ingredient_set: IngredientSet, target: str) -> bool:
        """
        Check whether an ingredient set contains the target ingredient.

        Algorithm:
        1. Normalize the target
        2. Exact token membership (O(1))
        3. Whole-word search of the escaped target in every member token

        Args:
            ingredient_set: Canonical ingredient set of a product
            target: Ingredient name to look for (raw or normalized)

        Returns:
            bool: True if the target is present

        Example:
            >>> matcher.has_ingredient(build_ingredient_set("Zinc PCA, Aqua"), "zinc")
            True
        """
        self.call_count += 1

        normalized = normalize_ingredient(target)
        if not normalized:
            return False

        if normalized in ingredient_set:
            return True

        pattern = self._pattern_for(normalized)
        return any(pattern.search(member) for member in ingredient_set)

    def appears_in_leading(
        self,
        ingredient_set: IngredientSet,
        target: str,
        window: int
    ) -> bool:
        """
        Check whether the target occurs in one of the first `window` listed tokens.

        Ingredients are listed by decreasing concentration, so a hit here
        is a proxy for the ingredient being present at high concentration.
        Plain substring containment is used.
        """
        normalized = normalize_ingredient(target)
        if not normalized:
            return False
        return any(normalized in token for token in ingredient_set.leading(window))

    @property
    def pattern_count(self) -> int:
        """Number of compiled target patterns currently cached."""
        return len(self._patterns)
