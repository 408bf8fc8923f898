"""
Condition-ingredient knowledge base.

Read-only view over INGREDIENT_DATABASE: for every supported skin
condition, the ingredients that help and the ingredients to avoid.
Lookups for an unrecognized condition return empty results instead of
failing, so the scorer can be handed an unknown condition safely.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from app.services.ingredient_matcher import IngredientMatcher
from app.utils.constants import CONDITION_CATEGORIES, INGREDIENT_DATABASE

# Configure logging
logger = logging.getLogger(__name__)


class ConditionKnowledgeBase:
    """
    Static mapping from condition to beneficial/avoid ingredient lists.

    Attributes:
        conditions: Supported condition identifiers, in database order
    """

    def __init__(
        self,
        database: Optional[Mapping[str, Mapping[str, List[str]]]] = None,
        categories: Optional[Mapping[str, List[str]]] = None,
        matcher: Optional[IngredientMatcher] = None
    ):
        """
        Load the knowledge base.

        Args:
            database: Condition -> {"beneficial": [...], "avoid": [...]}
                      (defaults to INGREDIENT_DATABASE)
            categories: Condition -> store category names
                        (defaults to CONDITION_CATEGORIES)
            matcher: Matcher whose pattern cache is warmed with every
                     ingredient in the database
        """
        source = database if database is not None else INGREDIENT_DATABASE
        self._beneficial: Dict[str, Tuple[str, ...]] = {
            condition: tuple(entry.get("beneficial", ()))
            for condition, entry in source.items()
        }
        self._avoid: Dict[str, Tuple[str, ...]] = {
            condition: tuple(entry.get("avoid", ()))
            for condition, entry in source.items()
        }
        self._categories: Dict[str, Tuple[str, ...]] = {
            condition: tuple(names)
            for condition, names in (categories if categories is not None else CONDITION_CATEGORIES).items()
        }
        self.conditions: Tuple[str, ...] = tuple(self._beneficial)

        if matcher is not None:
            matcher.warm(self.all_ingredients())

        logger.info(
            f"ConditionKnowledgeBase initialized with {len(self.conditions)} conditions "
            f"and {len(self.all_ingredients())} distinct ingredients"
        )

    def __contains__(self, condition: object) -> bool:
        return condition in self._beneficial

    def beneficial_of(self, condition: str) -> Tuple[str, ...]:
        """Beneficial ingredients for a condition; empty if unknown."""
        return self._beneficial.get(condition, ())

    def avoid_of(self, condition: str) -> Tuple[str, ...]:
        """Ingredients to avoid for a condition; empty if unknown."""
        return self._avoid.get(condition, ())

    def all_ingredients(self) -> Tuple[str, ...]:
        """Every ingredient named anywhere in the database, first mention order."""
        names = []
        for condition in self.conditions:
            names.extend(self._beneficial[condition])
            names.extend(self._avoid[condition])
        return tuple(dict.fromkeys(names))

    def relevant_categories(self, conditions: Iterable[str]) -> List[str]:
        """
        Store categories associated with a set of conditions.

        Args:
            conditions: Condition identifiers (unknown ones are ignored)

        Returns:
            List[str]: Category names, deduplicated, in first-seen order
        """
        categories = []
        for condition in conditions:
            categories.extend(self._categories.get(condition, ()))
        return list(dict.fromkeys(categories))
