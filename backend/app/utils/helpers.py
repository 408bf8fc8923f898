"""
Common utility helper functions.

This module provides reusable utility functions for ingredient
normalization and text formatting used throughout the application.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple, Union

# Configure logging
logger = logging.getLogger(__name__)

_BRACKETS = re.compile(r'[()\[\]]')
_WHITESPACE = re.compile(r'\s+')
_INGREDIENT_SEPARATORS = re.compile(r'[,;\n]')
_HTML_TAGS = re.compile(r'<[^>]+>')


def normalize_ingredient(ingredient: str) -> str:
    """
    Canonicalize an ingredient name for comparison.

    Performs the following normalization:
    1. Convert to lowercase
    2. Remove leading/trailing whitespace
    3. Remove parentheses and square brackets (keeping their content)
    4. Collapse whitespace runs to a single space

    The function is pure and idempotent. An empty string normalizes to an
    empty string, which callers must drop before using it as a token.

    Args:
        ingredient: Raw ingredient string

    Returns:
        str: Canonical ingredient token

    Example:
        >>> normalize_ingredient("  Aqua (Water) ")
        "aqua water"
        >>> normalize_ingredient("Zinc   PCA")
        "zinc pca"
    """
    if not ingredient:
        return ""

    normalized = ingredient.lower().strip()
    normalized = _BRACKETS.sub('', normalized)
    normalized = _WHITESPACE.sub(' ', normalized)

    # Removing a bracket can expose whitespace at either end
    return normalized.strip()


@dataclass(frozen=True)
class IngredientSet:
    """
    Canonical ingredient tokens of a single product.

    Attributes:
        tokens: Distinct canonical tokens for O(1) membership checks
        ordered: The same tokens in the order they were listed
    """
    tokens: FrozenSet[str] = field(default_factory=frozenset)
    ordered: Tuple[str, ...] = ()

    def __contains__(self, token: object) -> bool:
        return token in self.tokens

    def __iter__(self):
        return iter(self.ordered)

    def __len__(self) -> int:
        return len(self.ordered)

    def leading(self, count: int) -> Tuple[str, ...]:
        """Return the first `count` listed tokens."""
        return self.ordered[:count]


def build_ingredient_set(
    source: Optional[Union[str, Iterable[str]]]
) -> IngredientSet:
    """
    Build the canonical ingredient set for an ingredient source.

    Strings are split on commas, semicolons and newlines first; any other
    iterable is treated as one ingredient per item. Tokens that normalize
    to the empty string are dropped, as are repeats (first position kept).

    Args:
        source: Ingredient text, list of ingredient names, or None

    Returns:
        IngredientSet: Canonical tokens; empty for None or empty input
    """
    if not source:
        return IngredientSet()

    if isinstance(source, str):
        raw_items = _INGREDIENT_SEPARATORS.split(source)
    else:
        raw_items = [item for item in source if isinstance(item, str)]

    ordered = tuple(dict.fromkeys(
        token for token in (normalize_ingredient(item) for item in raw_items)
        if token
    ))

    return IngredientSet(tokens=frozenset(ordered), ordered=ordered)


def strip_html(text: Optional[str]) -> str:
    """Remove HTML tags from store-provided text."""
    if not text:
        return ""
    return _HTML_TAGS.sub('', text)


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate text to maximum length with suffix.

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to append if truncated (default: "...")

    Returns:
        str: Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    truncate_at = max_length - len(suffix)
    return text[:truncate_at].rstrip() + suffix
