"""Shared fixtures: manual clock, fake store, product factories and wired services."""

from typing import Any, Dict, List, Optional

import pytest

from app.models.product import Product
from app.services.cache_service import CacheService
from app.services.catalog_service import CatalogService
from app.services.ingredient_matcher import IngredientMatcher
from app.services.knowledge_base import ConditionKnowledgeBase
from app.services.match_scorer import MatchScorer
from app.services.recommendation_engine import RecommendationEngine


# Eleven distinct ingredients: earns the quality multiplier
SERUM_INGREDIENTS = (
    "Niacinamide, Salicylic Acid, Glycerin, Dimethicone, Aqua, Zinc, "
    "Panthenol, Butylene Glycol, Allantoin, Xanthan Gum, Citric Acid"
)


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStoreClient:
    """In-memory store client that counts fetches."""

    def __init__(self, products: Optional[List[Dict[str, Any]]] = None, categories=None):
        self.products = products or []
        self.categories = categories or []
        self.product_fetches = 0
        self.category_fetches = 0
        self.error: Optional[Exception] = None

    def fetch_published_products(self, page_size: int) -> List[Dict[str, Any]]:
        self.product_fetches += 1
        if self.error is not None:
            raise self.error
        return list(self.products)

    def fetch_categories(self, page_size: int) -> List[Dict[str, Any]]:
        self.category_fetches += 1
        if self.error is not None:
            raise self.error
        return list(self.categories)


def store_product(
    id: Any,
    name: str = "Product",
    price: Any = "1000",
    ingredients: Optional[str] = None,
    description: str = "",
    short_description: str = "",
    **extra
) -> Dict[str, Any]:
    """Raw WooCommerce product payload."""
    raw = {
        "id": id,
        "name": name,
        "price": price,
        "description": description,
        "short_description": short_description,
        "meta_data": [],
        "images": [],
        "categories": [],
        "permalink": f"https://shop.example.com/product/{id}",
    }
    if ingredients is not None:
        raw["meta_data"] = [{"id": 1, "key": "ingredients", "value": ingredients}]
    raw.update(extra)
    return raw


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def make_product():
    """Factory for normalized products."""
    def _make(
        id: Any = 1,
        name: str = "Product",
        price: Optional[float] = 1000.0,
        ingredients: Optional[str] = None,
        description: str = "",
        short_description: str = ""
    ) -> Product:
        return Product(
            id=id,
            name=name,
            price=price,
            ingredients=ingredients,
            description=description,
            short_description=short_description
        )
    return _make


@pytest.fixture
def serum(make_product) -> Product:
    return make_product(
        id=101,
        name="Niacinamide Serum",
        price=1800.0,
        ingredients=SERUM_INGREDIENTS,
        description="A lightweight daily serum."
    )


@pytest.fixture
def matcher() -> IngredientMatcher:
    return IngredientMatcher()


@pytest.fixture
def knowledge_base(matcher) -> ConditionKnowledgeBase:
    return ConditionKnowledgeBase(matcher=matcher)


@pytest.fixture
def cache_service(clock) -> CacheService:
    return CacheService(score_ttl=300, catalog_ttl=600, clock=clock)


@pytest.fixture
def scorer(knowledge_base, matcher, cache_service) -> MatchScorer:
    return MatchScorer(knowledge_base, matcher, cache_service)


@pytest.fixture
def store() -> FakeStoreClient:
    return FakeStoreClient(categories=[{"id": 7, "name": "Serums", "slug": "serums"}])


@pytest.fixture
def catalog_service(store, cache_service) -> CatalogService:
    return CatalogService(store, cache_service, page_size=100)


@pytest.fixture
def engine(catalog_service, scorer, knowledge_base) -> RecommendationEngine:
    return RecommendationEngine(catalog_service, scorer, knowledge_base, min_score=40, limit=12)


@pytest.fixture
def raw_product():
    """Factory for raw store payloads."""
    return store_product
