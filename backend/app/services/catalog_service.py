"""
Product catalog service.

Wraps the WooCommerce REST API (wc/v3) and serves the published catalog
through the budget-partitioned catalog cache:

- WooCommerceClient: paged product and category fetches with HTTP basic
  auth (consumer key / consumer secret)
- CatalogService: read-through catalog resolution; a cache miss triggers
  one store fetch per budget tier even under concurrent requests, the
  result is de-duplicated by product id and shared by every caller on
  that tier regardless of their condition selection

Store failures are not retried here. They surface as UpstreamFailure and
leave any cached entry untouched so the next request can try again.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import requests

from app.config import settings
from app.exceptions import UpstreamFailure
from app.models.product import Category, Product
from app.services.cache_service import (
    CATEGORY_CACHE_KEY,
    CacheService,
    catalog_cache_key
)
from app.utils.constants import ANY_BUDGET_TIER

# Configure logging
logger = logging.getLogger(__name__)


class StoreClient(Protocol):
    """Interface of the remote product store."""

    def fetch_published_products(self, page_size: int) -> List[Dict[str, Any]]:
        ...

    def fetch_categories(self, page_size: int) -> List[Dict[str, Any]]:
        ...


class WooCommerceClient:
    """
    Minimal WooCommerce REST API client.

    Attributes:
        base_url: Store root URL (without /wp-json)
        timeout: Request timeout in seconds
        max_pages: Upper bound on pages fetched per listing
    """

    API_PREFIX = "wp-json/wc/v3"

    def __init__(
        self,
        base_url: Optional[str] = None,
        consumer_key: Optional[str] = None,
        consumer_secret: Optional[str] = None,
        timeout: Optional[int] = None,
        max_pages: Optional[int] = None,
        session: Optional[requests.Session] = None
    ):
        """Initialize the client from arguments, falling back to settings."""
        self.base_url = (base_url or settings.WOOCOMMERCE_URL or "").rstrip("/")
        self.timeout = timeout or settings.API_TIMEOUT
        self.max_pages = max_pages or settings.CATALOG_MAX_PAGES
        self.session = session or requests.Session()

        key = consumer_key or settings.WOOCOMMERCE_CONSUMER_KEY
        secret = consumer_secret or settings.WOOCOMMERCE_CONSUMER_SECRET
        if key and secret:
            self.session.auth = (key, secret)
        else:
            logger.warning("WooCommerce consumer key/secret NOT configured! Store requests may fail")

        logger.info(
            f"WooCommerce client initialized with base URL: {self.base_url or 'not configured'} "
            f"(timeout: {self.timeout}s, max_pages: {self.max_pages})"
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _get(self, endpoint: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        GET a listing endpoint.

        Raises:
            UpstreamFailure: On connection errors, timeouts, HTTP errors or
                             a body that is not a JSON list
        """
        if not self.base_url:
            raise UpstreamFailure("WooCommerce store URL is not configured")

        url = f"{self.base_url}/{self.API_PREFIX}/{endpoint}"
        try:
            logger.debug(f"Making store request to {url} with params: {params}")
            response = self.session.get(
                url,
                params=params,
                timeout=self.timeout,
                headers={"Accept": "application/json"}
            )
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout as e:
            logger.error(f"Store request timeout for {url}")
            raise UpstreamFailure(f"Store request timed out: {endpoint}") from e

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            body = e.response.text[:500] if e.response is not None else ""
            logger.error(f"Store HTTP error for {url}: Status {status_code}; body: {body}")
            raise UpstreamFailure(
                f"Store returned HTTP {status_code} for {endpoint}",
                status_code=status_code
            ) from e

        except requests.exceptions.RequestException as e:
            logger.error(f"Store request failed for {url}: {str(e)}")
            raise UpstreamFailure(f"Store request failed: {endpoint}") from e

        except ValueError as e:
            logger.error(f"Failed to parse JSON response from {url}: {str(e)}")
            raise UpstreamFailure(f"Store returned invalid JSON for {endpoint}") from e

        if not isinstance(data, list):
            raise UpstreamFailure(f"Unexpected store response shape for {endpoint}")
        return data

    def _get_all_pages(self, endpoint: str, params: Dict[str, Any], page_size: int) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        for page in range(1, self.max_pages + 1):
            batch = self._get(endpoint, {**params, "per_page": page_size, "page": page})
            items.extend(batch)
            if len(batch) < page_size:
                break
        else:
            logger.warning(
                f"Stopped listing '{endpoint}' after {self.max_pages} pages; "
                "raise CATALOG_MAX_PAGES to fetch more"
            )
        return items

    def fetch_published_products(self, page_size: int = 100) -> List[Dict[str, Any]]:
        """Fetch every published product, in store order."""
        return self._get_all_pages("products", {"status": "publish"}, page_size)

    def fetch_categories(self, page_size: int = 100) -> List[Dict[str, Any]]:
        """Fetch every product category."""
        return self._get_all_pages("products/categories", {}, page_size)


def deduplicate_products(products: Sequence[Product]) -> Tuple[Product, ...]:
    """
    De-duplicate products by id.

    The last occurrence of an id wins, but it keeps the position of the
    first occurrence, so catalog order stays stable.
    """
    unique: Dict[Any, Product] = {}
    for product in products:
        unique[product.id] = product
    return tuple(unique.values())


class CatalogService:
    """
    Read-through catalog resolution over the catalog and category caches.

    Attributes:
        client: Remote store client
        cache_service: Owner of the catalog and category caches
        page_size: Products requested per page
        fetch_count: Number of store catalog fetches performed
    """

    def __init__(
        self,
        client: StoreClient,
        cache_service: CacheService,
        page_size: Optional[int] = None
    ):
        self.client = client
        self.cache_service = cache_service
        self.page_size = page_size or settings.CATALOG_PAGE_SIZE
        self.fetch_count = 0

    def get_catalog(self, budget_tier: Optional[str] = None) -> Tuple[Product, ...]:
        """
        Resolve the full published catalog for a budget tier.

        A live cache hit makes no store calls. On a miss the catalog is
        fetched once, de-duplicated and cached under the tier key. Budget
        filtering is not applied here; the key only partitions the cache.

        Args:
            budget_tier: Budget tier name, or None for no budget

        Returns:
            Tuple[Product, ...]: Catalog in store order

        Raises:
            UpstreamFailure: If the store fetch fails
        """
        tier = (budget_tier or ANY_BUDGET_TIER).lower()
        key = catalog_cache_key(tier)

        was_cached = self.cache_service.catalog.contains(key)
        catalog = self.cache_service.catalog.get_or_load(key, self._load_catalog)
        if was_cached:
            logger.info(f"Using cached products: {len(catalog)} products (Cache Hit!)")
        return catalog

    def _load_catalog(self) -> Tuple[Product, ...]:
        fetch_start = time.monotonic()

        # Category list is refreshed alongside the catalog
        self.get_categories()

        raw_products = self.client.fetch_published_products(self.page_size)
        self.fetch_count += 1

        products = []
        for raw in raw_products:
            if not isinstance(raw, dict) or raw.get("id") is None:
                logger.warning("Skipping store product without an id")
                continue
            products.append(Product.from_store(raw))

        catalog = deduplicate_products(products)
        elapsed_ms = (time.monotonic() - fetch_start) * 1000
        logger.info(
            f"Store products fetched: {len(catalog)} products "
            f"({len(raw_products) - len(catalog)} dropped, {elapsed_ms:.0f}ms, Cache Miss)"
        )
        return catalog

    def get_categories(self) -> Tuple[Category, ...]:
        """
        Resolve the store category list through the category cache.

        Raises:
            UpstreamFailure: If the store fetch fails
        """
        return self.cache_service.categories.get_or_load(CATEGORY_CACHE_KEY, self._load_categories)

    def _load_categories(self) -> Tuple[Category, ...]:
        raw_categories = self.client.fetch_categories(self.page_size)
        categories = tuple(
            Category.model_validate(raw) for raw in raw_categories
            if isinstance(raw, dict) and "id" in raw and "name" in raw
        )
        logger.info(f"Store categories fetched: {len(categories)}")
        return categories
