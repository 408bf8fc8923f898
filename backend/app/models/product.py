"""
Pydantic models for store products.

Store payloads are loosely shaped: ingredients live in meta_data under
one of two keys, prices arrive as decimal strings, images may be strings
or objects. Product.from_store() resolves all of that once, at the
catalog boundary, so the scoring code only ever sees one shape.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Union

from app.utils.helpers import strip_html

INGREDIENT_META_KEYS = ("ingredients", "_ingredients")


def _parse_price(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _ingredient_meta(meta_data: Any) -> Optional[str]:
    """Pull the structured ingredient field out of store meta_data."""
    if not isinstance(meta_data, list):
        return None
    for meta in meta_data:
        if not isinstance(meta, dict) or meta.get("key") not in INGREDIENT_META_KEYS:
            continue
        value = meta.get("value")
        if not value:
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            return ", ".join(str(item) for item in value)
        return str(value)
    return None


class Category(BaseModel):
    """A store product category."""
    id: Union[int, str]
    name: str
    slug: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class Product(BaseModel):
    """
    Normalized catalog product.

    Immutable while cached; replaced wholesale on catalog refresh.

    Attributes:
        id: Opaque stable product identifier
        name: Display name
        price: Numeric price, None when the store had no usable price
        regular_price: Store regular price string, carried through for display
        ingredients: Structured ingredient text (None when the store has none)
        description: Long description (may contain HTML)
        short_description: Short description (may contain HTML)
        images: Image metadata, passed through unmodified
        categories: Category metadata, passed through unmodified
        permalink: Product page URL
    """
    id: Union[int, str]
    name: str = ""
    price: Optional[float] = None
    regular_price: Optional[str] = None
    ingredients: Optional[str] = None
    description: str = ""
    short_description: str = ""
    images: List[Any] = Field(default_factory=list)
    categories: List[Any] = Field(default_factory=list)
    permalink: str = ""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_store(cls, raw: Dict[str, Any]) -> "Product":
        """
        Build a Product from a raw store payload.

        Resolves alternate field names (name/title, permalink/url/link),
        parses the decimal price string and extracts ingredients from
        meta_data keys 'ingredients' or '_ingredients'.

        Args:
            raw: Product dictionary as returned by the store API

        Returns:
            Product: Normalized product
        """
        return cls(
            id=raw["id"],
            name=raw.get("name") or raw.get("title") or "",
            price=_parse_price(raw.get("price")),
            regular_price=str(raw["regular_price"]) if raw.get("regular_price") else None,
            ingredients=_ingredient_meta(raw.get("meta_data")),
            description=raw.get("description") or "",
            short_description=raw.get("short_description") or "",
            images=list(raw.get("images") or []),
            categories=list(raw.get("categories") or raw.get("category") or []),
            permalink=raw.get("permalink") or raw.get("url") or raw.get("link") or ""
        )

    @property
    def ingredient_source(self) -> str:
        """Structured ingredients if present, otherwise the description text."""
        return self.ingredients or self.description or ""

    @property
    def targeting_text(self) -> str:
        """Text checked for condition mentions: short description, else description."""
        return self.short_description or self.description or ""

    @property
    def ingredient_list(self) -> List[str]:
        """Display list of structured ingredients with stray quotes removed."""
        if not self.ingredients:
            return []
        cleaned = (item.strip().strip("'\"").strip() for item in self.ingredients.split(","))
        return [item for item in cleaned if item]

    @property
    def plain_description(self) -> str:
        return strip_html(self.description)


class ScoredProduct(BaseModel):
    """A product paired with its match score."""
    product: Product
    match_score: int = Field(..., ge=0, le=100)

    model_config = ConfigDict(frozen=True)
