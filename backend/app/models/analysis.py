"""
Pydantic models for the skin analysis endpoint.

This module defines the request/response schemas for /api/analyze and
the result types of the AI services (face validation, skin analysis).
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional, Union

from app.models.product import ScoredProduct
from app.utils.constants import DEFAULT_SKIN_TYPE


class AnalyzeRequest(BaseModel):
    """
    Request model for the skin analysis endpoint.

    Shape is checked here; value rules (supported conditions, budget tiers,
    length and size limits) are applied by app.utils.validators.

    Attributes:
        image: Base64 face selfie, optionally as a data URI
        conditions: User-selected skin conditions
        budget: Budget tier (low/mid/high/luxury), optional
        description: Free-text description of the user's skin, optional
    """
    image: Optional[str] = Field(
        None,
        description="Base64-encoded face selfie (data URI accepted)"
    )
    conditions: List[str] = Field(
        ...,
        description="Selected skin conditions",
        examples=[["acne", "oily"]]
    )
    budget: Optional[str] = Field(
        None,
        description="Budget tier: low, mid, high or luxury",
        examples=["mid"]
    )
    description: Optional[str] = Field(
        None,
        description="Optional description of skin concerns and routine"
    )

    @field_validator('budget')
    @classmethod
    def normalize_budget(cls, v: Optional[str]) -> Optional[str]:
        """Budget tiers are case-insensitive; blank means no budget."""
        if v is None or not v.strip():
            return None
        return v.strip().lower()


class FaceValidation(BaseModel):
    """Result of checking that an image shows a human face."""
    is_valid: bool
    message: str = ""


class SkinAnalysis(BaseModel):
    """
    Skin analysis produced by the vision model (or its default).

    Attributes:
        detected_conditions: Supported conditions seen in the image
        skin_type: oily/dry/sensitive/combination/normal
        confidence: Model confidence (0-1)
        observations: Free-text observations
        recommendations: Free-text recommendations
        note: Set when the analysis was degraded or reconstructed from text
    """
    detected_conditions: List[str] = Field(default_factory=list)
    skin_type: str = DEFAULT_SKIN_TYPE
    confidence: float = Field(0.8, ge=0.0, le=1.0)
    observations: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    note: Optional[str] = None


class ProductSummary(BaseModel):
    """Product payload returned to the frontend."""
    id: Union[int, str]
    name: str
    price: Optional[Union[float, str]] = None
    match_score: int
    categories: List[Any] = Field(default_factory=list)
    ingredients: List[str] = Field(default_factory=list)
    permalink: str = ""
    url: str = ""
    images: List[Dict[str, str]] = Field(default_factory=list)
    image: str = ""
    short_description: str = ""

    @classmethod
    def from_scored(cls, scored: ScoredProduct) -> "ProductSummary":
        """Reduce a scored product to the response shape."""
        product = scored.product

        images = []
        for img in product.images:
            if not img:
                continue
            if isinstance(img, str):
                images.append({"src": img})
            elif isinstance(img, dict):
                images.append({"src": img.get("src") or img.get("url") or img.get("thumbnail") or ""})

        return cls(
            id=product.id,
            name=product.name,
            price=product.price if product.price is not None else product.regular_price,
            match_score=scored.match_score,
            categories=product.categories,
            ingredients=product.ingredient_list,
            permalink=product.permalink,
            url=product.permalink,
            images=images,
            image=images[0]["src"] if images else "",
            short_description=product.short_description or product.plain_description[:200]
        )


class AnalyzeResponse(BaseModel):
    """Response model for the skin analysis endpoint."""
    success: bool = True
    skin_analysis: SkinAnalysis
    conditions: List[str] = Field(default_factory=list, description="Effective condition set used for scoring")
    products: List[ProductSummary] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    relevant_categories: List[str] = Field(default_factory=list)
    total_found: int = Field(0, description="Products in the resolved catalog")
