"""
FastAPI application entry point and endpoint definitions.

This module initializes the FastAPI application and defines the API
routes of the skincare product matching service.

Responsibilities:
- Initialize FastAPI application with CORS and error handling
- Build the service layer once at import time (caches, catalog, scoring)
- Start and stop the cache sweeper with the application lifespan
- Coordinate service layer calls for /api/analyze

Endpoints are plain `def` functions, so FastAPI runs them in its worker
threadpool and requests are served concurrently against the shared caches.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import InputError, UpstreamFailure
from app.models.analysis import AnalyzeRequest, AnalyzeResponse, ProductSummary
from app.services.cache_service import CacheService
from app.services.cache_sweeper import CacheSweeper
from app.services.catalog_service import CatalogService, WooCommerceClient
from app.services.ingredient_matcher import IngredientMatcher
from app.services.knowledge_base import ConditionKnowledgeBase
from app.services.lifestyle_advisor import LifestyleAdvisor
from app.services.match_scorer import MatchScorer
from app.services.recommendation_engine import RecommendationEngine
from app.services.skin_analyzer import SkinAnalyzer
from app.utils.validators import (
    validate_budget,
    validate_conditions,
    validate_description,
    validate_image
)

# Configure logging
logger = logging.getLogger(__name__)

INVALID_FACE_MESSAGE = (
    "Invalid image - Please upload a clear photo of your face. "
    "The image must show a human face clearly."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the cache sweeper for the app's lifetime."""
    cache_sweeper.start()
    try:
        yield
    finally:
        cache_sweeper.stop()


def create_app() -> FastAPI:
    """
    Initialize and configure the FastAPI application.

    Sets up:
    - CORS middleware for frontend communication
    - Exception handlers for consistent error responses
    - Application metadata

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Skincare Product Matching API",
        description="Scores store products against skin conditions and recommends the best matches",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InputError)
    async def input_error_handler(request, exc: InputError):
        """Reject invalid requests before any catalog or scoring work."""
        logger.info(f"Rejected request: {exc}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(exc)}
        )

    @app.exception_handler(UpstreamFailure)
    async def upstream_failure_handler(request, exc: UpstreamFailure):
        """Store unavailable: the request fails, cached data is left as it was."""
        logger.error(f"Upstream failure: {exc} (status: {exc.status_code})")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Failed to fetch products from the store"}
        )

    # Global exception handler for consistent error responses
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Handle all uncaught exceptions with consistent error format.

        Args:
            request: The incoming request object
            exc: The exception that was raised

        Returns:
            JSONResponse: Formatted error response
        """
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to analyze and fetch products"}
        )

    return app


# Initialize service layer instances
ingredient_matcher = IngredientMatcher()
knowledge_base = ConditionKnowledgeBase(matcher=ingredient_matcher)
cache_service = CacheService(
    score_ttl=settings.SCORE_CACHE_TTL,
    catalog_ttl=settings.CATALOG_CACHE_TTL
)
store_client = WooCommerceClient()
catalog_service = CatalogService(store_client, cache_service)
match_scorer = MatchScorer(knowledge_base, ingredient_matcher, cache_service)
recommendation_engine = RecommendationEngine(
    catalog_service,
    match_scorer,
    knowledge_base,
    min_score=settings.MIN_MATCH_SCORE,
    limit=settings.MAX_RECOMMENDATIONS
)
skin_analyzer = SkinAnalyzer()
lifestyle_advisor = LifestyleAdvisor()
cache_sweeper = CacheSweeper(cache_service, interval=settings.CACHE_SWEEP_INTERVAL)

# Initialize FastAPI application
app = create_app()


@app.post("/api/analyze", response_model=AnalyzeResponse)
def analyze(request: AnalyzeRequest) -> AnalyzeResponse:
    """
    Analyze a face selfie and recommend matching products.

    Pipeline:
    1. Validate conditions, budget, description and image
    2. Check that the image shows a human face (fails open)
    3. Detect skin conditions in the image (degrades to none)
    4. Merge detected conditions into the selected ones
    5. Resolve the catalog for the budget tier, filter, score and rank
    6. Generate diet and lifestyle suggestions (degrades to none)

    Args:
        request: AnalyzeRequest with image, conditions, budget, description

    Returns:
        AnalyzeResponse: Skin analysis, ranked products and suggestions

    Raises:
        InputError: 400 on invalid input or a non-face image
        UpstreamFailure: 502 if the store cannot be reached
    """
    validate_conditions(request.conditions, settings.MAX_CONDITIONS)
    validate_budget(request.budget)
    validate_description(request.description)
    validate_image(request.image, settings.MAX_IMAGE_BYTES)

    logger.info(
        f"Analyze request: conditions={request.conditions}, "
        f"budget={request.budget or 'any'}, "
        f"description={'yes' if request.description else 'no'}, "
        f"image={len(request.image) * 3 / 4 / 1024:.2f}KB"
    )

    face_validation = skin_analyzer.validate_face(request.image)
    if not face_validation.is_valid:
        logger.info(f"Face validation failed: {face_validation.message}")
        raise InputError(INVALID_FACE_MESSAGE)

    skin_analysis = skin_analyzer.analyze_skin_image(request.image)

    result = recommendation_engine.recommend(
        request.budget,
        request.conditions,
        skin_analysis.detected_conditions
    )

    suggestions = lifestyle_advisor.generate_suggestions(
        skin_analysis,
        request.description,
        result.conditions
    )

    return AnalyzeResponse(
        success=True,
        skin_analysis=skin_analysis,
        conditions=result.conditions,
        products=[ProductSummary.from_scored(item) for item in result.products],
        suggestions=suggestions,
        relevant_categories=result.relevant_categories,
        total_found=result.catalog_size
    )


@app.get("/api/health")
def health_check():
    """
    Health check endpoint for monitoring and deployment.

    Returns:
        dict: Service status and configuration flags
    """
    warnings = []
    if not store_client.configured:
        warnings.append("WooCommerce store URL not configured - catalog requests will fail")
    if not skin_analyzer.enabled:
        warnings.append("GEMINI_API_KEY not configured - AI analysis disabled")

    return {
        "status": "ok",
        "message": "Skincare Analyzer API is running",
        "configuration": {
            "store_configured": store_client.configured,
            "ai_enabled": skin_analyzer.enabled,
            "model": skin_analyzer.model,
            "score_cache_ttl": settings.SCORE_CACHE_TTL,
            "catalog_cache_ttl": settings.CATALOG_CACHE_TTL,
        },
        "cache_sweeper_running": cache_sweeper.running,
        "warnings": warnings if warnings else None
    }


@app.get("/api/cache/stats")
def cache_stats():
    """
    Cache introspection for operational monitoring.

    Returns:
        dict: Per-cache size, keys, TTL and hit counters, plus counters of
              store fetches, matcher calls and sweeps
    """
    return {
        "caches": cache_service.stats(),
        "catalog_fetches": catalog_service.fetch_count,
        "matcher_calls": ingredient_matcher.call_count,
        "compiled_patterns": ingredient_matcher.pattern_count,
        "sweeps": cache_sweeper.runs
    }


if __name__ == "__main__":
    import uvicorn

    # For development only - use uvicorn command in production
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
