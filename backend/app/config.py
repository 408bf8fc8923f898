"""
Application configuration.

This module defines the application settings using Pydantic models
for environment variable support and type validation.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
import logging
import os
from dotenv import load_dotenv

# Load .env from backend directory (works regardless of cwd when running uvicorn)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


class Settings(BaseModel):
    """
    Application configuration settings.

    Can be configured via environment variables or .env file.
    Environment variable names match the field names (e.g., WOOCOMMERCE_URL).

    Attributes:
        WOOCOMMERCE_URL: Base URL of the WooCommerce store
        WOOCOMMERCE_CONSUMER_KEY: REST API consumer key
        WOOCOMMERCE_CONSUMER_SECRET: REST API consumer secret
        API_TIMEOUT: Store request timeout in seconds
        CATALOG_PAGE_SIZE: Products requested per catalog page
        CATALOG_MAX_PAGES: Upper bound on catalog pages per fetch
        GEMINI_API_KEY: API key for the Gemini vision/text model (optional)
        LLM_MODEL: Gemini model name
        SCORE_CACHE_TTL: Match score cache time-to-live in seconds
        CATALOG_CACHE_TTL: Catalog and category cache time-to-live in seconds
        CACHE_SWEEP_INTERVAL: Seconds between expired-entry sweeps
        MIN_MATCH_SCORE: Minimum match score for a product to be recommended
        MAX_RECOMMENDATIONS: Maximum number of products returned
        MAX_CONDITIONS: Maximum number of user-selected conditions
        MAX_IMAGE_BYTES: Maximum decoded image size accepted
        CORS_ORIGINS: Allowed browser origins
        LOG_LEVEL: Logging level (DEBUG/INFO/WARNING/ERROR)
    """

    # Store Configuration
    WOOCOMMERCE_URL: Optional[str] = Field(
        default_factory=lambda: os.getenv("WOOCOMMERCE_URL"),
        description="Base URL of the WooCommerce store"
    )

    WOOCOMMERCE_CONSUMER_KEY: Optional[str] = Field(
        default_factory=lambda: os.getenv("WOOCOMMERCE_CONSUMER_KEY"),
        description="WooCommerce REST API consumer key"
    )

    WOOCOMMERCE_CONSUMER_SECRET: Optional[str] = Field(
        default_factory=lambda: os.getenv("WOOCOMMERCE_CONSUMER_SECRET"),
        description="WooCommerce REST API consumer secret"
    )

    API_TIMEOUT: int = Field(
        default_factory=lambda: _env_int("API_TIMEOUT", 15),
        ge=1,
        le=120,
        description="Store request timeout in seconds"
    )

    CATALOG_PAGE_SIZE: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Products requested per catalog page (WooCommerce maximum is 100)"
    )

    CATALOG_MAX_PAGES: int = Field(
        default_factory=lambda: _env_int("CATALOG_MAX_PAGES", 10),
        ge=1,
        le=100,
        description="Maximum catalog pages fetched per cache refresh"
    )

    # Gemini Configuration (Optional)
    GEMINI_API_KEY: Optional[str] = Field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY"),
        description="Google Gemini API key for face validation, skin analysis and suggestions"
    )

    LLM_MODEL: str = Field(
        default_factory=lambda: os.getenv("LLM_MODEL", "gemini-2.0-flash"),
        description="Gemini model used by the AI services"
    )

    # Caching Configuration
    SCORE_CACHE_TTL: int = Field(
        default_factory=lambda: _env_int("SCORE_CACHE_TTL", 300),
        ge=1,
        le=86400,
        description="Match score cache time-to-live in seconds"
    )

    CATALOG_CACHE_TTL: int = Field(
        default_factory=lambda: _env_int("CATALOG_CACHE_TTL", 600),
        ge=1,
        le=86400,
        description="Catalog and category cache time-to-live in seconds"
    )

    CACHE_SWEEP_INTERVAL: int = Field(
        default_factory=lambda: _env_int("CACHE_SWEEP_INTERVAL", 600),
        ge=1,
        le=86400,
        description="Seconds between expired cache entry sweeps"
    )

    # Recommendation Limits
    MIN_MATCH_SCORE: int = Field(
        default=40,
        ge=0,
        le=100,
        description="Minimum match score for a product to be recommended"
    )

    MAX_RECOMMENDATIONS: int = Field(
        default=12,
        ge=1,
        le=50,
        description="Maximum number of products to return"
    )

    # Request Limits
    MAX_CONDITIONS: int = Field(
        default=5,
        ge=1,
        le=9,
        description="Maximum number of user-selected skin conditions"
    )

    MAX_IMAGE_BYTES: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Maximum decoded size of the uploaded image"
    )

    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,http://localhost:8080"
            ).split(",")
            if origin.strip()
        ],
        description="Browser origins allowed to call the API"
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"),
        description="Logging level (DEBUG/INFO/WARNING/ERROR)"
    )

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of: {', '.join(valid_levels)}"
            )
        return v_upper

    @field_validator('WOOCOMMERCE_URL')
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        """Ensure the store URL is properly formatted."""
        if not v:
            return None
        if not v.startswith(('http://', 'https://')):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip('/')  # Remove trailing slash


# Create global settings instance
settings = Settings()


# Configure logging based on settings
def configure_logging():
    """Configure application logging based on settings."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {settings.LOG_LEVEL} level")
    logger.info(f"Store URL: {settings.WOOCOMMERCE_URL or 'not configured'}")
    logger.info(
        f"Cache TTLs: scores={settings.SCORE_CACHE_TTL}s, "
        f"catalog={settings.CATALOG_CACHE_TTL}s, sweep every {settings.CACHE_SWEEP_INTERVAL}s"
    )
    logger.info(f"AI analysis: {'Enabled' if settings.GEMINI_API_KEY else 'Disabled (no GEMINI_API_KEY)'}")


# Initialize logging on import
configure_logging()
