"""Application configuration."""

import os

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from calino_backend.domain.licenses import ProductGrant, ProductTier

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class LicenseProduct(BaseModel):
    """Tier and credits unlocked by one storefront product."""

    tier: ProductTier
    credits: int = Field(ge=0)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    verifier_base_url: str = "https://api.gumroad.com/v2"
    verifier_timeout_seconds: float = 10.0
    history_retention_limit: int = 50
    history_default_page_size: int = 10
    license_products: dict[str, LicenseProduct] = Field(default_factory=dict)
    images_dir: str | None = None
    log_level: str = "INFO"
    cors_allow_origins: str = "*"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def product_catalog(settings: Settings) -> dict[str, ProductGrant]:
    """Build the product id to grant mapping from settings."""
    return {
        product_id: ProductGrant(tier=product.tier, credits=product.credits)
        for product_id, product in settings.license_products.items()
    }


def parse_allowed_origins(raw: str | None) -> list[str]:
    """Parse CORS origins from a comma separated env value."""
    if raw is None:
        return []
    cleaned = raw.strip()
    if cleaned == "*":
        return ["*"]
    return [chunk.strip() for chunk in cleaned.split(",") if chunk.strip()]
