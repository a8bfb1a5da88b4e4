"""
Storefront Gateway Configuration
Central place to configure the commerce backend, session and HTTP settings
Change the Magento instance here (or in .env) without modifying service code
"""
from enum import Enum
from pydantic_settings import BaseSettings
from typing import Optional

class CommerceProvider(str, Enum):
    """Commerce backend provider options"""
    MAGENTO2 = "magento2"          # Magento 2 / Adobe Commerce REST API

class Settings(BaseSettings):
    """Application Settings"""

    # ============================================
    # COMMERCE BACKEND SELECTION
    # ============================================

    COMMERCE_PROVIDER: CommerceProvider = CommerceProvider.MAGENTO2

    # ============================================
    # MAGENTO CONFIGURATION
    # ============================================

    # Store root, REST calls go to {MAGENTO_URL}/rest/{store}/V1
    MAGENTO_URL: str = "http://localhost"

    # Integration access token, takes precedence over admin credentials
    MAGENTO_ACCESS_TOKEN: Optional[str] = None

    # Admin user used to obtain admin tokens for catalog/config endpoints
    MAGENTO_ADMIN_USERNAME: Optional[str] = None
    MAGENTO_ADMIN_PASSWORD: Optional[str] = None

    # Magento defaults: admin tokens live 4 hours, customer tokens 1 hour
    MAGENTO_ADMIN_TOKEN_LIFETIME_HOURS: float = 4
    MAGENTO_CUSTOMER_TOKEN_LIFETIME_HOURS: float = 1

    # Store view used when the session did not pick one
    MAGENTO_DEFAULT_STORE_CODE: Optional[str] = None

    MAGENTO_REQUEST_TIMEOUT: float = 30.0

    # Store configs, views, groups and websites rarely change
    STORE_CONFIG_TTL_SECONDS: int = 600

    # ============================================
    # SESSION SETTINGS
    # ============================================

    SESSION_SECRET: str = "change-me"
    SESSION_COOKIE: str = "storefront_session"
    SESSION_MAX_AGE: int = 14 * 24 * 60 * 60

    # ============================================
    # APPLICATION SETTINGS
    # ============================================

    APP_NAME: str = "Storefront Gateway"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True

# Global settings instance
settings = Settings()

# Helper function to get current backend info
def get_backend_info() -> dict:
    """Get current commerce backend configuration (no secrets)"""
    return {
        "commerce_provider": settings.COMMERCE_PROVIDER.value,
        "magento_url": settings.MAGENTO_URL,
        "default_store_code": settings.MAGENTO_DEFAULT_STORE_CODE,
        "auth": "integration_token" if settings.MAGENTO_ACCESS_TOKEN else "admin_credentials",
    }
