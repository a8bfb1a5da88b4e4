"""
Commerce Backend Factory
Provides the per-request commerce backend bound to a visitor session
The REST client and store configuration cache are shared process-wide
"""
from typing import Optional

from storefront.config import settings, CommerceProvider
from storefront.commerce.interface import CommerceBackend
from storefront.commerce.magento_backend import Magento2Backend
from storefront.magento.client import MagentoClient
from storefront.magento.store_config import StoreConfigLoader
from storefront.session import ShopSession

class CommerceFactory:
    """Factory for creating commerce backend instances"""

    @staticmethod
    def create_backend(
        session: ShopSession,
        provider: Optional[CommerceProvider] = None
    ) -> CommerceBackend:
        """
        Create commerce backend instance

        Args:
            session: Session of the current visitor
            provider: Commerce provider (defaults to settings.COMMERCE_PROVIDER)

        Returns:
            CommerceBackend instance
        """
        if provider is None:
            provider = settings.COMMERCE_PROVIDER

        if provider == CommerceProvider.MAGENTO2:
            return Magento2Backend(session, get_magento_client(), get_store_config_loader())
        else:
            raise ValueError(f"Unsupported commerce provider: {provider}")

# Singleton instances
_magento_client: Optional[MagentoClient] = None
_store_config_loader: Optional[StoreConfigLoader] = None

def get_magento_client() -> MagentoClient:
    """Get or create the shared Magento REST client"""
    global _magento_client
    if _magento_client is None:
        _magento_client = MagentoClient()
    return _magento_client

def get_store_config_loader() -> StoreConfigLoader:
    """Get or create the shared store configuration loader"""
    global _store_config_loader
    if _store_config_loader is None:
        _store_config_loader = StoreConfigLoader(get_magento_client())
    return _store_config_loader

def create_backend(session: ShopSession) -> CommerceBackend:
    """
    Backend for one request
    This is the main entry point for commerce operations
    """
    return CommerceFactory.create_backend(session)

async def close_commerce_backend() -> None:
    """Release the shared HTTP connections (application shutdown)"""
    global _magento_client, _store_config_loader
    if _magento_client is not None:
        await _magento_client.aclose()
    _magento_client = None
    _store_config_loader = None
