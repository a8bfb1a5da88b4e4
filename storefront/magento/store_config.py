"""
Magento Store Configuration
Websites, store groups, store views and their configs, loaded once and cached
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import asyncio
import logging

from storefront.config import settings
from storefront.magento.client import Auth, MagentoClient
from storefront.utils.cache import TTLCache

logger = logging.getLogger(__name__)

STORE_CONFIG_KEY = "backend_config"


@dataclass
class BackendConfig:
    """Store structure of the Magento instance"""
    stores: List[Dict[str, Any]] = field(default_factory=list)
    store_configs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    default_store_code: Optional[str] = None

    def get_store_config(self, store_code: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Config of the given store view, falling back to the default one"""
        return self.store_configs.get(store_code or self.default_store_code)

    def has_store(self, store_code: str) -> bool:
        return store_code in self.store_configs

    def active_currencies(self, store_code: Optional[str] = None) -> List[str]:
        """Display currencies of all store views in the same store group"""
        current = self.get_store_config(store_code)
        if not current:
            return []

        currencies = []
        for store_config in self.store_configs.values():
            if store_config.get("store_group_id") != current.get("store_group_id"):
                continue
            currency = store_config.get("default_display_currency_code")
            if currency and currency not in currencies:
                currencies.append(currency)
        return currencies

    def locales(self) -> List[str]:
        result = []
        for store_config in self.store_configs.values():
            locale = store_config.get("locale")
            if locale and locale not in result:
                result.append(locale)
        return result


def build_backend_config(
    store_configs: List[Dict[str, Any]],
    store_views: List[Dict[str, Any]],
    store_groups: List[Dict[str, Any]],
    websites: List[Dict[str, Any]],
    default_store_code: Optional[str] = None
) -> BackendConfig:
    """Combine the four store endpoints into one BackendConfig"""
    views_by_id = {view["id"]: view for view in store_views}
    groups_by_id = {group["id"]: group for group in store_groups}

    config_map = {}
    for store_config in store_configs:
        view = views_by_id.get(store_config.get("id")) or {}
        config_map[store_config["code"]] = {
            **store_config,
            "store_group_id": view.get("store_group_id"),
            "name": view.get("name"),
        }

    stores = []
    default_code = None
    # website 0 is the admin scope
    for website in websites:
        if not website.get("id"):
            continue
        group = groups_by_id.get(website.get("default_group_id")) or {}
        view = views_by_id.get(group.get("default_store_id")) or {}
        if not view.get("code"):
            continue
        stores.append({"name": website.get("name"), "code": view["code"]})
        if default_code is None or website.get("is_default"):
            default_code = view["code"]

    if default_store_code and default_store_code in config_map:
        default_code = default_store_code

    return BackendConfig(stores=stores, store_configs=config_map, default_store_code=default_code)


class StoreConfigLoader:
    """Loads and caches the BackendConfig of one Magento instance"""

    def __init__(self, client: MagentoClient, ttl_seconds: Optional[int] = None):
        self.client = client
        self._cache = TTLCache(max_size=1, ttl_seconds=ttl_seconds or settings.STORE_CONFIG_TTL_SECONDS)

    async def get(self) -> BackendConfig:
        cached = self._cache.get(STORE_CONFIG_KEY)
        if cached is not None:
            return cached

        store_configs, store_views, store_groups, websites = await asyncio.gather(
            self.client.get("/store/storeConfigs", auth=Auth.ADMIN),
            self.client.get("/store/storeViews", auth=Auth.ADMIN),
            self.client.get("/store/storeGroups", auth=Auth.ADMIN),
            self.client.get("/store/websites", auth=Auth.ADMIN),
        )

        config = build_backend_config(
            store_configs or [],
            store_views or [],
            store_groups or [],
            websites or [],
            settings.MAGENTO_DEFAULT_STORE_CODE
        )
        logger.info(
            f"Loaded Magento store configuration: {len(config.stores)} stores, "
            f"default store '{config.default_store_code}'"
        )

        self._cache.set(STORE_CONFIG_KEY, config)
        return config

    def invalidate(self) -> None:
        self._cache.clear()
