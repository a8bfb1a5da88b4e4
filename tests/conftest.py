"""Pytest configuration and fixtures"""
import os
import pytest
import httpx

# Set test environment variables
os.environ.setdefault("MAGENTO_URL", "https://magento.test")
os.environ.setdefault("SESSION_SECRET", "test_session_secret")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from storefront.commerce.magento_backend import Magento2Backend  # noqa: E402
from storefront.magento.client import MagentoClient  # noqa: E402
from storefront.magento.store_config import StoreConfigLoader  # noqa: E402
from storefront.session import ShopSession  # noqa: E402

REST_PREFIX = "/rest/V1"


class FakeMagento:
    """Routes httpx requests to canned Magento responses and records them"""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, json=None, status=200):
        """json may be a callable taking the request and returning an httpx.Response"""
        self.routes[(method, REST_PREFIX + path)] = (status, json)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": f"Request does not match any route: {key}"})

        status, body = self.routes[key]
        if callable(body):
            return body(request)
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def calls(self, method, path):
        return [
            request for request in self.requests
            if request.method == method and request.url.path == REST_PREFIX + path
        ]

    def client(self, **kwargs) -> MagentoClient:
        kwargs.setdefault("access_token", "integration-token")
        return MagentoClient(
            base_url="https://magento.test",
            transport=httpx.MockTransport(self.handler),
            **kwargs
        )


@pytest.fixture
def fake_magento():
    return FakeMagento()


@pytest.fixture
def session():
    return ShopSession({})


@pytest.fixture
def backend(fake_magento, session):
    client = fake_magento.client()
    return Magento2Backend(session, client, StoreConfigLoader(client))


@pytest.fixture
def customer_session(session):
    session.set_customer_token("customer-token", 1)
    return session


@pytest.fixture
def store_endpoints(fake_magento):
    """Two websites, the default one with EUR and USD store views"""
    fake_magento.add("GET", "/store/storeConfigs", [
        {"id": 1, "code": "default", "website_id": 1, "locale": "en_US",
         "base_currency_code": "EUR", "default_display_currency_code": "EUR",
         "timezone": "Europe/Amsterdam", "weight_unit": "kgs",
         "base_url": "https://magento.test/"},
        {"id": 2, "code": "usd", "website_id": 1, "locale": "en_US",
         "base_currency_code": "EUR", "default_display_currency_code": "USD",
         "timezone": "Europe/Amsterdam", "weight_unit": "kgs",
         "base_url": "https://magento.test/"},
        {"id": 3, "code": "de", "website_id": 2, "locale": "de_DE",
         "base_currency_code": "EUR", "default_display_currency_code": "EUR",
         "timezone": "Europe/Berlin", "weight_unit": "kgs",
         "base_url": "https://magento.test/de/"},
    ])
    fake_magento.add("GET", "/store/storeViews", [
        {"id": 0, "code": "admin", "website_id": 0, "store_group_id": 0, "name": "Admin"},
        {"id": 1, "code": "default", "website_id": 1, "store_group_id": 1, "name": "English"},
        {"id": 2, "code": "usd", "website_id": 1, "store_group_id": 1, "name": "English USD"},
        {"id": 3, "code": "de", "website_id": 2, "store_group_id": 2, "name": "Deutsch"},
    ])
    fake_magento.add("GET", "/store/storeGroups", [
        {"id": 0, "website_id": 0, "default_store_id": 0, "name": "Default"},
        {"id": 1, "website_id": 1, "default_store_id": 1, "name": "Main Store"},
        {"id": 2, "website_id": 2, "default_store_id": 3, "name": "German Store"},
    ])
    fake_magento.add("GET", "/store/websites", [
        {"id": 0, "code": "admin", "name": "Admin", "default_group_id": 0},
        {"id": 1, "code": "base", "name": "Main Website", "default_group_id": 1},
        {"id": 2, "code": "de", "name": "German Website", "default_group_id": 2},
    ])
    return fake_magento


@pytest.fixture
def sample_product():
    """Configurable product as returned by the /url/ endpoint"""
    return {
        "id": 42,
        "sku": "MJ01",
        "name": "Beaumont <b>Summit</b> Kit",
        "price": 0,
        "type_id": "configurable",
        "custom_attributes": [
            {"attribute_code": "url_key", "value": "beaumont-summit-kit"},
            {"attribute_code": "description", "value": "<p>Warm jacket</p>"},
            {"attribute_code": "meta_title", "value": "Beaumont Summit Kit"},
            {"attribute_code": "meta_description", "value": "Jacket for cold days"},
            {"attribute_code": "meta_keyword", "value": "jacket,winter"},
        ],
        "extension_attributes": {
            "thumbnailUrl": "https://magento.test/media/mj01.jpg",
            "mediaGallerySizes": [{"full": "https://magento.test/media/mj01-full.jpg",
                                   "thumbnail": "https://magento.test/media/mj01-thumb.jpg"}],
            "minPrice": 42.0,
            "maxPrice": 58.5,
            "stock_item": {"item_id": 9, "qty": 100, "is_in_stock": True, "min_qty": 0},
            "configurable_product_options": [
                {"id": 1, "attribute_id": "93", "label": "Color", "position": 0,
                 "product_id": 42, "values": [{"value_index": 49}, {"value_index": 52}]}
            ],
            "breadcrumbs": [
                {"name": "Men", "urlPath": "men", "urlKey": "men"},
            ],
        },
    }
