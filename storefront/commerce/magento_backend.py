"""
Magento 2 Commerce Backend Implementation
Implements CommerceBackend on top of the Magento 2 REST API

Resolver calls become sequences of REST calls; the visitor's cart quote id,
customer token and currency live in the ShopSession.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import asyncio
import logging

from storefront.config import settings
from storefront.commerce.interface import CommerceBackend
from storefront.errors import (
    INVALID_CART,
    STOCK_TOO_LOW,
    AuthorizationError,
    MagentoApiError,
    SessionStateError,
    StorefrontError,
)
from storefront.magento.client import Auth, MagentoClient
from storefront.magento.converters import (
    attach_pagination,
    convert_address_data,
    convert_cart_data,
    convert_category_data,
    convert_customer_data,
    convert_keys,
    convert_list,
    convert_order,
    prepare_address_for_order,
    process_price,
    reduce_url,
)
from storefront.magento.store_config import BackendConfig, StoreConfigLoader
from storefront.session import ShopSession

logger = logging.getLogger(__name__)

# Magento visibility: 1 not visible, 2 catalog, 3 search, 4 catalog and search
VISIBLE_IN_CATALOG = "2,4"
# virtual and downloadable products are not sold through the storefront
SUPPORTED_PRODUCT_TYPES = "simple,configurable,bundle"
ADDRESS_PATH = "/customers/me/address"


def empty_cart() -> Dict[str, Any]:
    return {
        "active": False,
        "items_qty": 0,
        "items": [],
        "totals": []
    }


def add_search_filter(
    filter_groups: List[Dict],
    field: str,
    value: Any,
    condition_type: str = "eq"
) -> List[Dict]:
    """Append a single-filter group (groups are AND-ed by Magento)"""
    filter_groups.append({
        "filters": [
            {
                "field": field,
                "value": value,
                "conditionType": condition_type
            }
        ]
    })
    return filter_groups


def is_filter_set(field: str, filter_groups: Optional[List[Dict]] = None) -> bool:
    return any(
        item.get("field") == field
        for group in filter_groups or []
        for item in group.get("filters") or []
    )


class Magento2Backend(CommerceBackend):
    """Magento 2 implementation of CommerceBackend"""

    name = "magento2"

    def __init__(
        self,
        session: ShopSession,
        client: MagentoClient,
        store_config_loader: Optional[StoreConfigLoader] = None
    ):
        super().__init__(session)
        self.client = client
        self.store_config_loader = store_config_loader or StoreConfigLoader(client)

    # ---------- transport ----------

    async def _request(self, method: str, path: str, auth: Auth = Auth.CUSTOMER, **kwargs) -> Any:
        return await self.client.request(
            method,
            path,
            auth=auth,
            customer_token=self.session.customer_token,
            store_code=self.session.store_code or settings.MAGENTO_DEFAULT_STORE_CODE,
            **kwargs
        )

    async def get(self, path: str, params: Optional[Dict] = None, auth: Auth = Auth.CUSTOMER) -> Any:
        return await self._request("GET", path, auth=auth, params=params)

    async def post(self, path: str, data: Any = None, auth: Auth = Auth.CUSTOMER) -> Any:
        return await self._request("POST", path, auth=auth, json=data)

    async def put(self, path: str, data: Any = None, auth: Auth = Auth.CUSTOMER) -> Any:
        return await self._request("PUT", path, auth=auth, json=data)

    async def delete(self, path: str, auth: Auth = Auth.CUSTOMER) -> Any:
        return await self._request("DELETE", path, auth=auth)

    # ---------- shop configuration ----------

    async def fetch_backend_config(self) -> BackendConfig:
        """Load store structure and mirror the active store settings into the session"""
        config = await self.store_config_loader.get()
        store_config = config.get_store_config(self.session.store_code)
        if store_config:
            self.session.apply_store_config(store_config)
        return config

    async def current_currency(self) -> Optional[str]:
        """Session currency, the store default when none was chosen yet"""
        if self.session.currency:
            return self.session.currency
        try:
            await self.fetch_backend_config()
        except StorefrontError as e:
            logger.warning(f"{self.name}: Could not load store configuration for currency: {e}")
        return self.session.currency

    async def shop_config(self) -> Dict:
        config = await self.fetch_backend_config()
        store_config = config.get_store_config(self.session.store_code) or {}

        return {
            "stores": list(config.stores),
            "currencies": config.active_currencies(self.session.store_code),
            "base_currency": self.session.base_currency,
            "timezone": self.session.timezone,
            "weight_unit": self.session.weight_unit,
            "active_store": self.session.store_code or config.default_store_code,
            "active_currency": self.session.currency,
            "active_locale": store_config.get("locale"),
            "locales": config.locales(),
        }

    async def set_shop_store(self, store_code: str) -> Dict:
        config = await self.store_config_loader.get()
        if not config.has_store(store_code):
            raise StorefrontError(f"Unknown store: {store_code}", code="INVALID_STORE", user_message=True, no_logging=True)

        self.session.store_code = store_code
        # display currency is per store view
        self.session.currency = None
        return await self.shop_config()

    async def set_shop_currency(self, currency: str) -> Dict:
        config = await self.fetch_backend_config()
        if currency not in config.active_currencies(self.session.store_code):
            raise StorefrontError(
                f"Currency {currency} is not available in this store",
                code="INVALID_CURRENCY",
                user_message=True,
                no_logging=True
            )

        self.session.currency = currency
        return await self.shop_config()

    # ---------- catalog ----------

    async def category(self, category_id: int) -> Dict:
        response = await self.get(f"/categories/{category_id}", auth=Auth.ADMIN)
        return convert_category_data(response)

    async def products(
        self,
        filters: Optional[List[Dict]] = None,
        category_id: Optional[int] = None,
        skus: Optional[List[str]] = None,
        query: Optional[Dict] = None,
        sort_orders: Optional[List[Dict]] = None,
        include_subcategories: bool = False,
        with_attribute_filters: Optional[List[str]] = None
    ) -> Dict:
        # simple {field, value} filters become Magento filter groups
        filters_to_check = {item["field"]: item.get("value") for item in filters or []}
        if category_id:
            filters_to_check["category_id"] = category_id

        filter_groups: List[Dict] = []
        for field, value in filters_to_check.items():
            if value:
                add_search_filter(filter_groups, field, value)

        if skus:
            add_search_filter(filter_groups, "sku", ",".join(skus), "in")

        return await self.fetch_product_list(
            filter_groups,
            query=query,
            sort_orders=sort_orders,
            include_subcategories=include_subcategories,
            with_attribute_filters=with_attribute_filters
        )

    async def fetch_product_list(self, filter_groups: List[Dict], **kwargs) -> Dict:
        """Product listing restricted to visible, enabled, sellable products"""
        add_search_filter(filter_groups, "visibility", VISIBLE_IN_CATALOG, "in")

        if not is_filter_set("status", filter_groups):
            add_search_filter(filter_groups, "status", "1")

        add_search_filter(filter_groups, "type_id", SUPPORTED_PRODUCT_TYPES, "in")

        return await self.fetch_list("/products", filter_groups, **kwargs)

    async def fetch_list(
        self,
        path: str,
        filter_groups: List[Dict],
        query: Optional[Dict] = None,
        sort_orders: Optional[List[Dict]] = None,
        include_subcategories: bool = False,
        with_attribute_filters: Optional[List[str]] = None
    ) -> Dict:
        """Generic listing call for category and product endpoints"""
        query = query or {}
        search_criteria: Dict[str, Any] = {
            "currentPage": int(query.get("page") or 1),
            "filterGroups": filter_groups,
        }

        # list endpoints want an int or no pageSize at all
        if query.get("per_page"):
            search_criteria["pageSize"] = int(query["per_page"])

        if sort_orders:
            search_criteria["sortOrders"] = [
                {"field": order["field"], "direction": order.get("direction") or "ASC"}
                for order in sort_orders
            ]

        response = await self.get(
            path,
            {
                "includeSubcategories": include_subcategories,
                "withAttributeFilters": with_attribute_filters or [],
                "searchCriteria": search_criteria,
            },
            auth=Auth.ADMIN
        )

        return convert_list(response or {}, await self.current_currency())

    async def fetch_url(self, path: str, load_entity_data: bool = False) -> Dict:
        """Fetch any Magento entity (product, category, CMS page) by its url"""
        response = await self.get(
            "/url/",
            {"request_path": path, "load_entity_data": load_entity_data}
        )
        currency = await self.current_currency()
        reduced = reduce_url(response, currency, self.client.base_url)
        reduced.setdefault("path", path)
        return reduced

    async def product(self, product_id: int) -> Optional[Dict]:
        return await self.fetch_url(f"catalog/product/view/id/{product_id}", load_entity_data=True)

    async def countries(self) -> Dict:
        response = await self.get("/directory/countries")

        countries = [
            {
                "code": item.get("id"),
                "english_name": item.get("full_name_english"),
                "local_name": item.get("full_name_locale"),
                "regions": item.get("available_regions") or [],
            }
            for item in response or []
        ]
        return {"items": countries}

    # ---------- cart ----------

    async def ensure_cart(self) -> Dict:
        """Make sure the session has a cart, creating one when missing"""
        if self.session.quote_id:
            return self.session.cart

        cart_path = "/carts/mine" if self.session.customer_token else "/guest-carts"
        quote_id = await self.post(cart_path)
        logger.debug(f"{self.name}: Created cart {quote_id} via {cart_path}")

        return self.session.set_quote_id(quote_id)

    def get_cart_path(self) -> str:
        """Cart endpoint prefix for the current session state"""
        if self.session.customer_token:
            return "/carts/mine"

        if not self.session.quote_id:
            raise SessionStateError("No cart in session for not registered user.")

        return f"/guest-carts/{self.session.quote_id}"

    def remove_cart_data(self) -> None:
        self.session.remove_cart_data()

    async def cart(self) -> Dict:
        if not self.session.quote_id:
            return empty_cart()

        cart_path = self.get_cart_path()

        try:
            quote_data, totals_data = await asyncio.gather(
                self.get(cart_path),
                self.get(f"{cart_path}/totals")
            )
        except StorefrontError as e:
            # cart is gone (ordered, expired, other store), start over
            logger.warning(f"{self.name}: Could not fetch cart, removing it from session: {e}")
            self.remove_cart_data()
            return empty_cart()

        return convert_cart_data(quote_data, totals_data)

    async def add_to_cart(self, data: Dict) -> Dict:
        cart_data = await self.ensure_cart()
        cart_path = self.get_cart_path()

        cart_item: Dict[str, Any] = {
            "sku": data["sku"],
            "qty": data["qty"],
            "quote_id": cart_data["quote_id"],
        }

        if data.get("configurable_options"):
            cart_item["product_option"] = {
                "extension_attributes": {
                    "configurable_item_options": [
                        {"option_id": item["option_id"], "option_value": item["value"]}
                        for item in data["configurable_options"]
                    ]
                }
            }

        if data.get("bundle_options"):
            cart_item["product_option"] = {
                "extension_attributes": {
                    "bundle_options": data["bundle_options"]
                }
            }

        try:
            response = await self.post(f"{cart_path}/items", {"cart_item": cart_item})
        except MagentoApiError as e:
            # only works as long as Magento does not translate its messages
            if e.status_code == 400:
                if e.message.startswith("We don't have as many"):
                    e.mark_user_facing(STOCK_TOO_LOW)
            elif e.message.startswith("No such entity with cartId"):
                self.remove_cart_data()
                e.code = INVALID_CART
            raise

        return process_price(convert_keys(response), ["price"])

    async def update_cart_item(self, data: Dict) -> Dict:
        cart_path = self.get_cart_path()
        quote_id = self.session.quote_id

        if not quote_id:
            raise SessionStateError("Trying to update cart item without quoteId")

        payload = {
            "cart_item": {
                "quote_id": quote_id,
                "sku": data.get("sku"),
                "qty": int(data["qty"]),
            }
        }
        response = await self.put(f"{cart_path}/items/{data['item_id']}", payload)

        return process_price(convert_keys(response), ["price"])

    async def remove_cart_item(self, data: Dict) -> Dict:
        item_id = data["item_id"]

        if not self.session.quote_id:
            logger.warning(f"{self.name}: Trying to remove cart item without quoteId")
            return {}

        cart_path = self.get_cart_path()
        result = await self.delete(f"{cart_path}/items/{item_id}")

        return {"item_id": item_id} if result else {}

    async def apply_coupon(self, coupon_code: str) -> bool:
        if not self.session.quote_id:
            raise SessionStateError("Trying to apply coupon without quoteId in session")

        route = self.get_cart_path()
        try:
            return await self.put(f"{route}/coupons/{quote(coupon_code, safe='')}")
        except MagentoApiError as e:
            # unknown or expired coupon code
            if e.status_code == 404:
                e.mark_user_facing()
            raise

    async def cancel_coupon(self) -> bool:
        if not self.session.quote_id:
            raise SessionStateError("Trying to remove coupon without quoteId in session")

        route = self.get_cart_path()
        return await self.delete(f"{route}/coupons")

    # ---------- checkout ----------

    async def perform_cart_action(self, path: str, method: str, data: Any = None) -> Any:
        """Call a cart-scoped endpoint; scalar responses are wrapped as {"data": value}"""
        if not self.session.quote_id:
            error_message = f"Quote id is empty, cannot perform api call for {path}"
            logger.warning(error_message)
            raise SessionStateError(error_message)

        cart_path = self.get_cart_path()
        response = await self._request(
            method.upper(),
            f"{cart_path}{path}",
            json=None if method.lower() == "get" else data
        )
        cart_data = convert_keys(response)

        if isinstance(cart_data, (dict, list)):
            return cart_data

        return {"data": cart_data}

    async def estimate_shipping_methods(self, address: Dict) -> List[Dict]:
        methods = await self.perform_cart_action(
            "/estimate-shipping-methods",
            "post",
            {"address": prepare_address_for_order(address)}
        )

        currency = await self.current_currency()
        for method in methods:
            method["currency"] = currency

        return methods

    async def set_shipping(self, data: Dict) -> Dict:
        payload = {
            "address_information": {
                **data,
                "billing_address": prepare_address_for_order(data.get("billing_address")),
                "shipping_address": prepare_address_for_order(data.get("shipping_address")),
            }
        }
        return await self.perform_cart_action("/shipping-information", "post", payload)

    async def place_order(self, data: Dict) -> Dict:
        try:
            order_data = await self.perform_cart_action("/deity-order", "put", dict(data))
        except MagentoApiError as e:
            # payment declined, quote not valid for checkout
            if e.status_code == 400:
                e.mark_user_facing()
            raise

        extension_attributes = order_data.get("extension_attributes") or {}
        if "adyen" in extension_attributes:
            order_data["adyen"] = extension_attributes.pop("adyen")

        order_id = order_data.get("order_id")
        if not order_id:
            raise StorefrontError("no order id from magento.")

        self.session.order_id = order_id
        self.session.order_quote_id = self.session.quote_id

        return order_data

    # ---------- customer ----------

    async def sign_in(self, email: str, password: str) -> bool:
        payload: Dict[str, Any] = {"username": email, "password": password}
        if self.session.quote_id:
            payload["guest_quote_id"] = self.session.quote_id

        try:
            response = await self.post("/integration/customer/token", payload, auth=Auth.NONE)
        except MagentoApiError as e:
            # wrong login or password is not an internal error
            if e.status_code == 401:
                e.mark_user_facing()
            raise

        # stock Magento answers with the bare token, extended modules add valid_time
        if isinstance(response, dict):
            response = convert_keys(response)
            token = response["token"]
            valid_time = float(response.get("valid_time") or settings.MAGENTO_CUSTOMER_TOKEN_LIFETIME_HOURS)
        else:
            token = response
            valid_time = settings.MAGENTO_CUSTOMER_TOKEN_LIFETIME_HOURS

        expiration_time = self.session.set_customer_token(token, valid_time)
        logger.debug(f"{self.name}: Customer token valid for {valid_time} hours, till {expiration_time}")

        # Magento merges the guest cart into the customer cart, load that one
        self.remove_cart_data()
        await self.ensure_cart()

        return True

    async def sign_out(self) -> bool:
        # TODO: revoke the token through /integration/customer/{id}/tokens once the customer id is kept in session
        self.session.sign_out()
        return True

    async def sign_up(self, data: Dict) -> bool:
        customer_data = {
            "customer": {
                "email": data["email"],
                "firstname": data["firstname"],
                "lastname": data["lastname"],
                "extension_attributes": {
                    "guest_quote_id": self.session.quote_id
                }
            },
            "password": data["password"]
        }

        try:
            await self.post("/customers", customer_data)
        except MagentoApiError as e:
            # password validation failed or email already registered
            if e.status_code == 400:
                e.mark_user_facing()
            raise

        if data.get("auto_sign_in"):
            return await self.sign_in(data["email"], data["password"])

        return True

    async def customer(self) -> Optional[Dict]:
        # None instead of an error keeps "is signed in" checks simple for clients
        if not self.session.customer_token:
            return None

        response = await self.get("/customers/me")
        return convert_customer_data(response)

    async def edit_customer_data(self, data: Dict) -> Dict:
        response = await self.put("/customers/me", {"customer": dict(data)})
        return convert_customer_data(response)

    async def address(self, address_id: Optional[int] = None) -> Any:
        """Single address by id, all addresses of the customer without one"""
        result = await self.forward_address_action(address_id=address_id)
        if address_id is None and isinstance(result, dict):
            return [result]
        return result

    async def add_customer_address(self, data: Dict) -> Dict:
        return await self.forward_address_action(data=data, method="post")

    async def edit_customer_address(self, data: Dict) -> Dict:
        return await self.forward_address_action(address_id=data.get("id"), data=data, method="put")

    async def remove_customer_address(self, address_id: int) -> bool:
        return await self.forward_address_action(address_id=address_id, method="delete")

    async def forward_address_action(
        self,
        address_id: Optional[int] = None,
        data: Optional[Dict] = None,
        method: str = "get",
        path: str = ADDRESS_PATH
    ) -> Any:
        """Address management call for the signed-in customer"""
        if not self.session.customer_token:
            logger.error(f"{self.name}: Trying to edit customer data without customer token")
            raise AuthorizationError("You do not have an access to edit address data")

        address_path = f"{path}/{address_id}" if address_id else path
        payload = None

        if method not in ("get", "delete"):
            address = dict(data or {})
            street = address.get("street")
            address["street"] = street if isinstance(street, list) else [street]
            payload = {"address": address}

        response = await self._request(method.upper(), address_path, json=payload)

        if method == "delete":
            return response

        if isinstance(response, list):
            return [convert_address_data(item) for item in response]

        return convert_address_data(response)

    async def validate_password_token(self, token: str) -> bool:
        validate_path = f"/customers/0/password/resetLinkToken/{quote(token, safe='')}"
        try:
            return bool(await self.get(validate_path))
        except MagentoApiError as e:
            # expired or unknown token is an answer, not a failure
            logger.debug(f"{self.name}: Password reset token rejected: {e}")
            return False

    async def request_customer_password_reset_token(self, email: str) -> bool:
        try:
            await self.put("/customers/password", {"email": email, "template": "email_reset"})
        except MagentoApiError as e:
            # unknown email, answer the same way so registered emails cannot be probed
            if e.status_code != 404:
                raise
            logger.debug(f"{self.name}: Password reset requested for unknown email")
        return True

    async def reset_customer_password(self, reset_token: str, password: str) -> bool:
        return await self.put(
            "/customers/password/reset",
            {"email": "", "reset_token": reset_token, "new_password": password}
        )

    async def change_customer_password(self, password: str, current_password: str) -> bool:
        if not self.session.customer_token:
            logger.error(f"{self.name}: Trying to edit customer data without customer token")
            raise AuthorizationError("You do not have an access to edit account data")

        try:
            return await self.put(
                "/customers/me/password",
                {"current_password": current_password, "new_password": password}
            )
        except MagentoApiError as e:
            if e.status_code in (401, 503):
                e.mark_user_facing()
                # a wrong current password must not sign the customer out
                e.code = None
            raise

    # ---------- orders ----------

    async def orders(self, query: Optional[Dict] = None) -> Dict:
        query = query or {}

        if not self.session.customer_token:
            raise AuthorizationError("Trying to fetch customer orders without valid customer token")

        search_criteria: Dict[str, Any] = {
            "currentPage": int(query.get("page") or 1),
            "sortOrders": [
                {"field": "created_at", "direction": "desc"}
            ],
        }
        if query.get("per_page"):
            search_criteria["pageSize"] = int(query["per_page"])

        response = await self.get("/orders/mine", {"searchCriteria": search_criteria})

        return attach_pagination(convert_keys(response or {}))

    async def order(self, order_id: int) -> Optional[Dict]:
        if not order_id:
            logger.error(f"{self.name}: Trying to fetch customer order info without order id")
            raise StorefrontError("Failed to load an order.")

        if not self.session.customer_token:
            logger.error(f"{self.name}: Trying to fetch customer order info without customer token")
            raise AuthorizationError("Failed to load an order.")

        response = await self.get(f"/orders/{order_id}/order-info")
        return convert_order(response)

    async def last_order(self) -> Optional[Dict]:
        last_order_id = self.session.order_id
        paypal_express_hash = self.session.paypal_express_hash

        if not last_order_id and paypal_express_hash:
            # order id behind the hash generated when asking for a PayPal token
            last_order_id = await self.get(f"/orders/get-order-from-paypal-hash/{paypal_express_hash}")

        if not last_order_id:
            logger.warning(f"{self.name}: Trying to fetch order info without order id")
            return None

        response = await self.get(f"/orders/{last_order_id}", auth=Auth.ADMIN)

        order = convert_keys(response)
        order["payment_method_name"] = (order.get("payment") or {}).get("method")
        return order
