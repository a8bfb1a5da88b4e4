"""Tests for the Magento 2 commerce backend"""
import json

import httpx
import pytest

from storefront.errors import (
    INVALID_CART,
    STOCK_TOO_LOW,
    UNAUTHORIZED,
    AuthorizationError,
    MagentoApiError,
    SessionStateError,
    StorefrontError,
)


def body(request: httpx.Request):
    return json.loads(request.content)


class TestProducts:

    @pytest.mark.asyncio
    async def test_listing_search_criteria(self, backend, fake_magento, session, sample_product):
        session.currency = "EUR"
        fake_magento.add("GET", "/products", {
            "items": [sample_product],
            "search_criteria": {"current_page": 2, "page_size": 1},
            "total_count": 5,
        })

        result = await backend.products(
            filters=[{"field": "color", "value": "49"}, {"field": "size", "value": None}],
            category_id=3,
            skus=["MJ01", "MJ02"],
            query={"page": 2, "per_page": 1},
            sort_orders=[{"field": "price", "direction": "DESC"}],
            include_subcategories=True
        )

        params = fake_magento.requests[-1].url.params
        group = "searchCriteria[filterGroups][{}][filters][0][{}]"
        filters = [
            (params[group.format(index, "field")], params[group.format(index, "value")],
             params[group.format(index, "conditionType")])
            for index in range(6)
        ]
        assert filters == [
            ("color", "49", "eq"),
            ("category_id", "3", "eq"),
            ("sku", "MJ01,MJ02", "in"),
            ("visibility", "2,4", "in"),
            ("status", "1", "eq"),
            ("type_id", "simple,configurable,bundle", "in"),
        ]
        assert params["searchCriteria[currentPage]"] == "2"
        assert params["searchCriteria[pageSize]"] == "1"
        assert params["searchCriteria[sortOrders][0][field]"] == "price"
        assert params["searchCriteria[sortOrders][0][direction]"] == "DESC"
        assert params["includeSubcategories"] == "true"

        assert result["items"][0]["currency"] == "EUR"
        assert result["pagination"]["current_page"] == 2
        assert result["pagination"]["total_pages"] == 5

    @pytest.mark.asyncio
    async def test_status_filter_is_not_duplicated(self, backend, fake_magento, session):
        session.currency = "EUR"
        fake_magento.add("GET", "/products", {"items": [], "total_count": 0})

        await backend.products(filters=[{"field": "status", "value": "2"}])

        params = fake_magento.requests[-1].url.params
        fields = [value for key, value in params.multi_items() if key.endswith("[field]")]
        assert fields.count("status") == 1

    @pytest.mark.asyncio
    async def test_currency_falls_back_to_store_default(self, backend, store_endpoints):
        store_endpoints.add("GET", "/products", {"items": [{"id": 1, "sku": "BAG", "price": 20}], "total_count": 1})

        result = await backend.products()

        assert result["items"][0]["currency"] == "EUR"
        assert backend.session.currency == "EUR"


@pytest.mark.asyncio
async def test_fetch_url(backend, fake_magento, session, sample_product):
    session.currency = "EUR"
    fake_magento.add("GET", "/url/", {"entity_type": "product", "entity_id": 42, "product": sample_product})

    result = await backend.fetch_url("beaumont-summit-kit.html", True)

    params = fake_magento.requests[-1].url.params
    assert params["request_path"] == "beaumont-summit-kit.html"
    assert params["load_entity_data"] == "true"
    assert result["type"] == "shop-product"
    assert result["path"] == "beaumont-summit-kit.html"


@pytest.mark.asyncio
async def test_countries(backend, fake_magento):
    fake_magento.add("GET", "/directory/countries", [
        {"id": "NL", "full_name_english": "Netherlands", "full_name_locale": "Nederland", "available_regions": None}
    ])

    assert await backend.countries() == {
        "items": [{"code": "NL", "english_name": "Netherlands", "local_name": "Nederland", "regions": []}]
    }


class TestCart:

    @pytest.mark.asyncio
    async def test_empty_cart_without_quote(self, backend, fake_magento):
        cart = await backend.cart()

        assert cart == {"active": False, "items_qty": 0, "items": [], "totals": []}
        assert fake_magento.requests == []

    @pytest.mark.asyncio
    async def test_guest_cart(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        fake_magento.add("GET", "/guest-carts/masked", {"id": 5, "is_active": True, "items": []})
        fake_magento.add("GET", "/guest-carts/masked/totals", {"quote_currency_code": "EUR", "total_segments": []})

        cart = await backend.cart()

        assert cart["active"] is True
        assert cart["quote_currency"] == "EUR"

    @pytest.mark.asyncio
    async def test_missing_cart_is_removed_from_session(self, backend, fake_magento, session):
        session.set_quote_id("gone")

        cart = await backend.cart()

        assert cart["items"] == []
        assert session.quote_id is None

    @pytest.mark.asyncio
    async def test_add_to_cart_creates_guest_cart(self, backend, fake_magento, session):
        fake_magento.add("POST", "/guest-carts", "masked")
        fake_magento.add("POST", "/guest-carts/masked/items", {
            "item_id": 7, "sku": "MJ01", "qty": 1, "price": "42", "quote_id": "masked"
        })

        result = await backend.add_to_cart({
            "sku": "MJ01",
            "qty": 1,
            "configurable_options": [{"option_id": 93, "value": 49}],
        })

        assert session.quote_id == "masked"
        assert result["price"] == 42.0
        cart_item = body(fake_magento.requests[-1])["cart_item"]
        assert cart_item["quote_id"] == "masked"
        assert cart_item["product_option"] == {
            "extension_attributes": {"configurable_item_options": [{"option_id": 93, "option_value": 49}]}
        }

    @pytest.mark.asyncio
    async def test_add_to_cart_uses_customer_cart(self, backend, fake_magento, customer_session):
        fake_magento.add("POST", "/carts/mine", 12)
        fake_magento.add("POST", "/carts/mine/items", {"item_id": 1, "sku": "BAG", "qty": 1, "price": 20})

        await backend.add_to_cart({"sku": "BAG", "qty": 1})

        assert customer_session.quote_id == 12
        assert fake_magento.requests[-1].headers["Authorization"] == "Bearer customer-token"

    @pytest.mark.asyncio
    async def test_add_to_cart_stock_too_low(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        fake_magento.add(
            "POST", "/guest-carts/masked/items",
            {"message": "We don't have as many \"%1\" as you requested.", "parameters": ["Jacket"]},
            status=400
        )

        with pytest.raises(MagentoApiError) as exc_info:
            await backend.add_to_cart({"sku": "MJ01", "qty": 100})

        assert exc_info.value.code == STOCK_TOO_LOW
        assert exc_info.value.user_message
        assert exc_info.value.message == "We don't have as many \"Jacket\" as you requested."

    @pytest.mark.asyncio
    async def test_add_to_cart_invalid_cart(self, backend, fake_magento, session):
        session.set_quote_id("stale")
        fake_magento.add(
            "POST", "/guest-carts/stale/items",
            {"message": "No such entity with %fieldName = %fieldValue",
             "parameters": {"fieldName": "cartId", "fieldValue": "stale"}},
            status=404
        )

        with pytest.raises(MagentoApiError) as exc_info:
            await backend.add_to_cart({"sku": "MJ01", "qty": 1})

        assert exc_info.value.code == INVALID_CART
        assert session.quote_id is None

    @pytest.mark.asyncio
    async def test_update_cart_item(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        fake_magento.add("PUT", "/guest-carts/masked/items/7", {"item_id": 7, "qty": 3, "price": "42"})

        result = await backend.update_cart_item({"item_id": 7, "qty": 3, "sku": "MJ01"})

        assert result == {"item_id": 7, "qty": 3, "price": 42.0}
        assert body(fake_magento.requests[-1]) == {"cart_item": {"quote_id": "masked", "sku": "MJ01", "qty": 3}}

    @pytest.mark.asyncio
    async def test_update_cart_item_without_cart(self, backend):
        with pytest.raises(SessionStateError):
            await backend.update_cart_item({"item_id": 7, "qty": 3})

    @pytest.mark.asyncio
    async def test_remove_cart_item(self, backend, fake_magento, session):
        assert await backend.remove_cart_item({"item_id": 7}) == {}

        session.set_quote_id("masked")
        fake_magento.add("DELETE", "/guest-carts/masked/items/7", True)

        assert await backend.remove_cart_item({"item_id": 7}) == {"item_id": 7}

    @pytest.mark.asyncio
    async def test_unknown_coupon_is_user_facing(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        fake_magento.add(
            "PUT", "/guest-carts/masked/coupons/NOPE 10",
            {"message": "The coupon code isn't valid. Verify the code and try again."},
            status=404
        )

        with pytest.raises(MagentoApiError) as exc_info:
            await backend.apply_coupon("NOPE 10")

        assert exc_info.value.user_message
        assert "/coupons/NOPE%2010" in str(fake_magento.requests[-1].url)

    @pytest.mark.asyncio
    async def test_cancel_coupon(self, backend, fake_magento, customer_session):
        customer_session.set_quote_id(12)
        fake_magento.add("DELETE", "/carts/mine/coupons", True)

        assert await backend.cancel_coupon() is True


class TestCheckout:

    @pytest.mark.asyncio
    async def test_estimate_shipping_methods(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        session.currency = "USD"
        fake_magento.add("POST", "/guest-carts/masked/estimate-shipping-methods", [
            {"carrierCode": "flatrate", "methodCode": "flatrate", "amount": 5}
        ])

        methods = await backend.estimate_shipping_methods({"id": 4, "country_id": "US", "default_billing": True})

        assert methods == [{"carrier_code": "flatrate", "method_code": "flatrate", "amount": 5, "currency": "USD"}]
        assert body(fake_magento.requests[-1]) == {"address": {"country_id": "US"}}

    @pytest.mark.asyncio
    async def test_cart_action_without_quote(self, backend):
        with pytest.raises(SessionStateError):
            await backend.set_shipping({"shipping_address": {}})

    @pytest.mark.asyncio
    async def test_set_shipping(self, backend, fake_magento, customer_session):
        customer_session.set_quote_id(12)
        fake_magento.add("POST", "/carts/mine/shipping-information", {
            "paymentMethods": [{"code": "checkmo", "title": "Check / Money order"}],
            "totals": {"grand_total": 47},
        })

        result = await backend.set_shipping({
            "shipping_carrier_code": "flatrate",
            "shipping_method_code": "flatrate",
            "shipping_address": {"id": 4, "default_shipping": True, "city": "Austin"},
            "billing_address": {"id": 5, "default_billing": True, "default_shipping": False, "city": "Dallas"},
        })

        assert result["payment_methods"] == [{"code": "checkmo", "title": "Check / Money order"}]
        assert body(fake_magento.requests[-1]) == {
            "address_information": {
                "shipping_carrier_code": "flatrate",
                "shipping_method_code": "flatrate",
                "shipping_address": {"city": "Austin"},
                "billing_address": {"city": "Dallas"},
            }
        }

    @pytest.mark.asyncio
    async def test_place_order(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        fake_magento.add("PUT", "/guest-carts/masked/deity-order", {
            "order_id": "000000042",
            "extension_attributes": {"adyen": {"action": "redirect"}},
        })

        result = await backend.place_order({"email": "jane@example.com", "payment_method": {"method": "adyen_cc"}})

        assert result["adyen"] == {"action": "redirect"}
        assert result["extension_attributes"] == {}
        assert session.order_id == "000000042"
        assert session.order_quote_id == "masked"

    @pytest.mark.asyncio
    async def test_place_order_without_order_id(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        fake_magento.add("PUT", "/guest-carts/masked/deity-order", {"extension_attributes": {}})

        with pytest.raises(StorefrontError, match="no order id from magento."):
            await backend.place_order({})

    @pytest.mark.asyncio
    async def test_declined_payment_is_user_facing(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        fake_magento.add("PUT", "/guest-carts/masked/deity-order", {"message": "Payment declined"}, status=400)

        with pytest.raises(MagentoApiError) as exc_info:
            await backend.place_order({})

        assert exc_info.value.user_message


class TestCustomer:

    @pytest.mark.asyncio
    async def test_sign_in_merges_guest_cart(self, backend, fake_magento, session):
        session.set_quote_id("masked")
        fake_magento.add("POST", "/integration/customer/token", "customer-token")
        fake_magento.add("POST", "/carts/mine", 12)

        assert await backend.sign_in("jane@example.com", "secret") is True

        sign_in_request = fake_magento.calls("POST", "/integration/customer/token")[0]
        assert body(sign_in_request) == {
            "username": "jane@example.com",
            "password": "secret",
            "guest_quote_id": "masked",
        }
        assert "Authorization" not in sign_in_request.headers
        assert session.customer_token == "customer-token"
        assert session.quote_id == 12

    @pytest.mark.asyncio
    async def test_sign_in_with_token_lifetime(self, backend, fake_magento, session):
        fake_magento.add("POST", "/integration/customer/token", {"token": "customer-token", "validTime": 2})
        fake_magento.add("POST", "/carts/mine", 12)

        await backend.sign_in("jane@example.com", "secret")

        assert session.customer_token == "customer-token"

    @pytest.mark.asyncio
    async def test_wrong_password_is_user_facing(self, backend, fake_magento):
        fake_magento.add(
            "POST", "/integration/customer/token",
            {"message": "The account sign-in was incorrect or your account is disabled temporarily."},
            status=401
        )

        with pytest.raises(MagentoApiError) as exc_info:
            await backend.sign_in("jane@example.com", "wrong")

        assert exc_info.value.user_message
        assert exc_info.value.code is None

    @pytest.mark.asyncio
    async def test_sign_out(self, backend, customer_session):
        customer_session.set_quote_id(12)

        assert await backend.sign_out() is True
        assert customer_session.customer_token is None
        assert customer_session.quote_id is None

    @pytest.mark.asyncio
    async def test_sign_up_with_auto_sign_in(self, backend, fake_magento, session):
        fake_magento.add("POST", "/customers", {"id": 3, "email": "jane@example.com"})
        fake_magento.add("POST", "/integration/customer/token", "customer-token")
        fake_magento.add("POST", "/carts/mine", 12)

        result = await backend.sign_up({
            "email": "jane@example.com",
            "firstname": "Jane",
            "lastname": "Doe",
            "password": "Secret123!",
            "auto_sign_in": True,
        })

        assert result is True
        assert body(fake_magento.calls("POST", "/customers")[0])["customer"]["firstname"] == "Jane"
        assert session.customer_token == "customer-token"

    @pytest.mark.asyncio
    async def test_customer_without_token(self, backend, fake_magento):
        assert await backend.customer() is None
        assert fake_magento.requests == []

    @pytest.mark.asyncio
    async def test_customer(self, backend, fake_magento, customer_session):
        fake_magento.add("GET", "/customers/me", {
            "id": 3,
            "email": "jane@example.com",
            "addresses": [{"id": 4, "region": {"region": "Texas"}, "default_shipping": True}],
            "extension_attributes": {"is_subscribed": True},
        })

        customer = await backend.customer()

        assert customer["is_subscribed"] is True
        assert "extension_attributes" not in customer
        assert customer["addresses"][0]["region"] == "Texas"
        assert customer["addresses"][0]["default_billing"] is False

    @pytest.mark.asyncio
    async def test_edit_customer_data(self, backend, fake_magento, customer_session):
        fake_magento.add("PUT", "/customers/me", {
            "id": 3,
            "email": "jane@example.com",
            "firstname": "Janet",
            "addresses": [{"id": 4, "region": {"region": "Texas", "regionCode": "TX"}, "defaultBilling": True}],
            "extensionAttributes": {"isSubscribed": False},
        })

        customer = await backend.edit_customer_data({"email": "jane@example.com", "firstname": "Janet", "lastname": "Doe"})

        assert body(fake_magento.requests[-1]) == {
            "customer": {"email": "jane@example.com", "firstname": "Janet", "lastname": "Doe"}
        }
        assert customer["firstname"] == "Janet"
        assert customer["is_subscribed"] is False
        assert "extension_attributes" not in customer
        assert customer["addresses"] == [
            {"id": 4, "region": "Texas", "default_billing": True, "default_shipping": False}
        ]

    @pytest.mark.asyncio
    async def test_address_requires_customer(self, backend):
        with pytest.raises(AuthorizationError) as exc_info:
            await backend.address()

        assert exc_info.value.code == UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_addresses(self, backend, fake_magento, customer_session):
        fake_magento.add("GET", "/customers/me/address", {"id": 4, "city": "Austin"})

        addresses = await backend.address()

        assert addresses == [{"id": 4, "city": "Austin", "default_billing": False, "default_shipping": False}]

    @pytest.mark.asyncio
    async def test_add_address_wraps_street(self, backend, fake_magento, customer_session):
        fake_magento.add("POST", "/customers/me/address", {"id": 5, "street": ["Main St 1"]})

        address = await backend.add_customer_address({"street": "Main St 1", "city": "Austin"})

        assert address["id"] == 5
        assert body(fake_magento.requests[-1]) == {"address": {"street": ["Main St 1"], "city": "Austin"}}

    @pytest.mark.asyncio
    async def test_edit_address(self, backend, fake_magento, customer_session):
        fake_magento.add("PUT", "/customers/me/address/5", {
            "id": 5,
            "street": ["Elm St 2"],
            "region": {"region": "Texas"},
        })

        address = await backend.edit_customer_address({"id": 5, "street": "Elm St 2", "city": "Austin"})

        assert body(fake_magento.calls("PUT", "/customers/me/address/5")[0]) == {
            "address": {"id": 5, "street": ["Elm St 2"], "city": "Austin"}
        }
        assert address == {
            "id": 5,
            "street": ["Elm St 2"],
            "region": "Texas",
            "default_billing": False,
            "default_shipping": False,
        }

    @pytest.mark.asyncio
    async def test_edit_address_keeps_street_list(self, backend, fake_magento, customer_session):
        fake_magento.add("PUT", "/customers/me/address/5", {"id": 5, "street": ["Elm St 2", "Floor 3"]})

        await backend.edit_customer_address({"id": 5, "street": ["Elm St 2", "Floor 3"]})

        assert body(fake_magento.requests[-1])["address"]["street"] == ["Elm St 2", "Floor 3"]

    @pytest.mark.asyncio
    async def test_remove_address(self, backend, fake_magento, customer_session):
        fake_magento.add("DELETE", "/customers/me/address/5", True)

        assert await backend.remove_customer_address(5) is True

    @pytest.mark.asyncio
    async def test_validate_password_token(self, backend, fake_magento):
        fake_magento.add("GET", "/customers/0/password/resetLinkToken/good", True)

        assert await backend.validate_password_token("good") is True
        assert await backend.validate_password_token("expired") is False

    @pytest.mark.asyncio
    async def test_password_reset_for_unknown_email(self, backend, fake_magento):
        fake_magento.add("PUT", "/customers/password", {"message": "No such entity"}, status=404)

        assert await backend.request_customer_password_reset_token("nobody@example.com") is True

    @pytest.mark.asyncio
    async def test_password_reset_failure_propagates(self, backend, fake_magento):
        fake_magento.add("PUT", "/customers/password", {"message": "Internal error"}, status=500)

        with pytest.raises(MagentoApiError):
            await backend.request_customer_password_reset_token("jane@example.com")

    @pytest.mark.asyncio
    async def test_reset_customer_password(self, backend, fake_magento):
        fake_magento.add("PUT", "/customers/password/reset", True)

        assert await backend.reset_customer_password("reset-token", "New-secret1") is True
        assert body(fake_magento.requests[-1]) == {
            "email": "",
            "reset_token": "reset-token",
            "new_password": "New-secret1",
        }

    @pytest.mark.asyncio
    async def test_wrong_current_password_keeps_session(self, backend, fake_magento, customer_session):
        fake_magento.add(
            "PUT", "/customers/me/password",
            {"message": "The password doesn't match this account."},
            status=401
        )

        with pytest.raises(MagentoApiError) as exc_info:
            await backend.change_customer_password("new-secret", "wrong")

        assert exc_info.value.user_message
        assert exc_info.value.code is None

    @pytest.mark.asyncio
    async def test_change_password_requires_customer(self, backend):
        with pytest.raises(AuthorizationError):
            await backend.change_customer_password("new-secret", "old-secret")


class TestOrders:

    @pytest.mark.asyncio
    async def test_orders(self, backend, fake_magento, customer_session):
        fake_magento.add("GET", "/orders/mine", {
            "items": [{"entity_id": 1, "incrementId": "000000001"}],
            "search_criteria": {"current_page": 1, "page_size": 10},
            "total_count": 1,
        })

        result = await backend.orders({"page": 1, "per_page": 10})

        params = fake_magento.requests[-1].url.params
        assert params["searchCriteria[sortOrders][0][field]"] == "created_at"
        assert params["searchCriteria[sortOrders][0][direction]"] == "desc"
        assert result["items"][0]["increment_id"] == "000000001"
        assert result["pagination"]["total_pages"] == 1

    @pytest.mark.asyncio
    async def test_orders_require_customer(self, backend):
        with pytest.raises(AuthorizationError):
            await backend.orders()

    @pytest.mark.asyncio
    async def test_order(self, backend, fake_magento, customer_session):
        fake_magento.add("GET", "/orders/42/order-info", {
            "entity_id": 42,
            "items": [],
            "payment": {"method": "checkmo", "extension_attributes": {"method_name": "Check / Money order"}},
        })

        order = await backend.order(42)

        assert order["payment_method_name"] == "Check / Money order"

    @pytest.mark.asyncio
    async def test_order_without_id(self, backend, customer_session):
        with pytest.raises(StorefrontError, match="Failed to load an order."):
            await backend.order(0)

    @pytest.mark.asyncio
    async def test_last_order(self, backend, fake_magento, session):
        assert await backend.last_order() is None

        session.order_id = 42
        fake_magento.add("GET", "/orders/42", {"entity_id": 42, "payment": {"method": "checkmo"}})

        order = await backend.last_order()

        assert order["payment_method_name"] == "checkmo"
        assert fake_magento.requests[-1].headers["Authorization"] == "Bearer integration-token"

    @pytest.mark.asyncio
    async def test_last_order_from_paypal_hash(self, backend, fake_magento, session):
        session.data["paypal_express_hash"] = "hash123"
        fake_magento.add("GET", "/orders/get-order-from-paypal-hash/hash123", 43)
        fake_magento.add("GET", "/orders/43", {"entity_id": 43, "payment": {"method": "paypal_express"}})

        order = await backend.last_order()

        assert order["entity_id"] == 43


class TestShopConfig:

    @pytest.mark.asyncio
    async def test_shop_config(self, backend, store_endpoints):
        config = await backend.shop_config()

        assert config["active_store"] == "default"
        assert config["active_currency"] == "EUR"
        assert config["currencies"] == ["EUR", "USD"]
        assert config["timezone"] == "Europe/Amsterdam"
        assert config["active_locale"] == "en_US"

    @pytest.mark.asyncio
    async def test_set_shop_currency(self, backend, store_endpoints, session):
        config = await backend.set_shop_currency("USD")

        assert config["active_currency"] == "USD"
        assert session.currency == "USD"

    @pytest.mark.asyncio
    async def test_set_unavailable_currency(self, backend, store_endpoints):
        with pytest.raises(StorefrontError) as exc_info:
            await backend.set_shop_currency("GBP")

        assert exc_info.value.code == "INVALID_CURRENCY"

    @pytest.mark.asyncio
    async def test_set_shop_store(self, backend, store_endpoints, session):
        session.currency = "USD"

        config = await backend.set_shop_store("de")

        assert session.store_code == "de"
        assert config["active_locale"] == "de_DE"
        assert config["currencies"] == ["EUR"]
        assert config["active_currency"] == "EUR"

    @pytest.mark.asyncio
    async def test_set_unknown_store(self, backend, store_endpoints):
        with pytest.raises(StorefrontError) as exc_info:
            await backend.set_shop_store("fr")

        assert exc_info.value.code == "INVALID_STORE"
