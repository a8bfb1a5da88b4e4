"""
Storefront GraphQL Schema
Queries and mutations resolved by the commerce backend of the request context
"""
from typing import Any, List, Optional

import strawberry
from strawberry.fastapi import BaseContext
from strawberry.schema.config import StrawberryConfig
from strawberry.types import Info

from storefront.commerce.interface import CommerceBackend
from storefront.graphql import types
from storefront.graphql.extensions import (
    StorefrontErrorsExtension,
    StorefrontMaskErrors,
    StorefrontSchema,
)
from storefront.graphql.inputs import (
    AddToCartInput,
    AddressInput,
    ChangePasswordInput,
    CouponInput,
    CustomerInput,
    CustomerPasswordResetInput,
    EmailInput,
    EntityIdInput,
    EstimateShippingInput,
    FilterInput,
    PlaceOrderInput,
    RemoveCartItemInput,
    ShippingInput,
    ShopPageQuery,
    SignInInput,
    SignUpInput,
    SortOrderInput,
    UpdateCartItemInput,
    input_to_dict,
)


class StorefrontContext(BaseContext):
    """Per-request GraphQL context"""

    def __init__(self, backend: CommerceBackend):
        super().__init__()
        self.backend = backend
        self.session = backend.session


def resolve_field(source: Any, name: str) -> Any:
    """Converted payloads are dicts, read fields by key"""
    if isinstance(source, dict):
        return source.get(name)
    return getattr(source, name, None)


def backend(info: Info) -> CommerceBackend:
    return info.context.backend


@strawberry.type
class Query:

    @strawberry.field
    async def category(self, info: Info, id: int) -> Optional[types.Category]:
        return await backend(info).category(id)

    @strawberry.field
    async def products(
        self,
        info: Info,
        category_id: Optional[int] = None,
        include_subcategories: bool = False,
        query: Optional[ShopPageQuery] = None,
        sort_orders: Optional[List[SortOrderInput]] = None,
        filters: Optional[List[FilterInput]] = None,
        skus: Optional[List[str]] = None,
        with_attribute_filters: Optional[List[str]] = None
    ) -> types.ProductList:
        return await backend(info).products(
            filters=[input_to_dict(item) for item in filters or []],
            category_id=category_id,
            skus=skus,
            query=input_to_dict(query) if query else None,
            sort_orders=[input_to_dict(item) for item in sort_orders or []],
            include_subcategories=include_subcategories,
            with_attribute_filters=with_attribute_filters
        )

    @strawberry.field
    async def product(self, info: Info, id: int) -> Optional[types.Product]:
        return await backend(info).product(id)

    @strawberry.field
    async def url(self, info: Info, path: str, load_entity_data: bool = True) -> Optional[types.Url]:
        return await backend(info).fetch_url(path, load_entity_data)

    @strawberry.field
    async def countries(self, info: Info) -> types.CountryList:
        return await backend(info).countries()

    @strawberry.field
    async def cart(self, info: Info) -> types.Cart:
        return await backend(info).cart()

    @strawberry.field
    async def customer(self, info: Info) -> Optional[types.Customer]:
        return await backend(info).customer()

    @strawberry.field
    async def address(self, info: Info, id: int) -> Optional[types.Address]:
        return await backend(info).address(id)

    @strawberry.field
    async def addresses(self, info: Info) -> List[types.Address]:
        return await backend(info).address()

    @strawberry.field
    async def orders(self, info: Info, query: Optional[ShopPageQuery] = None) -> types.Orders:
        return await backend(info).orders(input_to_dict(query) if query else None)

    @strawberry.field
    async def order(self, info: Info, id: int) -> Optional[types.Order]:
        return await backend(info).order(id)

    @strawberry.field
    async def last_order(self, info: Info) -> Optional[types.Order]:
        return await backend(info).last_order()

    @strawberry.field
    async def validate_password_token(self, info: Info, token: str) -> bool:
        return await backend(info).validate_password_token(token)

    @strawberry.field
    async def backend_config(self, info: Info) -> types.BackendConfig:
        return await backend(info).backend_config()

    @strawberry.field
    async def shop_config(self, info: Info) -> types.ShopConfig:
        return await backend(info).shop_config()


@strawberry.type
class Mutation:

    # ---------- cart ----------

    @strawberry.mutation
    async def add_to_cart(self, info: Info, input: AddToCartInput) -> types.CartItemPayload:
        return await backend(info).add_to_cart(input_to_dict(input))

    @strawberry.mutation
    async def update_cart_item(self, info: Info, input: UpdateCartItemInput) -> types.CartItemPayload:
        return await backend(info).update_cart_item(input_to_dict(input))

    @strawberry.mutation
    async def remove_cart_item(self, info: Info, input: RemoveCartItemInput) -> types.RemoveCartItemResponse:
        return await backend(info).remove_cart_item(input_to_dict(input))

    @strawberry.mutation
    async def apply_coupon(self, info: Info, input: CouponInput) -> bool:
        return await backend(info).apply_coupon(input.coupon_code)

    @strawberry.mutation
    async def cancel_coupon(self, info: Info) -> bool:
        return await backend(info).cancel_coupon()

    # ---------- checkout ----------

    @strawberry.mutation
    async def estimate_shipping_methods(self, info: Info, input: EstimateShippingInput) -> List[types.ShippingMethod]:
        return await backend(info).estimate_shipping_methods(input_to_dict(input.address))

    @strawberry.mutation
    async def set_shipping(self, info: Info, input: ShippingInput) -> types.ShippingInformation:
        return await backend(info).set_shipping(input_to_dict(input))

    @strawberry.mutation
    async def place_order(self, info: Info, input: PlaceOrderInput) -> types.PlaceOrderResult:
        return await backend(info).place_order(input_to_dict(input))

    # ---------- customer ----------

    @strawberry.mutation
    async def sign_in(self, info: Info, input: SignInInput) -> bool:
        return await backend(info).sign_in(input.email, input.password)

    @strawberry.mutation
    async def sign_out(self, info: Info) -> bool:
        return await backend(info).sign_out()

    @strawberry.mutation
    async def sign_up(self, info: Info, input: SignUpInput) -> bool:
        return await backend(info).sign_up(input_to_dict(input))

    @strawberry.mutation
    async def edit_customer_data(self, info: Info, input: CustomerInput) -> types.Customer:
        return await backend(info).edit_customer_data(input_to_dict(input))

    @strawberry.mutation
    async def add_customer_address(self, info: Info, input: AddressInput) -> types.Address:
        return await backend(info).add_customer_address(input_to_dict(input))

    @strawberry.mutation
    async def edit_customer_address(self, info: Info, input: AddressInput) -> types.Address:
        return await backend(info).edit_customer_address(input_to_dict(input))

    @strawberry.mutation
    async def remove_customer_address(self, info: Info, input: EntityIdInput) -> bool:
        return await backend(info).remove_customer_address(input.id)

    @strawberry.mutation
    async def request_customer_password_reset_token(self, info: Info, input: EmailInput) -> bool:
        return await backend(info).request_customer_password_reset_token(input.email)

    @strawberry.mutation
    async def reset_customer_password(self, info: Info, input: CustomerPasswordResetInput) -> bool:
        return await backend(info).reset_customer_password(input.reset_token, input.password)

    @strawberry.mutation
    async def change_customer_password(self, info: Info, input: ChangePasswordInput) -> bool:
        return await backend(info).change_customer_password(input.password, input.current_password)

    # ---------- shop configuration ----------

    @strawberry.mutation
    async def set_shop_store(self, info: Info, store_code: str) -> types.ShopConfig:
        return await backend(info).set_shop_store(store_code)

    @strawberry.mutation
    async def set_shop_currency(self, info: Info, currency: str) -> types.ShopConfig:
        return await backend(info).set_shop_currency(currency)


schema = StorefrontSchema(
    query=Query,
    mutation=Mutation,
    config=StrawberryConfig(default_resolver=resolve_field),
    extensions=[
        StorefrontErrorsExtension,
        StorefrontMaskErrors,
    ],
)
