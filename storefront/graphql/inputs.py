"""
Storefront GraphQL Inputs
"""
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import strawberry
from strawberry.scalars import JSON


def input_to_dict(value: Any) -> Dict[str, Any]:
    """Strawberry input -> dict without the fields the client left out"""
    return _drop_none(asdict(value))


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(item) for item in value]
    return value


# ---------- catalog ----------

@strawberry.input
class FilterInput:
    field: str
    value: Optional[str] = None


@strawberry.input
class SortOrderInput:
    field: str
    direction: Optional[str] = "ASC"


@strawberry.input
class ShopPageQuery:
    page: Optional[int] = 1
    per_page: Optional[int] = None


# ---------- cart ----------

@strawberry.input
class ConfigurableOptionInput:
    option_id: int
    value: int


@strawberry.input
class BundleOptionInput:
    option_id: int
    option_qty: float
    option_selections: List[int]


@strawberry.input
class AddToCartInput:
    sku: str
    qty: float
    configurable_options: Optional[List[ConfigurableOptionInput]] = None
    bundle_options: Optional[List[BundleOptionInput]] = None


@strawberry.input
class UpdateCartItemInput:
    item_id: int
    qty: int
    sku: Optional[str] = None


@strawberry.input
class RemoveCartItemInput:
    item_id: int


@strawberry.input
class CouponInput:
    coupon_code: str


# ---------- customer ----------

@strawberry.input
class SignInInput:
    email: str
    password: str


@strawberry.input
class SignUpInput:
    email: str
    firstname: str
    lastname: str
    password: str
    auto_sign_in: Optional[bool] = False


@strawberry.input
class CustomerInput:
    email: str
    firstname: str
    lastname: str
    id: Optional[int] = None
    website_id: Optional[int] = None
    dob: Optional[str] = None
    gender: Optional[int] = None


@strawberry.input
class AddressInput:
    firstname: str
    lastname: str
    street: List[str]
    city: str
    postcode: str
    country_id: str
    telephone: str
    id: Optional[int] = None
    company: Optional[str] = None
    region: Optional[str] = None
    region_id: Optional[int] = None
    email: Optional[str] = None
    default_billing: Optional[bool] = None
    default_shipping: Optional[bool] = None


@strawberry.input
class EntityIdInput:
    id: int


@strawberry.input
class EmailInput:
    email: str


@strawberry.input
class CustomerPasswordResetInput:
    reset_token: str
    password: str


@strawberry.input
class ChangePasswordInput:
    password: str
    current_password: str


# ---------- checkout ----------

@strawberry.input
class EstimateShippingInput:
    address: AddressInput


@strawberry.input
class ShippingInput:
    shipping_address: AddressInput
    billing_address: AddressInput
    shipping_carrier_code: str
    shipping_method_code: str


@strawberry.input
class PaymentMethodInput:
    method: str
    additional_data: Optional[JSON] = None


@strawberry.input
class PlaceOrderInput:
    payment_method: PaymentMethodInput
    email: Optional[str] = None
