"""
Storefront GraphQL Types
Output types of the shop schema

Resolvers hand out the converted Magento payloads as plain dicts, fields are
read by key (see resolve_field in storefront.graphql.schema).
"""
from typing import Any, Dict, List, Optional

import strawberry
from strawberry.scalars import JSON


@strawberry.type
class Breadcrumb:
    id: Optional[int]
    name: Optional[str]
    url_path: Optional[str]
    url_key: Optional[str]
    url_query: Optional[JSON]


@strawberry.type
class Pagination:
    total_items: int
    total_pages: int
    current_page: int
    per_page: Optional[int]
    next_page: Optional[int]
    prev_page: Optional[int]


# ---------- catalog ----------

@strawberry.type
class Category:
    id: int
    parent_id: Optional[int]
    name: Optional[str]
    is_active: Optional[bool]
    position: Optional[int]
    level: Optional[int]
    include_in_menu: Optional[bool]
    url_path: Optional[str]
    breadcrumbs: Optional[List[Breadcrumb]]
    children_data: Optional[List["Category"]]
    custom_attributes: Optional[JSON]


@strawberry.type
class GalleryEntry:
    full: Optional[str]
    thumbnail: Optional[str]
    type: Optional[str]
    embed_url: Optional[str]


@strawberry.type
class ProductStock:
    qty: Optional[float]
    is_in_stock: Optional[bool]


@strawberry.type
class ProductSeo:
    title: Optional[str]
    description: Optional[str]
    keywords: Optional[str]


@strawberry.type
class ConfigurableOptionValue:
    value_index: Optional[int]
    label: Optional[str]
    in_stock: Optional[bool]


@strawberry.type
class ConfigurableOption:
    id: Optional[int]
    attribute_id: Optional[str]
    label: Optional[str]
    position: Optional[int]
    product_id: Optional[int]
    values: Optional[List[ConfigurableOptionValue]]


@strawberry.type
class BundleProductLink:
    id: Optional[str]
    sku: Optional[str]
    name: Optional[str]
    option_id: Optional[int]
    qty: Optional[float]
    position: Optional[int]
    is_default: Optional[bool]
    price: Optional[float]
    price_type: Optional[int]
    can_change_quantity: Optional[int]


@strawberry.type
class BundleOption:
    option_id: Optional[int]
    title: Optional[str]
    required: Optional[bool]
    type: Optional[str]
    position: Optional[int]
    sku: Optional[str]
    product_links: Optional[List[BundleProductLink]]


@strawberry.type
class Product:
    id: int
    sku: str
    name: Optional[str]
    type_id: Optional[str]
    description: Optional[str]
    price: Optional[float]
    price_amount: Optional[float]
    price_type: Optional[str]
    min_price: Optional[float]
    max_price: Optional[float]
    currency: Optional[str]
    url_path: Optional[str]
    thumbnail: Optional[str]
    gallery: Optional[List[GalleryEntry]]
    stock: Optional[ProductStock]
    configurable_options: Optional[List[ConfigurableOption]]
    bundle_options: Optional[List[BundleOption]]
    breadcrumbs: Optional[List[Breadcrumb]]
    seo: Optional[ProductSeo]
    custom_attributes: Optional[JSON]


@strawberry.type
class ProductList:
    items: List[Product]
    pagination: Pagination
    total_count: Optional[int]
    filters: Optional[JSON]


@strawberry.type
class CmsPage:
    id: Optional[int]
    title: Optional[str]
    content: Optional[str]


@strawberry.type
class Url:
    """Entity resolved from a storefront url, type is shop-page, shop-product or shop-category"""
    id: Optional[int]
    type: str
    path: Optional[str]

    @strawberry.field
    def product(self, root: strawberry.Parent[Dict[str, Any]]) -> Optional[Product]:
        return root if root.get("type") == "shop-product" and root.get("sku") else None

    @strawberry.field
    def category(self, root: strawberry.Parent[Dict[str, Any]]) -> Optional[Category]:
        return root if root.get("type") == "shop-category" and root.get("name") is not None else None

    @strawberry.field
    def cms_page(self, root: strawberry.Parent[Dict[str, Any]]) -> Optional[CmsPage]:
        return root if root.get("type") == "shop-page" and "content" in root else None


@strawberry.type
class Region:
    id: Optional[str]
    code: Optional[str]
    name: Optional[str]


@strawberry.type
class Country:
    code: str
    english_name: Optional[str]
    local_name: Optional[str]
    regions: List[Region]


@strawberry.type
class CountryList:
    items: List[Country]


# ---------- cart ----------

@strawberry.type
class CartTotal:
    code: Optional[str]
    title: Optional[str]
    value: Optional[float]


@strawberry.type
class CartItem:
    item_id: Optional[int]
    sku: Optional[str]
    name: Optional[str]
    qty: Optional[float]
    product_type: Optional[str]
    link: Optional[str]
    thumbnail_url: Optional[str]
    available_qty: Optional[float]
    price: Optional[float]
    price_incl_tax: Optional[float]
    row_total_incl_tax: Optional[float]
    row_total_with_discount: Optional[float]
    tax_amount: Optional[float]
    discount_amount: Optional[float]
    weee_tax_amount: Optional[float]
    item_options: Optional[JSON]


@strawberry.type
class Cart:
    id: Optional[int]
    active: Optional[bool]
    virtual: Optional[bool]
    items_qty: Optional[int]
    items_count: Optional[int]
    quote_currency: Optional[str]
    coupon_code: Optional[str]
    items: List[CartItem]
    totals: List[CartTotal]


@strawberry.type
class CartItemPayload:
    item_id: Optional[int]
    sku: Optional[str]
    name: Optional[str]
    qty: Optional[float]
    price: Optional[float]
    product_type: Optional[str]
    quote_id: Optional[str]


@strawberry.type
class RemoveCartItemResponse:
    item_id: Optional[int]


# ---------- checkout ----------

@strawberry.type
class ShippingMethod:
    carrier_code: Optional[str]
    method_code: Optional[str]
    carrier_title: Optional[str]
    method_title: Optional[str]
    amount: Optional[float]
    base_amount: Optional[float]
    price_excl_tax: Optional[float]
    price_incl_tax: Optional[float]
    available: Optional[bool]
    error_message: Optional[str]
    currency: Optional[str]


@strawberry.type
class PaymentMethod:
    code: str
    title: Optional[str]


@strawberry.type
class ShippingInformation:
    payment_methods: Optional[List[PaymentMethod]]
    totals: Optional[JSON]


@strawberry.type
class PlaceOrderResult:
    order_id: Optional[str]
    order_real_id: Optional[str]
    adyen: Optional[JSON]


# ---------- customer ----------

@strawberry.type
class Address:
    id: Optional[int]
    customer_id: Optional[int]
    firstname: Optional[str]
    lastname: Optional[str]
    company: Optional[str]
    street: Optional[List[str]]
    city: Optional[str]
    postcode: Optional[str]
    country_id: Optional[str]
    region: Optional[str]
    region_id: Optional[int]
    telephone: Optional[str]
    default_billing: Optional[bool]
    default_shipping: Optional[bool]


@strawberry.type
class Customer:
    id: Optional[int]
    email: Optional[str]
    firstname: Optional[str]
    lastname: Optional[str]
    dob: Optional[str]
    gender: Optional[int]
    website_id: Optional[int]
    store_id: Optional[int]
    group_id: Optional[int]
    default_billing: Optional[str]
    default_shipping: Optional[str]
    is_subscribed: Optional[bool]
    addresses: Optional[List[Address]]


# ---------- orders ----------

@strawberry.type
class OrderItem:
    item_id: Optional[int]
    sku: Optional[str]
    name: Optional[str]
    product_type: Optional[str]
    qty: Optional[float]
    price: Optional[float]
    row_total_incl_tax: Optional[float]
    link: Optional[str]
    thumbnail_url: Optional[str]
    item_options: Optional[JSON]


@strawberry.type
class Order:
    entity_id: Optional[int]
    increment_id: Optional[str]
    created_at: Optional[str]
    status: Optional[str]
    customer_email: Optional[str]
    customer_firstname: Optional[str]
    customer_lastname: Optional[str]
    order_currency_code: Optional[str]
    grand_total: Optional[float]
    subtotal: Optional[float]
    shipping_amount: Optional[float]
    discount_amount: Optional[float]
    tax_amount: Optional[float]
    shipping_description: Optional[str]
    payment_method_name: Optional[str]
    shipping_address: Optional[Address]
    billing_address: Optional[Address]
    items: Optional[List[OrderItem]]
    total_segments: Optional[List[CartTotal]]


@strawberry.type
class Orders:
    items: List[Order]
    total_count: Optional[int]
    pagination: Pagination


# ---------- shop configuration ----------

@strawberry.type
class Store:
    name: Optional[str]
    code: str


@strawberry.type
class ShopConfig:
    stores: List[Store]
    currencies: List[str]
    base_currency: Optional[str]
    timezone: Optional[str]
    weight_unit: Optional[str]
    active_store: Optional[str]
    active_currency: Optional[str]
    active_locale: Optional[str]
    locales: List[str]


@strawberry.type
class BackendConfig:
    shop: ShopConfig
