"""
Magento Response Converters
Map Magento REST payloads onto the shapes the storefront schema exposes

All converters work on plain dicts and normalize keys to snake_case, whether
Magento (or one of its extensions) answered in snake_case or camelCase.
"""
from typing import Any, Dict, Iterable, List, Optional
import html
import json
import math
import re

from storefront.errors import StorefrontError
from storefront.utils.query_string import encode_query

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")
_HTML_TAG = re.compile(r"<[^>]+>")

ENTITY_REDUCERS = {
    "cms-page": "cms_page",
    "product": "product",
    "category": "category",
}


def to_snake_case(key: str) -> str:
    """"urlKey" -> "url_key", "url_key" stays as it is"""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def convert_keys(value: Any) -> Any:
    """Recursively normalize dict keys to snake_case"""
    if isinstance(value, dict):
        return {
            (to_snake_case(k) if isinstance(k, str) else k): convert_keys(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [convert_keys(item) for item in value]
    return value


def convert_attributes_set(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten custom_attributes into {attribute_code: value}

    [{"attribute_code": "url_key", "value": "bag"}] -> {"url_key": "bag"}
    """
    attributes = data.get("custom_attributes")
    if isinstance(attributes, list):
        data["custom_attributes"] = {
            attribute["attribute_code"]: attribute.get("value")
            for attribute in attributes
            if "attribute_code" in attribute
        }
    return data


def convert_path_to_url(path: Optional[str]) -> Optional[str]:
    # TODO: read the url suffix from catalog/seo/product_url_suffix instead of assuming .html
    return f"/{path}.html" if path else path


def strip_html(text: Optional[str]) -> Optional[str]:
    if not text:
        return text
    return html.unescape(_HTML_TAG.sub("", text)).strip()


def process_price(data: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Make sure price fields are floats (Magento sends some as strings)"""
    for field in fields:
        if data.get(field) is not None:
            data[field] = float(data[field])
    return data


def convert_breadcrumbs(breadcrumbs: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """Convert breadcrumbs of category and product entities"""
    converted = []

    for item in convert_keys(breadcrumbs or []):
        item["name"] = strip_html(item.get("name"))
        item["url_path"] = convert_path_to_url(item.get("url_path"))

        url_query = item.get("url_query")
        if isinstance(url_query, list):
            # since Magento 2.2 arbitrary hashes arrive JSON encoded
            filters = url_query[0] if url_query else None
            if isinstance(filters, str):
                filters = json.loads(filters)
            url_query = {"filters": filters} if filters else None
        item["url_query"] = url_query or None

        if item["url_query"] and item["url_path"]:
            item["url_path"] += f"?{encode_query(item['url_query'])}"

        converted.append(item)

    return converted


def convert_category_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Process category data (single category or a node of the category tree)"""
    convert_attributes_set(data)
    data = convert_keys(data)

    custom_attributes = data.get("custom_attributes") or {}
    extension_attributes = data.get("extension_attributes") or {}

    # single category records carry it in custom attributes, tree nodes at top level
    url_path = custom_attributes.get("url_path") or data.get("url_path")

    data.pop("created_at", None)
    data.pop("product_count", None)

    data["url_path"] = convert_path_to_url(url_path)
    data["children_data"] = [
        convert_category_data(child) for child in data.get("children_data") or []
    ]

    if extension_attributes.get("breadcrumbs"):
        data["breadcrumbs"] = convert_breadcrumbs(extension_attributes["breadcrumbs"])

    return data


def convert_product_data(data: Dict[str, Any], currency: Optional[str] = None) -> Dict[str, Any]:
    """Process product data from a Magento product or listing item"""
    convert_attributes_set(data)
    data = convert_keys(data)

    extension_attributes = data.get("extension_attributes") or {}
    custom_attributes = data.get("custom_attributes") or {}
    price = extension_attributes.get("catalog_display_price") or data.get("price")

    data["url_path"] = convert_path_to_url(custom_attributes.get("url_key"))
    data["price_amount"] = data.get("price")
    data["currency"] = currency
    data["price"] = price
    data["name"] = strip_html(data.get("name"))
    data["price_type"] = custom_attributes.get("price_type") or "1"

    if extension_attributes:
        if extension_attributes.get("breadcrumbs"):
            data["breadcrumbs"] = convert_breadcrumbs(extension_attributes["breadcrumbs"])

        data["thumbnail"] = extension_attributes.get("thumbnail_url")
        data["gallery"] = extension_attributes.get("media_gallery_sizes")

        min_price = extension_attributes.pop("min_price", None)
        max_price = extension_attributes.pop("max_price", None)
        if min_price:
            data["min_price"] = min_price
        if max_price:
            data["max_price"] = max_price

        # configurable/bundle parents report 0, show the cheapest child instead
        if data.get("min_price") and price == 0:
            data["price"] = data["min_price"]

        if data.get("min_price") == data.get("max_price"):
            data.pop("min_price", None)
            data.pop("max_price", None)

        stock_item = extension_attributes.get("stock_item")
        if stock_item:
            data["stock"] = {
                "qty": stock_item.get("qty"),
                "is_in_stock": stock_item.get("is_in_stock"),
            }

        data["configurable_options"] = extension_attributes.get("configurable_product_options") or []

        bundle_options = extension_attributes.get("bundle_product_options")
        if bundle_options:
            for option in bundle_options:
                option["product_links"] = [
                    {**link, **(link.get("extension_attributes") or {})}
                    for link in option.get("product_links") or []
                ]
            data["bundle_options"] = bundle_options

    if custom_attributes:
        data["description"] = custom_attributes.get("description")
        data["seo"] = {
            "title": custom_attributes.get("meta_title"),
            "description": custom_attributes.get("meta_description"),
            "keywords": custom_attributes.get("meta_keyword"),
        }

    return data


def build_pagination(total_count: int, current_page: int = 1, per_page: Optional[int] = None) -> Dict[str, Any]:
    """Pagination info for listing responses; without per_page everything is one page"""
    current_page = current_page or 1
    total_pages = math.ceil(total_count / per_page) if per_page else 1
    total_pages = max(total_pages, 1)

    return {
        "total_items": total_count,
        "total_pages": total_pages,
        "current_page": current_page,
        "per_page": per_page,
        "next_page": current_page + 1 if current_page < total_pages else None,
        "prev_page": current_page - 1 if current_page > 1 else None,
    }


def attach_pagination(data: Dict[str, Any]) -> Dict[str, Any]:
    search_criteria = data.get("search_criteria") or {}
    data["pagination"] = build_pagination(
        data.get("total_count") or 0,
        search_criteria.get("current_page") or 1,
        search_criteria.get("page_size")
    )
    return data


def convert_list(data: Dict[str, Any], currency: Optional[str] = None) -> Dict[str, Any]:
    """Process products/categories listing response"""
    items = []

    for element in data.get("items") or []:
        if element.get("sku"):
            element = convert_product_data(element, currency)
        elif element.get("level"):
            element = convert_category_data(element)
        items.append(element)

    data = {key: value for key, value in data.items() if key != "items"}
    # a product payload carries its custom attributes at the top level
    if data.get("custom_attributes"):
        data = convert_product_data(data, currency)
    else:
        data = convert_keys(data)
    data["items"] = items

    return attach_pagination(data)


def replace_links(content: Optional[str], base_url: Optional[str]) -> Optional[str]:
    """Rewrite absolute backend links in CMS content to relative storefront links"""
    if not content or not base_url:
        return content
    base_url = base_url.rstrip("/") + "/"
    return content.replace(base_url, "/")


def reduce_cms_page(data: Dict[str, Any], base_url: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": data.get("id"),
        "title": data.get("title"),
        "content": replace_links(data.get("content"), base_url),
    }


def reduce_url(data: Dict[str, Any], currency: Optional[str] = None, base_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Reduce /url/ endpoint data to the resolved entity

    The type is unified so clients receive shop-page, shop-product or shop-category.
    """
    entity_type = data.get("entity_type")
    if entity_type not in ENTITY_REDUCERS:
        raise StorefrontError(f"Unknown url entity type: {entity_type} in magento api.")

    unified_type = f"shop-{entity_type.replace('cms-', '')}"
    entity_data = data.get(ENTITY_REDUCERS[entity_type])

    if entity_data is None:
        return {"id": data.get("entity_id"), "type": unified_type}

    if entity_type == "cms-page":
        reduced = reduce_cms_page(entity_data, base_url)
    elif entity_type == "product":
        reduced = convert_product_data(entity_data, currency)
    else:
        reduced = convert_category_data(entity_data)

    reduced["type"] = unified_type
    return reduced


CART_ITEM_PRICE_FIELDS = [
    "price",
    "price_incl_tax",
    "row_total_incl_tax",
    "row_total_with_discount",
    "tax_amount",
    "discount_amount",
    "weee_tax_amount",
]


def parse_item_options(options: Any) -> Any:
    return json.loads(options) if isinstance(options, str) else options


def convert_cart_data(quote: Dict[str, Any], totals: Dict[str, Any]) -> Dict[str, Any]:
    """Merge cart (quote) and cart totals responses"""
    quote = convert_keys(quote)
    totals = convert_keys(totals)

    quote["active"] = quote.get("is_active")
    quote["virtual"] = quote.get("is_virtual")
    quote["quote_currency"] = totals.get("quote_currency_code")
    quote["coupon_code"] = totals.get("coupon_code")

    quote["totals"] = [
        process_price(dict(segment), ["value"])
        for segment in totals.get("total_segments") or []
    ]

    totals_items = {item.get("item_id"): item for item in totals.get("items") or []}
    merged_items = []

    for item in quote.get("items") or []:
        totals_item = dict(totals_items.get(item.get("item_id")) or {})
        extension_attributes = totals_item.pop("extension_attributes", None) or {}

        process_price(totals_item, CART_ITEM_PRICE_FIELDS)
        process_price(extension_attributes, ["available_qty"])

        item["link"] = convert_path_to_url(extension_attributes.get("url_key"))

        if totals_item.get("options"):
            totals_item["item_options"] = parse_item_options(totals_item["options"])

        merged_items.append({**item, **totals_item, **extension_attributes})

    quote["items"] = merged_items
    return quote


def convert_address_data(data: Dict[str, Any]) -> Dict[str, Any]:
    data = convert_keys(data)

    data.setdefault("default_billing", False)
    data.setdefault("default_shipping", False)

    if isinstance(data.get("region"), dict):
        data["region"] = data["region"].get("region")

    return data


def convert_customer_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Customer with converted addresses and extension attributes merged in"""
    customer = convert_keys(data)
    customer["addresses"] = [convert_address_data(address) for address in customer.get("addresses") or []]

    extension_attributes = customer.pop("extension_attributes", None) or {}
    return {**customer, **extension_attributes}


def convert_items_response(items: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """Order items: one row per simple product, priced from its parent when configurable"""
    converted = []

    for item in items or []:
        if item.get("product_type") != "simple":
            continue

        # configurable children report price 0, the parent row has the real price
        product = item.get("parent_item") or item
        extension_attributes = product.get("extension_attributes") or {}

        product["item_options"] = parse_item_options(product["options"]) if product.get("options") else []
        product["qty"] = product.get("qty_ordered")
        product["row_total_incl_tax"] = product.get("base_price_incl_tax")
        product["link"] = convert_path_to_url(extension_attributes.get("url_key"))
        product["thumbnail_url"] = extension_attributes.get("thumbnail_url")

        converted.append(product)

    return converted


def convert_totals(data: Dict[str, Any]) -> Dict[str, Any]:
    """Move the discount segment right after the subtotal"""
    data = convert_keys(data)
    segments = data.get("total_segments")

    if segments:
        discount_index = next(
            (index for index, segment in enumerate(segments) if segment.get("code") == "discount"),
            None
        )
        # TODO: drop once totals sort order is managed in the Magento admin panel
        if discount_index is not None:
            discount_segment = segments.pop(discount_index)
            segments.insert(1, discount_segment)

    return data


def convert_order(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Process customer order data"""
    if not data:
        return data

    data = convert_keys(data)
    data["items"] = convert_items_response(data.get("items"))
    data = convert_totals(data)

    extension_attributes = data.pop("extension_attributes", None)
    if extension_attributes:
        data["shipping_address"] = extension_attributes.get("shipping_address")

    payment = data.get("payment") or {}
    if payment.get("extension_attributes"):
        data["payment_method_name"] = payment["extension_attributes"].get("method_name")
        data.pop("payment", None)

    return data


def prepare_address_for_order(address: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Remove fields Magento rejects in checkout address payloads"""
    data = dict(address or {})
    for field in ("default_billing", "default_shipping", "id"):
        data.pop(field, None)
    return data
