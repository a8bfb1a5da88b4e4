"""
Commerce Backend Interface
Abstract base class for commerce providers resolving the storefront schema
One instance serves one request and carries that visitor's session
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from storefront.session import ShopSession

class CommerceBackend(ABC):
    """Abstract interface for commerce backends"""

    def __init__(self, session: ShopSession):
        self.session = session

    # ---------- catalog ----------

    @abstractmethod
    async def category(self, category_id: int) -> Dict:
        """
        Get category by ID

        Returns:
            Category dictionary with url_path, breadcrumbs and children_data
        """
        pass

    @abstractmethod
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
        """
        Search products

        Args:
            filters: Simple {field, value} filters
            category_id: Category to search in
            skus: Narrow the search to these SKUs
            query: Pagination, {page, per_page}
            sort_orders: List of {field, direction}
            include_subcategories: Include products of subcategories
            with_attribute_filters: Attributes for layered navigation

        Returns:
            Dictionary with items and pagination
        """
        pass

    @abstractmethod
    async def product(self, product_id: int) -> Optional[Dict]:
        """Get product by ID"""
        pass

    @abstractmethod
    async def fetch_url(self, path: str, load_entity_data: bool = False) -> Dict:
        """Resolve a storefront url to the product, category or CMS page behind it"""
        pass

    async def countries(self) -> Dict:
        raise NotImplementedError("countries not implemented for this backend")

    # ---------- cart ----------

    @abstractmethod
    async def cart(self) -> Dict:
        """
        Get cart of the current session

        Returns:
            Cart dictionary, an inactive empty cart when there is none
        """
        pass

    @abstractmethod
    async def add_to_cart(self, data: Dict) -> Dict:
        """
        Add item to cart, creating the cart if needed

        Returns:
            Added cart item
        """
        pass

    @abstractmethod
    async def update_cart_item(self, data: Dict) -> Dict:
        pass

    @abstractmethod
    async def remove_cart_item(self, data: Dict) -> Dict:
        pass

    async def apply_coupon(self, coupon_code: str) -> bool:
        raise NotImplementedError("apply_coupon not implemented for this backend")

    async def cancel_coupon(self) -> bool:
        raise NotImplementedError("cancel_coupon not implemented for this backend")

    # ---------- checkout ----------

    async def estimate_shipping_methods(self, address: Dict) -> List[Dict]:
        raise NotImplementedError("estimate_shipping_methods not implemented for this backend")

    async def set_shipping(self, data: Dict) -> Dict:
        raise NotImplementedError("set_shipping not implemented for this backend")

    @abstractmethod
    async def place_order(self, data: Dict) -> Dict:
        """Place order for the current cart"""
        pass

    # ---------- customer ----------

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> bool:
        """Sign customer in, the session keeps the customer token"""
        pass

    @abstractmethod
    async def sign_out(self) -> bool:
        pass

    @abstractmethod
    async def sign_up(self, data: Dict) -> bool:
        pass

    @abstractmethod
    async def customer(self) -> Optional[Dict]:
        """Signed-in customer, None for guests"""
        pass

    async def edit_customer_data(self, data: Dict) -> Dict:
        raise NotImplementedError("edit_customer_data not implemented for this backend")

    async def address(self, address_id: Optional[int] = None) -> Any:
        raise NotImplementedError("address not implemented for this backend")

    async def add_customer_address(self, data: Dict) -> Dict:
        raise NotImplementedError("add_customer_address not implemented for this backend")

    async def edit_customer_address(self, data: Dict) -> Dict:
        raise NotImplementedError("edit_customer_address not implemented for this backend")

    async def remove_customer_address(self, address_id: int) -> bool:
        raise NotImplementedError("remove_customer_address not implemented for this backend")

    async def validate_password_token(self, token: str) -> bool:
        raise NotImplementedError("validate_password_token not implemented for this backend")

    async def request_customer_password_reset_token(self, email: str) -> bool:
        raise NotImplementedError("request_customer_password_reset_token not implemented for this backend")

    async def reset_customer_password(self, reset_token: str, password: str) -> bool:
        raise NotImplementedError("reset_customer_password not implemented for this backend")

    async def change_customer_password(self, password: str, current_password: str) -> bool:
        raise NotImplementedError("change_customer_password not implemented for this backend")

    # ---------- orders ----------

    async def orders(self, query: Optional[Dict] = None) -> Dict:
        raise NotImplementedError("orders not implemented for this backend")

    async def order(self, order_id: int) -> Optional[Dict]:
        raise NotImplementedError("order not implemented for this backend")

    async def last_order(self) -> Optional[Dict]:
        raise NotImplementedError("last_order not implemented for this backend")

    # ---------- shop configuration ----------

    @abstractmethod
    async def shop_config(self) -> Dict:
        """
        Shop configuration for the current session

        Standard format:
        {
            "stores": List[{"name": str, "code": str}],
            "currencies": List[str],
            "base_currency": str,
            "timezone": str,
            "weight_unit": str,
            "active_store": str,
            "active_currency": str,
            "active_locale": str
        }
        """
        pass

    async def backend_config(self) -> Dict:
        """Default implementation: wrap shop_config"""
        return {"shop": await self.shop_config()}

    async def set_shop_store(self, store_code: str) -> Dict:
        raise NotImplementedError("set_shop_store not implemented for this backend")

    async def set_shop_currency(self, currency: str) -> Dict:
        raise NotImplementedError("set_shop_currency not implemented for this backend")
