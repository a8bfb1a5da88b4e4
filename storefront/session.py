"""
Shop Session
Typed access to the per-visitor state kept in the HTTP session
(cart quote id, customer token, currency, store)
"""
from typing import Any, Dict, MutableMapping, Optional, Union
import logging
import time

logger = logging.getLogger(__name__)

QuoteId = Union[int, str]


class ShopSession:
    """
    Wraps a mutable mapping (Starlette request.session or a plain dict)

    Values are stored as JSON-friendly primitives so the mapping can live in a
    signed cookie. There is no locking: concurrent requests of one visitor
    simply overwrite each other.
    """

    def __init__(self, data: Optional[MutableMapping[str, Any]] = None):
        self.data = data if data is not None else {}

    # ---------- cart ----------

    @property
    def cart(self) -> Optional[Dict[str, Any]]:
        return self.data.get("cart")

    @property
    def quote_id(self) -> Optional[QuoteId]:
        cart = self.cart or {}
        return cart.get("quote_id")

    def set_quote_id(self, quote_id: QuoteId) -> Dict[str, Any]:
        self.data["cart"] = {"quote_id": quote_id}
        return self.data["cart"]

    def remove_cart_data(self) -> None:
        self.data.pop("cart", None)

    # ---------- customer ----------

    @property
    def customer_token(self) -> Optional[str]:
        """Valid customer token, expired tokens are dropped with the cart"""
        record = self.data.get("customer_token")
        if not record or not record.get("token"):
            return None

        expiration_time = record.get("expiration_time")
        if expiration_time is not None and time.time() >= expiration_time:
            logger.debug("Customer token expired, clearing customer session data")
            self.sign_out()
            return None

        return record["token"]

    def set_customer_token(self, token: str, valid_hours: float) -> float:
        """Store token, expiring one minute before Magento invalidates it"""
        valid_minutes = valid_hours * 60 - 1
        expiration_time = time.time() + valid_minutes * 60
        self.data["customer_token"] = {
            "token": token,
            "expiration_time": expiration_time
        }
        return expiration_time

    def sign_out(self) -> None:
        self.data.pop("customer_token", None)
        self.remove_cart_data()

    # ---------- store / currency ----------

    @property
    def store_code(self) -> Optional[str]:
        return self.data.get("store_code")

    @store_code.setter
    def store_code(self, value: Optional[str]) -> None:
        self.data["store_code"] = value

    @property
    def currency(self) -> Optional[str]:
        return self.data.get("currency")

    @currency.setter
    def currency(self, value: Optional[str]) -> None:
        self.data["currency"] = value

    @property
    def base_currency(self) -> Optional[str]:
        return self.data.get("base_currency")

    @property
    def timezone(self) -> Optional[str]:
        return self.data.get("timezone")

    @property
    def weight_unit(self) -> Optional[str]:
        return self.data.get("weight_unit")

    def apply_store_config(self, store_config: Dict[str, Any]) -> None:
        """Mirror the active store view settings, keep an already chosen currency"""
        self.data["base_currency"] = store_config.get("base_currency_code")
        self.data["timezone"] = store_config.get("timezone")
        self.data["weight_unit"] = store_config.get("weight_unit")
        if not self.currency:
            self.currency = store_config.get("default_display_currency_code")

    # ---------- orders ----------

    @property
    def order_id(self) -> Optional[int]:
        return self.data.get("order_id")

    @order_id.setter
    def order_id(self, value: Optional[int]) -> None:
        self.data["order_id"] = value

    @property
    def order_quote_id(self) -> Optional[QuoteId]:
        return self.data.get("order_quote_id")

    @order_quote_id.setter
    def order_quote_id(self, value: Optional[QuoteId]) -> None:
        self.data["order_quote_id"] = value

    @property
    def paypal_express_hash(self) -> Optional[str]:
        return self.data.get("paypal_express_hash")
