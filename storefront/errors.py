"""
Storefront Errors
Error types raised by the commerce backends and understood by the GraphQL layer
"""
from typing import Any, Optional

# Error codes exposed to clients in GraphQL error extensions
STOCK_TOO_LOW = "STOCK_TOO_LOW"
INVALID_CART = "INVALID_CART"
CUSTOMER_TOKEN_EXPIRED = "CUSTOMER_TOKEN_EXPIRED"
UNAUTHORIZED = "UNAUTHORIZED"


class StorefrontError(Exception):
    """
    Base error for commerce operations

    user_message: the message is safe to show to the shopper
    no_logging: expected outcome (wrong password, low stock), keep it out of the error log
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        user_message: bool = False,
        no_logging: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.user_message = user_message
        self.no_logging = no_logging

    def mark_user_facing(self, code: Optional[str] = None) -> "StorefrontError":
        """Flag as shopper-visible and not log-worthy"""
        self.user_message = True
        self.no_logging = True
        if code:
            self.code = code
        return self


class MagentoApiError(StorefrontError):
    """Non-2xx response from the Magento REST API"""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        body: Any = None
    ):
        super().__init__(message, code=code)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.message}"


class BackendUnavailableError(StorefrontError):
    """Magento could not be reached (connection error, timeout)"""


class SessionStateError(StorefrontError):
    """Operation needs session state (cart, quote id) that is not there"""


class AuthorizationError(StorefrontError):
    """Customer-only operation without a signed-in customer"""

    def __init__(self, message: str):
        super().__init__(message, code=UNAUTHORIZED, user_message=True, no_logging=True)
