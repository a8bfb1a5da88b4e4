"""
Magento 2 REST API Client
Handles transport, admin/customer token auth and error decoding
Shared by all requests of the process; per-visitor state is passed in per call
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import logging

import httpx

from storefront.config import settings
from storefront.errors import (
    CUSTOMER_TOKEN_EXPIRED,
    BackendUnavailableError,
    MagentoApiError,
)
from storefront.utils.cache import TTLCache
from storefront.utils.query_string import flatten_params

logger = logging.getLogger(__name__)

ADMIN_TOKEN_KEY = "admin_token"


class Auth(str, Enum):
    """Which token goes into the Authorization header"""
    ADMIN = "admin"            # admin / integration token
    CUSTOMER = "customer"      # customer token when signed in, admin token otherwise
    NONE = "none"              # anonymous call


def format_error_message(message: str, parameters: Union[List, Dict, None] = None) -> str:
    """
    Fill Magento's message placeholders

    "No such entity with %fieldName = %fieldValue" + {"fieldName": "cartId", ...}
    "Could not save %1" + ["item"]
    """
    if not parameters:
        return message

    if isinstance(parameters, dict):
        # longest names first so %fieldValue is not eaten by %field
        for name in sorted(parameters, key=len, reverse=True):
            message = message.replace(f"%{name}", str(parameters[name]))
    elif isinstance(parameters, list):
        for index in range(len(parameters), 0, -1):
            message = message.replace(f"%{index}", str(parameters[index - 1]))

    return message


class MagentoClient:
    """Magento 2 REST API client"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        admin_username: Optional[str] = None,
        admin_password: Optional[str] = None,
        admin_token_lifetime_hours: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.MAGENTO_URL).rstrip("/")
        self.access_token = access_token if access_token is not None else settings.MAGENTO_ACCESS_TOKEN
        self.admin_username = admin_username or settings.MAGENTO_ADMIN_USERNAME
        self.admin_password = admin_password or settings.MAGENTO_ADMIN_PASSWORD
        self.admin_token_lifetime_hours = (
            admin_token_lifetime_hours or settings.MAGENTO_ADMIN_TOKEN_LIFETIME_HOURS
        )

        self._token_cache = TTLCache(max_size=10)
        self._http = httpx.AsyncClient(
            timeout=timeout or settings.MAGENTO_REQUEST_TIMEOUT,
            transport=transport,
            headers={"Accept": "application/json"}
        )

    def rest_url(self, path: str, store_code: Optional[str] = None) -> str:
        """Absolute REST url, scoped to a store view when store_code is given"""
        scope = f"/rest/{store_code}/V1" if store_code else "/rest/V1"
        return f"{self.base_url}{scope}{path}"

    async def get_admin_token(self) -> Optional[str]:
        """
        Admin token for catalog and configuration endpoints

        Integration tokens never expire. Admin user tokens are cached until one
        minute before Magento invalidates them.
        """
        if self.access_token:
            return self.access_token

        cached = self._token_cache.get(ADMIN_TOKEN_KEY)
        if cached:
            return cached

        if not (self.admin_username and self.admin_password):
            logger.debug("No admin credentials configured, calling Magento anonymously")
            return None

        response = await self._send(
            "POST",
            self.rest_url("/integration/admin/token"),
            json={"username": self.admin_username, "password": self.admin_password}
        )
        if response.is_error:
            raise self._build_error(response)

        token = response.json()
        ttl_seconds = self.admin_token_lifetime_hours * 3600 - 60
        self._token_cache.set(ADMIN_TOKEN_KEY, token, ttl_seconds=ttl_seconds)
        logger.debug(f"Admin token acquired, valid for {self.admin_token_lifetime_hours} hours")

        return token

    def invalidate_admin_token(self) -> None:
        self._token_cache.delete(ADMIN_TOKEN_KEY)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        auth: Auth = Auth.CUSTOMER,
        customer_token: Optional[str] = None,
        store_code: Optional[str] = None,
        retry_on_unauthorized: bool = True
    ) -> Any:
        """
        Call a REST endpoint and return the decoded JSON body

        Args:
            method: HTTP method
            path: Endpoint path below /V1, e.g. "/carts/mine"
            params: Nested query params, encoded in bracket notation
            json: Request body
            auth: Token selection, see Auth
            customer_token: Token of the signed-in customer (if any)
            store_code: Store view scope

        Raises:
            MagentoApiError: Magento answered with an error status
            BackendUnavailableError: Magento could not be reached
        """
        headers = {}
        uses_customer_token = auth == Auth.CUSTOMER and bool(customer_token)

        if uses_customer_token:
            token = customer_token
        elif auth == Auth.NONE:
            token = None
        else:
            token = await self.get_admin_token()

        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = self.rest_url(path, store_code)
        response = await self._send(
            method,
            url,
            params=flatten_params(params) if params else None,
            json=json,
            headers=headers
        )

        admin_rejected = (
            response.status_code == 401
            and token is not None
            and not uses_customer_token
            and not self.access_token
        )
        if admin_rejected and retry_on_unauthorized:
            logger.info("Admin token rejected by Magento, requesting a new one")
            self.invalidate_admin_token()
            return await self.request(
                method, path, params=params, json=json, auth=auth,
                customer_token=customer_token, store_code=store_code,
                retry_on_unauthorized=False
            )

        if response.is_error:
            raise self._build_error(response, uses_customer_token)

        if not response.content:
            return None

        return response.json()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("PUT", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        logger.debug(f"Magento {method} {url}")
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Magento request {method} {url} failed: {e}")
            raise BackendUnavailableError(f"Magento backend is not available: {e}") from e

    def _build_error(self, response: httpx.Response, uses_customer_token: bool = False) -> MagentoApiError:
        """Turn an error response into MagentoApiError with a readable message"""
        body: Any = None
        message = response.reason_phrase or f"HTTP {response.status_code}"

        try:
            body = response.json()
        except ValueError:
            body = response.text or None

        if isinstance(body, dict) and body.get("message"):
            message = format_error_message(body["message"], body.get("parameters"))

        error = MagentoApiError(response.status_code, message, body=body)
        if response.status_code == 401 and uses_customer_token:
            # the session gets signed out once the operation finishes
            error.mark_user_facing(CUSTOMER_TOKEN_EXPIRED)

        return error
