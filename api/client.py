"""
Async HTTP client for the inventory REST service
"""

import asyncio
import time
from decimal import InvalidOperation
from typing import Any, Callable, Dict, Optional, TypeVar

import aiohttp

from config import API_CONFIG, QUERY_CONFIG
from core.exceptions import NetworkError, BusinessRuleRejection
from core.logging_config import get_logger, log_api_call
from .models import (
    LoginCredentials, LoginResult, Page, Product, ProductDraft,
    StockMovement, StockMovementRequest,
)

logger = get_logger(__name__)

T = TypeVar("T")

# Statuses whose server message describes a rule the request broke
REJECTION_STATUSES = (400, 409)


class InventoryApiClient:
    """Issues typed requests against the inventory service"""

    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 token_provider: Optional[Callable[[], Optional[str]]] = None,
                 endpoints: Optional[Dict[str, str]] = None):
        """
        Args:
            base_url: Service root, e.g. http://localhost:8080
            timeout: Total timeout per request in seconds
            token_provider: Returns the bearer token to attach, if any
            endpoints: Overrides for API_CONFIG["endpoints"]
        """
        self.base_url = (base_url or API_CONFIG["base_url"]).rstrip("/")
        self.timeout = timeout if timeout is not None else API_CONFIG["request_timeout"]
        self.token_provider = token_provider
        self.endpoints = {**API_CONFIG["endpoints"], **(endpoints or {})}

        self.request_count = 0
        self.error_count = 0

    # Authentication

    async def login(self, credentials: LoginCredentials) -> LoginResult:
        data = await self._request(
            "POST", self.endpoints["login"],
            payload=credentials.to_dict(),
            default_error="Login failed",
            authenticated=False,
        )
        return self._parse(LoginResult.from_dict, data, "Login failed")

    # Products

    async def list_products(self,
                            search: str = "",
                            category: str = "",
                            page: int = 0,
                            size: int = QUERY_CONFIG["default_page_size"],
                            sort_by: str = QUERY_CONFIG["sort_by"],
                            sort_dir: str = QUERY_CONFIG["sort_dir"]) -> Page[Product]:
        params = {
            "page": str(page),
            "size": str(size),
            "sortBy": sort_by,
            "sortDir": sort_dir,
        }
        if search:
            params["search"] = search
        if category:
            params["categoria"] = category

        data = await self._request(
            "GET", self.endpoints["products"],
            params=params,
            default_error="Failed to load products",
        )
        return self._parse(lambda d: Page.from_dict(d, Product.from_dict), data, "Failed to load products")

    async def get_product(self, product_id: int) -> Product:
        data = await self._request(
            "GET", f"{self.endpoints['products']}/{product_id}",
            default_error="Failed to load product",
        )
        return self._parse(Product.from_dict, data, "Failed to load product")

    async def create_product(self, draft: ProductDraft) -> Product:
        data = await self._request(
            "POST", self.endpoints["products"],
            payload=draft.to_dict(),
            default_error="Failed to save product",
        )
        return self._parse(Product.from_dict, data, "Failed to save product")

    async def update_product(self, product_id: int, draft: ProductDraft) -> Product:
        data = await self._request(
            "PUT", f"{self.endpoints['products']}/{product_id}",
            payload=draft.to_dict(),
            default_error="Failed to save product",
        )
        return self._parse(Product.from_dict, data, "Failed to save product")

    async def delete_product(self, product_id: int) -> None:
        await self._request(
            "DELETE", f"{self.endpoints['products']}/{product_id}",
            default_error="Failed to delete product",
            expect_json=False,
        )

    async def sync_products(self) -> None:
        """Ask the service to import products from its upstream catalogue"""
        await self._request(
            "POST", self.endpoints["sync_products"],
            payload={},
            default_error="Failed to synchronize products",
            expect_json=False,
        )

    # Stock movements

    async def register_stock_movement(self, request: StockMovementRequest) -> StockMovement:
        data = await self._request(
            "POST", self.endpoints["stock_movements"],
            payload=request.to_dict(),
            default_error="Failed to register movement",
        )
        return self._parse(StockMovement.from_dict, data, "Failed to register movement")

    # Transport

    async def _request(self,
                       method: str,
                       path: str,
                       default_error: str,
                       payload: Optional[Dict[str, Any]] = None,
                       params: Optional[Dict[str, str]] = None,
                       authenticated: bool = True,
                       expect_json: bool = True) -> Any:
        """
        Perform one request and decode the response.

        Raises:
            BusinessRuleRejection: 400/409 with a server message
            NetworkError: Any other failure, including timeouts
        """
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}

        if authenticated and self.token_provider:
            token = self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        self.request_count += 1
        start_time = time.monotonic()

        try:
            timeout_config = aiohttp.ClientTimeout(total=self.timeout)

            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.request(
                    method, url, json=payload, params=params, headers=headers
                ) as response:
                    duration_ms = (time.monotonic() - start_time) * 1000
                    log_api_call(logger, method, path, response.status, duration_ms)

                    if response.status >= 400:
                        error_payload = await self._read_error_payload(response)
                        raise self._error_for(response.status, error_payload, default_error)

                    if not expect_json:
                        return None

                    try:
                        return await response.json(content_type=None)
                    except ValueError as e:
                        raise NetworkError(default_error, status=response.status,
                                           details={"reason": f"Invalid JSON response: {e}"})

        except asyncio.TimeoutError:
            self.error_count += 1
            logger.warning(f"{method} {path} timed out after {self.timeout}s")
            raise NetworkError(default_error, details={"reason": "timeout", "timeout": self.timeout})

        except aiohttp.ClientError as e:
            self.error_count += 1
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(default_error, details={"reason": str(e)})

        except NetworkError:
            self.error_count += 1
            raise

    async def _read_error_payload(self, response: aiohttp.ClientResponse) -> Optional[Dict[str, Any]]:
        try:
            data = await response.json(content_type=None)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def _parse(self, parser: Callable[[Any], T], data: Any, default_error: str) -> T:
        """Build a model from a decoded body; malformed bodies become NetworkError"""
        try:
            return parser(data)
        except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as e:
            self.error_count += 1
            logger.warning(f"Unexpected response body ({type(e).__name__}: {e})")
            raise NetworkError(default_error, details={"reason": f"Malformed response: {e}"})

    def _error_for(self, status: int, payload: Optional[Dict[str, Any]],
                   default_error: str) -> NetworkError:
        server_message = payload.get("message") if payload else None
        details = {"status": status}
        if payload and isinstance(payload.get("errors"), dict):
            details["field_errors"] = payload["errors"]

        if server_message and status in REJECTION_STATUSES:
            return BusinessRuleRejection(server_message, status=status, details=details)

        return NetworkError(server_message or default_error, status=status, details=details)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "request_count": self.request_count,
            "error_count": self.error_count,
        }
