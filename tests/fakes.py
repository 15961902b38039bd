"""In-memory fakes for testing.

They implement the same call signatures as the aiohttp client and the
query fetcher, but keep everything in memory. No network, no files.
"""

from __future__ import annotations

import asyncio
import base64
import json
from dataclasses import replace
from decimal import Decimal

from api.models import (
    LoginResult, Page, Product, StockMovement, StockMovementType,
)
from core.exceptions import BusinessRuleRejection, NetworkError
from query.criteria import FilterCriteria


def _segment(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def make_raw_token(payload_text: str) -> str:
    """Token whose payload segment is exactly `payload_text`."""
    header = _segment(json.dumps({"alg": "HS256", "typ": "JWT"}))
    return f"{header}.{_segment(payload_text)}.c2lnbmF0dXJl"


def make_token(exp, sub: str = "admin") -> str:
    """Unsigned JWT-shaped token with the given `exp` claim."""
    claims = {"sub": sub, "iat": 1_700_000_000}
    if exp is not None:
        claims["exp"] = exp
    return make_raw_token(json.dumps(claims))


class FakeClock:

    def __init__(self, now: float = 1_800_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_product(product_id: int, name: str | None = None, stock: int = 10,
                 category: str = "Tools") -> Product:
    return Product(
        id=product_id,
        name=name or f"Product {product_id}",
        category=category,
        supplier="Acme",
        price=Decimal("9.99"),
        stock=stock,
        registration_date="2024-01-01T10:00:00",
    )


def make_page(items, page_number: int = 0, page_size: int = 10,
              total_elements: int | None = None) -> Page:
    total = len(items) if total_elements is None else total_elements
    total_pages = (total + page_size - 1) // page_size if total else 0
    return Page(
        items=list(items),
        page_number=page_number,
        page_size=page_size,
        total_elements=total,
        total_pages=total_pages,
        is_first=page_number == 0,
        is_last=page_number >= total_pages - 1,
    )


class FakeLoginApi:

    def __init__(self, token: str) -> None:
        self.token = token
        self.fail_with: Exception | None = None
        self.calls = []

    async def login(self, credentials) -> LoginResult:
        self.calls.append(credentials)
        if self.fail_with is not None:
            raise self.fail_with
        return LoginResult(token=self.token, username=credentials.username)


class ScriptedFetcher:
    """Fetcher whose responses are resolved by the test, in any order."""

    def __init__(self) -> None:
        self.calls: list[tuple[FilterCriteria, int]] = []
        self._futures: list[asyncio.Future] = []

    async def __call__(self, criteria: FilterCriteria, page_number: int) -> Page:
        self.calls.append((criteria, page_number))
        future = asyncio.get_running_loop().create_future()
        self._futures.append(future)
        return await future

    def resolve(self, index: int, page: Page) -> None:
        self._futures[index].set_result(page)

    def fail(self, index: int, error: Exception) -> None:
        self._futures[index].set_exception(error)


class FakeInventoryApi:
    """In-memory stand-in for InventoryApiClient with server-side rules."""

    def __init__(self, products: list[Product] | None = None) -> None:
        self.products: dict[int, Product] = {}
        for p in products or []:
            self.products[p.id] = p
        self._next_id = max(self.products, default=0) + 1
        self._next_movement_id = 1
        self.calls: list[tuple] = []
        self.fail_next: dict[str, Exception] = {}
        self.token = make_token(2_000_000_000)

    async def login(self, credentials) -> LoginResult:
        self.calls.append(("login", credentials.username))
        self._check_failure("login")
        return LoginResult(token=self.token, username=credentials.username)

    def _check_failure(self, operation: str) -> None:
        error = self.fail_next.pop(operation, None)
        if error is not None:
            raise error

    async def list_products(self, search: str = "", category: str = "", page: int = 0,
                            size: int = 10, **kwargs) -> Page:
        self.calls.append(("list_products", search, category, page, size))
        self._check_failure("list_products")
        matches = [
            p for p in sorted(self.products.values(), key=lambda p: p.id)
            if search.lower() in p.name.lower() and category.lower() in p.category.lower()
        ]
        chunk = matches[page * size:(page + 1) * size]
        return make_page(chunk, page_number=page, page_size=size, total_elements=len(matches))

    async def get_product(self, product_id: int) -> Product:
        self.calls.append(("get_product", product_id))
        self._check_failure("get_product")
        if product_id not in self.products:
            raise NetworkError(f"Producto no encontrado con id: {product_id}", status=404)
        return replace(self.products[product_id])

    async def create_product(self, draft) -> Product:
        self.calls.append(("create_product", draft))
        self._check_failure("create_product")
        product = Product(id=self._next_id, name=draft.name, category=draft.category,
                          supplier=draft.supplier, price=draft.price, stock=draft.stock)
        self.products[product.id] = product
        self._next_id += 1
        return replace(product)

    async def update_product(self, product_id: int, draft) -> Product:
        self.calls.append(("update_product", product_id, draft))
        self._check_failure("update_product")
        product = replace(self.products[product_id], name=draft.name, category=draft.category,
                          supplier=draft.supplier, price=draft.price, stock=draft.stock)
        self.products[product_id] = product
        return replace(product)

    async def delete_product(self, product_id: int) -> None:
        self.calls.append(("delete_product", product_id))
        self._check_failure("delete_product")
        self.products.pop(product_id, None)

    async def sync_products(self) -> None:
        self.calls.append(("sync_products",))
        self._check_failure("sync_products")

    async def register_stock_movement(self, request) -> StockMovement:
        self.calls.append(("register_stock_movement", request))
        self._check_failure("register_stock_movement")
        product = self.products[request.product_id]
        stock_after = request.type.apply(product.stock, request.quantity)
        if request.type is StockMovementType.OUTBOUND and stock_after < 0:
            raise BusinessRuleRejection(
                f"Stock insuficiente. Disponible: {product.stock}, Solicitado: {request.quantity}",
                status=400,
            )
        self.products[product.id] = replace(product, stock=stock_after)
        movement = StockMovement(
            id=self._next_movement_id, product_id=product.id, type=request.type,
            quantity=request.quantity, stock_before=product.stock, stock_after=stock_after,
            timestamp="2024-01-01T12:00:00",
        )
        self._next_movement_id += 1
        return movement

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def last(self, operation: str) -> tuple:
        return [call for call in self.calls if call[0] == operation][-1]


async def settle(turns: int = 5) -> None:
    """Let already-scheduled callbacks and tasks run"""
    for _ in range(turns):
        await asyncio.sleep(0)
