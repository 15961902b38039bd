"""
Data models for the inventory service wire format.

The service speaks Spanish JSON keys (nombre, categoria, ...); models expose
English attribute names and convert at the boundary.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class LoginCredentials:
    username: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.username, "password": self.password}


@dataclass(frozen=True)
class LoginResult:
    token: str
    username: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoginResult':
        return cls(token=data["token"], username=data["username"])


@dataclass
class Product:
    """Product as returned by the service"""
    id: int
    name: str
    category: str
    supplier: Optional[str]
    price: Decimal
    stock: int
    registration_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        return cls(
            id=int(data["id"]),
            name=data.get("nombre", ""),
            category=data.get("categoria", ""),
            supplier=data.get("proveedor"),
            price=Decimal(str(data.get("precio", "0"))),
            stock=int(data.get("stock", 0)),
            registration_date=data.get("fechaRegistro"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "nombre": self.name,
            "categoria": self.category,
            "proveedor": self.supplier,
            "precio": float(self.price),
            "stock": self.stock,
            "fechaRegistro": self.registration_date,
        }


@dataclass
class ProductDraft:
    """Payload for creating or updating a product"""
    name: str
    category: str
    supplier: str
    price: Decimal
    stock: int

    @classmethod
    def from_product(cls, product: Product) -> 'ProductDraft':
        return cls(
            name=product.name,
            category=product.category,
            supplier=product.supplier or "",
            price=product.price,
            stock=product.stock,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nombre": self.name,
            "categoria": self.category,
            "proveedor": self.supplier,
            "precio": float(self.price),
            "stock": self.stock,
        }


@dataclass
class Page(Generic[T]):
    """One page of a paginated listing"""
    items: List[T] = field(default_factory=list)
    page_number: int = 0
    page_size: int = 10
    total_elements: int = 0
    total_pages: int = 0
    is_first: bool = True
    is_last: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any], item_parser: Callable[[Dict[str, Any]], T]) -> 'Page[T]':
        return cls(
            items=[item_parser(item) for item in data.get("content", [])],
            page_number=int(data.get("pageNumber", 0)),
            page_size=int(data.get("pageSize", 0)),
            total_elements=int(data.get("totalElements", 0)),
            total_pages=int(data.get("totalPages", 0)),
            is_first=bool(data.get("first", True)),
            is_last=bool(data.get("last", True)),
        )

    @property
    def is_empty(self) -> bool:
        return not self.items


class StockMovementType(Enum):
    """Direction of a stock movement (wire values are the service's)"""
    INBOUND = "ENTRADA"
    OUTBOUND = "SALIDA"

    def apply(self, stock_before: int, quantity: int) -> int:
        """Stock level after moving `quantity` units in this direction"""
        if self is StockMovementType.INBOUND:
            return stock_before + quantity
        return stock_before - quantity

    def revert(self, stock_after: int, quantity: int) -> int:
        """Stock level before a movement that left `stock_after`"""
        if self is StockMovementType.INBOUND:
            return stock_after - quantity
        return stock_after + quantity


@dataclass(frozen=True)
class StockMovementRequest:
    product_id: int
    type: StockMovementType
    quantity: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productoId": self.product_id,
            "tipo": self.type.value,
            "cantidad": self.quantity,
        }


@dataclass(frozen=True)
class StockMovement:
    """A registered stock movement"""
    id: int
    product_id: int
    type: StockMovementType
    quantity: int
    stock_before: int
    stock_after: int
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StockMovement':
        """
        Parse a registered movement.

        The service reports the resulting stock as `stockResultante`; bodies
        carrying `stockAnterior`/`stockNuevo` are accepted as well.
        """
        movement_type = StockMovementType(data["tipo"])
        quantity = int(data["cantidad"])

        if "stockResultante" in data:
            stock_after = int(data["stockResultante"])
        else:
            stock_after = int(data["stockNuevo"])

        if "stockAnterior" in data:
            stock_before = int(data["stockAnterior"])
        else:
            stock_before = movement_type.revert(stock_after, quantity)

        return cls(
            id=int(data["id"]),
            product_id=int(data["productoId"]),
            type=movement_type,
            quantity=quantity,
            stock_before=stock_before,
            stock_after=stock_after,
            timestamp=data.get("fecha"),
        )
