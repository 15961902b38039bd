"""
Inventory service API client and wire models
"""

from .client import InventoryApiClient
from .models import (
    LoginCredentials, LoginResult, Page, Product, ProductDraft,
    StockMovement, StockMovementRequest, StockMovementType,
)

__all__ = [
    "InventoryApiClient",
    "LoginCredentials", "LoginResult", "Page", "Product", "ProductDraft",
    "StockMovement", "StockMovementRequest", "StockMovementType",
]
