"""
Headless screen controllers
"""

from .product_list import ProductListController
from .product_form import ProductForm
from .stock_movement_form import StockMovementForm

__all__ = ["ProductListController", "ProductForm", "StockMovementForm"]
