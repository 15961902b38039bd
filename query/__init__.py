"""
Product listing query coordination
"""

from .criteria import FilterCriteria, FetchRequest, product_page_fetcher
from .coordinator import QueryCoordinator

__all__ = ["FilterCriteria", "FetchRequest", "product_page_fetcher", "QueryCoordinator"]
