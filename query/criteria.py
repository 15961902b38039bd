"""
Filter criteria and fetch request records
"""

import time
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable

from config import QUERY_CONFIG


@dataclass(frozen=True)
class FilterCriteria:
    """User-controlled inputs driving a product listing fetch"""
    search: str = ""
    category: str = ""
    page_size: int = QUERY_CONFIG["default_page_size"]

    def with_search(self, text: str) -> 'FilterCriteria':
        return replace(self, search=text)

    def with_category(self, text: str) -> 'FilterCriteria':
        return replace(self, category=text)

    def with_page_size(self, size: int) -> 'FilterCriteria':
        return replace(self, page_size=size)


@dataclass(frozen=True)
class FetchRequest:
    """One issued fetch; lives only until its response is arbitrated"""
    sequence_number: int
    criteria: FilterCriteria
    page_number: int
    issued_at: float = field(default_factory=time.monotonic, compare=False)

    @property
    def key(self):
        """What the fetch asks for, ignoring its sequence number"""
        return (self.criteria, self.page_number)


def product_page_fetcher(api) -> Callable[[FilterCriteria, int], Awaitable]:
    """Adapt an InventoryApiClient to the coordinator's fetch signature"""
    async def fetch(criteria: FilterCriteria, page_number: int):
        return await api.list_products(
            search=criteria.search,
            category=criteria.category,
            page=page_number,
            size=criteria.page_size,
        )

    return fetch
