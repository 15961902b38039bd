"""
Product list screen controller.

Composes the session (for display only) and the query coordinator, and
routes product mutations back into a coordinator refresh. Route gating is
the RouteGuard's job, not this controller's.
"""

from typing import Any, Dict, List, Optional

from config import ROUTES_CONFIG
from core.exceptions import NetworkError
from core.logging_config import get_logger
from core.session_state import SessionStateManager
from events import event_bus as default_event_bus, EventBus, EventTypes
from api.models import Page, Product, StockMovement
from query.coordinator import QueryCoordinator

logger = get_logger(__name__)


class ProductListController:
    """Headless controller behind the product list view"""

    def __init__(self,
                 session: SessionStateManager,
                 coordinator: QueryCoordinator,
                 api,
                 bus: Optional[EventBus] = None):
        self.session = session
        self.coordinator = coordinator
        self.api = api
        self.bus = bus or default_event_bus

        # Errors from mutations issued by this screen
        self.action_error: Optional[str] = None
        self.is_syncing = False

    # Display state

    @property
    def username(self) -> str:
        return self.session.get_username() or ""

    @property
    def page(self) -> Optional[Page]:
        return self.coordinator.page

    @property
    def products(self) -> List[Product]:
        return self.coordinator.items

    @property
    def is_loading(self) -> bool:
        return self.coordinator.is_loading or self.is_syncing

    @property
    def error_message(self) -> str:
        return self.action_error or self.coordinator.error_message or ""

    @property
    def page_indices(self) -> List[int]:
        """Zero-based page indices for the pagination controls"""
        if self.page is None:
            return []
        return list(range(self.page.total_pages))

    # Query pass-through

    def load(self):
        self.action_error = None
        return self.coordinator.go_to_page(0)

    def set_search(self, text: str):
        self.coordinator.set_search(text)

    def set_category(self, text: str):
        self.coordinator.set_category(text)

    def set_page_size(self, size: int):
        return self.coordinator.set_page_size(size)

    def go_to_page(self, page_number: int):
        self.action_error = None
        return self.coordinator.go_to_page(page_number)

    # Mutations

    async def delete_product(self, product_id: int) -> bool:
        """
        Delete a product and refresh the visible page.

        Returns:
            True if the product was deleted
        """
        self.action_error = None
        try:
            await self.api.delete_product(product_id)
        except NetworkError as e:
            self.action_error = e.message
            logger.warning(f"Deleting product #{product_id} failed: {e.message}")
            return False

        logger.info(f"Deleted product #{product_id}")
        self.bus.emit(EventTypes.PRODUCT_DELETED, {"product_id": product_id}, source="product_list")
        self.coordinator.refresh_after_removal(removed=1)
        return True

    async def sync_products(self) -> bool:
        """Ask the service to synchronize its catalogue, then show page 0"""
        self.action_error = None
        self.is_syncing = True
        try:
            await self.api.sync_products()
        except NetworkError as e:
            self.action_error = e.message
            logger.warning(f"Product sync failed: {e.message}")
            return False
        finally:
            self.is_syncing = False

        self.bus.emit(EventTypes.PRODUCTS_SYNCED, {}, source="product_list")
        self.coordinator.go_to_page(0)
        return True

    def on_product_saved(self, product: Product):
        """Forwarded from the product form after create/update"""
        logger.debug(f"Product #{product.id} saved, refreshing list")
        self.coordinator.refresh()

    def on_stock_movement(self, movement: StockMovement):
        """Forwarded from the stock movement form"""
        logger.debug(f"Stock of product #{movement.product_id} changed, refreshing list")
        self.coordinator.refresh()

    def logout(self) -> str:
        """End the session; returns the route to navigate to"""
        self.coordinator.shutdown()
        self.session.logout()
        return ROUTES_CONFIG["login"]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "error": self.error_message,
            "query": self.coordinator.get_stats(),
        }
