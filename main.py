#!/usr/bin/env python3
"""
Main application - Wires the session, query coordination and screen
controllers together against the inventory service
"""

import asyncio
import os
import sys
from typing import Optional

from config import API_CONFIG, LOGGING_CONFIG, QUERY_CONFIG, ROUTES_CONFIG, SESSION_CONFIG
from core.config_validator import validate_startup_config
from core.exceptions import ConfigValidationError, NetworkError
from core.logging_config import setup_logging, get_logger
from core.route_guard import RouteGuard
from core.session_state import SessionStateManager, SessionState
from api import InventoryApiClient, LoginCredentials
from events import event_bus, EventBus, SystemEvent
from query import QueryCoordinator, product_page_fetcher
from storage import KeyValueStore, JsonFileKeyValueStore
from views import ProductListController, ProductForm, StockMovementForm


class InventoryApp:
    def __init__(self,
                 store: Optional[KeyValueStore] = None,
                 api: Optional[InventoryApiClient] = None,
                 bus: Optional[EventBus] = None):
        self.logger = get_logger(__name__)
        self.bus = bus or event_bus

        self.store = store or JsonFileKeyValueStore(SESSION_CONFIG["store_path"])

        # The API reads the token lazily so every request carries the current session
        self.api = api or InventoryApiClient(
            base_url=API_CONFIG["base_url"],
            timeout=API_CONFIG["request_timeout"],
            token_provider=lambda: self.store.get(SESSION_CONFIG["token_key"]),
        )

        self.session = SessionStateManager(store=self.store, login_request=self.api.login, bus=self.bus)
        self.guard = RouteGuard(self.session, bus=self.bus)

        self.coordinator = QueryCoordinator(
            fetch_page=product_page_fetcher(self.api),
            debounce_seconds=QUERY_CONFIG["debounce_ms"] / 1000.0,
            bus=self.bus,
        )
        self.product_list = ProductListController(self.session, self.coordinator, self.api, bus=self.bus)

        self.session.subscribe(self._handle_session_change)
        self.bus.on_all(self._log_event)

    def _handle_session_change(self, state: SessionState):
        self.logger.info(f"Session is now {state.value}")

    def _log_event(self, event: SystemEvent):
        self.logger.debug(f"Event {event.type} from {event.source}: {event.data}")

    def new_product_form(self, product_id: Optional[int] = None) -> ProductForm:
        return ProductForm(self.api, product_id=product_id, on_saved=self.product_list.on_product_saved,
                           bus=self.bus)

    def new_stock_movement_form(self, product_id: Optional[int] = None) -> StockMovementForm:
        return StockMovementForm(self.api, product_id=product_id,
                                 on_registered=self.product_list.on_stock_movement,
                                 bus=self.bus)

    def navigate(self, path: str) -> str:
        """Resolve a navigation request through the route guard"""
        return self.guard.check(path).target

    async def start(self, credentials: Optional[LoginCredentials] = None) -> bool:
        """
        Restore or create a session and load the first product page.

        Returns:
            True if the product list was loaded
        """
        self.session.initialize()

        if not self.session.is_authenticated() and credentials is not None:
            try:
                await self.session.login(credentials)
            except NetworkError as e:
                self.logger.error(f"Login failed: {e.message}")
                return False

        if self.navigate(ROUTES_CONFIG["default"]) != ROUTES_CONFIG["default"]:
            self.logger.warning("No valid session; set INVENTORY_USERNAME and INVENTORY_PASSWORD to log in")
            return False

        self.product_list.load()
        await self.coordinator.wait_until_idle()
        return self.product_list.page is not None

    def render_page(self) -> str:
        """Plain-text rendering of the visible product page"""
        page = self.product_list.page
        lines = [f"User: {self.product_list.username}"]

        if self.product_list.error_message:
            lines.append(f"Error: {self.product_list.error_message}")
        if page is None:
            return "\n".join(lines)

        lines.append(f"Page {page.page_number + 1}/{max(page.total_pages, 1)} "
                     f"({page.total_elements} products)")
        for product in page.items:
            lines.append(f"  #{product.id:<5} {product.name:<30} {product.category:<15} "
                         f"{product.price:>10} stock={product.stock}")
        return "\n".join(lines)

    def stop(self):
        self.coordinator.shutdown()
        self.bus.off("*", self._log_event)
        self.logger.info("Inventory client stopped")


async def run(credentials: Optional[LoginCredentials]) -> int:
    app = InventoryApp()
    try:
        loaded = await app.start(credentials)
        print(app.render_page())
        return 0 if loaded else 1
    finally:
        app.stop()


def main() -> int:
    # Validate configuration first (before logging setup)
    try:
        validate_startup_config()
    except ConfigValidationError as e:
        print(f"Configuration validation failed: {e}")
        print("Please fix the configuration errors and try again.")
        return 1

    setup_logging(LOGGING_CONFIG)
    logger = get_logger(__name__)
    logger.info("Starting inventory client")

    username = os.getenv("INVENTORY_USERNAME")
    password = os.getenv("INVENTORY_PASSWORD")
    credentials = LoginCredentials(username, password) if username and password else None

    try:
        return asyncio.run(run(credentials))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
