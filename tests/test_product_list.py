"""Tests for the product list controller.

Uses the in-memory inventory fake; the query coordinator is real.
"""

import asyncio

from core.exceptions import NetworkError
from core.session_state import SessionState, SessionStateManager
from events import EventTypes
from query import QueryCoordinator, product_page_fetcher
from storage import InMemoryKeyValueStore
from views import ProductListController
from tests.fakes import FakeClock, FakeInventoryApi, FakeLoginApi, make_product, make_token


def _setup(bus, count: int = 11):
    clock = FakeClock()
    token = make_token(clock.now + 3600)
    store = InMemoryKeyValueStore({"auth_token": token, "username": "admin"})
    session = SessionStateManager(store=store, login_request=FakeLoginApi(token).login,
                                  clock=clock, bus=bus)
    session.initialize()

    api = FakeInventoryApi([make_product(i) for i in range(1, count + 1)])
    coordinator = QueryCoordinator(fetch_page=product_page_fetcher(api), debounce_seconds=0.01, bus=bus)
    controller = ProductListController(session, coordinator, api, bus=bus)
    return controller, api, store


class TestDisplay:

    def test_load_shows_first_page(self, bus):
        controller, api, _ = _setup(bus)

        async def scenario():
            controller.load()
            assert controller.is_loading
            await controller.coordinator.wait_until_idle()

        asyncio.run(scenario())
        assert [p.id for p in controller.products] == list(range(1, 11))
        assert controller.page_indices == [0, 1]
        assert controller.username == "admin"
        assert controller.error_message == ""
        assert not controller.is_loading

    def test_no_page_indices_before_first_load(self, bus):
        controller, _, _ = _setup(bus)
        assert controller.page_indices == []
        assert controller.products == []

    def test_search_is_forwarded_to_query(self, bus):
        controller, api, _ = _setup(bus)

        async def scenario():
            controller.set_search("Product 1")
            controller.set_category("Tools")
            await controller.coordinator.wait_until_idle()

        asyncio.run(scenario())
        assert api.last("list_products") == ("list_products", "Product 1", "Tools", 0, 10)
        assert [p.id for p in controller.products] == [1, 10, 11]


class TestDelete:

    def test_deleting_last_item_on_page_shows_previous_page(self, bus):
        controller, api, _ = _setup(bus)

        async def scenario():
            controller.go_to_page(1)
            await controller.coordinator.wait_until_idle()
            deleted = await controller.delete_product(11)
            await controller.coordinator.wait_until_idle()
            return deleted

        assert asyncio.run(scenario()) is True
        assert 11 not in api.products
        assert controller.page.page_number == 0
        assert len(controller.products) == 10
        assert bus.event_counts[EventTypes.PRODUCT_DELETED] == 1

    def test_delete_failure_sets_error_and_keeps_page(self, bus):
        controller, api, _ = _setup(bus)
        api.fail_next["delete_product"] = NetworkError("Failed to delete product", status=500)

        async def scenario():
            controller.load()
            await controller.coordinator.wait_until_idle()
            shown = controller.page
            deleted = await controller.delete_product(3)
            return deleted, shown

        deleted, shown = asyncio.run(scenario())
        assert deleted is False
        assert controller.error_message == "Failed to delete product"
        assert controller.page is shown
        assert api.count("list_products") == 1

    def test_next_navigation_clears_action_error(self, bus):
        controller, api, _ = _setup(bus)
        api.fail_next["delete_product"] = NetworkError("Failed to delete product")

        async def scenario():
            await controller.delete_product(3)
            controller.go_to_page(0)
            await controller.coordinator.wait_until_idle()

        asyncio.run(scenario())
        assert controller.error_message == ""


class TestSync:

    def test_sync_reloads_first_page(self, bus):
        controller, api, _ = _setup(bus)

        async def scenario():
            controller.go_to_page(1)
            await controller.coordinator.wait_until_idle()
            synced = await controller.sync_products()
            await controller.coordinator.wait_until_idle()
            return synced

        assert asyncio.run(scenario()) is True
        assert api.count("sync_products") == 1
        assert controller.page.page_number == 0
        assert not controller.is_syncing
        assert bus.event_counts[EventTypes.PRODUCTS_SYNCED] == 1

    def test_sync_failure_sets_error(self, bus):
        controller, api, _ = _setup(bus)
        api.fail_next["sync_products"] = NetworkError("Failed to synchronize products")

        synced = asyncio.run(controller.sync_products())

        assert synced is False
        assert controller.error_message == "Failed to synchronize products"
        assert not controller.is_syncing
        assert api.count("list_products") == 0


class TestMutationForwarding:

    def test_saved_product_refreshes_current_page(self, bus):
        controller, api, _ = _setup(bus)

        async def scenario():
            controller.go_to_page(1)
            await controller.coordinator.wait_until_idle()
            controller.on_product_saved(make_product(11, name="Renamed"))
            await controller.coordinator.wait_until_idle()

        asyncio.run(scenario())
        assert [c[3] for c in api.calls if c[0] == "list_products"] == [1, 1]

    def test_stock_movement_refreshes_current_page(self, bus):
        controller, api, _ = _setup(bus)

        class Movement:
            product_id = 4

        async def scenario():
            controller.load()
            await controller.coordinator.wait_until_idle()
            controller.on_stock_movement(Movement())
            await controller.coordinator.wait_until_idle()

        asyncio.run(scenario())
        assert api.count("list_products") == 2


class TestLogout:

    def test_logout_clears_session_and_returns_login_route(self, bus):
        controller, _, store = _setup(bus)

        route = controller.logout()

        assert route == "/login"
        assert store.get("auth_token") is None
        assert store.get("username") is None
        assert controller.session.current_state is SessionState.UNAUTHENTICATED
        assert controller.username == ""
