"""End-to-end wiring of InventoryApp with in-memory collaborators."""

import asyncio
import logging

from api import LoginCredentials
from core.exceptions import NetworkError
from core.session_state import SessionState
from events import EventBus, EventTypes
from main import InventoryApp
from storage import InMemoryKeyValueStore
from tests.fakes import FakeInventoryApi, make_product, make_token


def _app(stored=None, count=3):
    api = FakeInventoryApi([make_product(i) for i in range(1, count + 1)])
    app = InventoryApp(store=InMemoryKeyValueStore(stored), api=api, bus=EventBus())
    app.coordinator.debounce_seconds = 0.01
    return app, api


def _start(app, credentials=None):
    async def scenario():
        try:
            return await app.start(credentials)
        finally:
            app.stop()

    return asyncio.run(scenario())


class TestStart:

    def test_login_then_first_page(self):
        app, api = _app()

        assert _start(app, LoginCredentials("admin", "secret")) is True

        assert app.session.current_state is SessionState.AUTHENTICATED
        assert app.store.get("username") == "admin"
        assert [p.id for p in app.product_list.products] == [1, 2, 3]
        rendered = app.render_page()
        assert "User: admin" in rendered
        assert "Page 1/1 (3 products)" in rendered
        assert "Product 2" in rendered

    def test_persisted_session_skips_login(self):
        app, api = _app(stored={"auth_token": make_token(2_000_000_000), "username": "maria"})

        assert _start(app, LoginCredentials("admin", "secret")) is True
        assert api.count("login") == 0
        assert app.product_list.username == "maria"

    def test_without_credentials_stays_on_login(self):
        app, api = _app()

        assert _start(app) is False
        assert app.navigate("/productos") == "/login"
        assert api.count("list_products") == 0

    def test_failed_login(self):
        app, api = _app()
        api.fail_next["login"] = NetworkError("Credenciales inválidas", status=401)

        assert _start(app, LoginCredentials("admin", "wrong")) is False
        assert app.session.current_state is SessionState.UNAUTHENTICATED


class TestForms:

    def test_saved_product_refreshes_list(self):
        app, api = _app()

        async def scenario():
            await app.start(LoginCredentials("admin", "secret"))
            form = app.new_product_form()
            form.patch(name="Keyboard", category="Peripherals", supplier="Acme", price="49.90", stock="7")
            await form.submit()
            await app.coordinator.wait_until_idle()
            app.stop()

        asyncio.run(scenario())
        assert api.count("list_products") == 2
        assert "Keyboard" in [p.name for p in app.product_list.products]

    def test_stock_movement_refreshes_list(self):
        app, api = _app()

        async def scenario():
            await app.start(LoginCredentials("admin", "secret"))
            form = app.new_stock_movement_form(product_id=2)
            await form.load_product()
            form.set_value("type", "INBOUND")
            form.set_value("quantity", 4)
            await form.submit()
            await app.coordinator.wait_until_idle()
            app.stop()

        asyncio.run(scenario())
        assert app.product_list.products[1].stock == 14


class TestEventLogging:

    def test_events_are_logged_until_stop(self, caplog):
        caplog.set_level(logging.DEBUG, logger="main")
        app, _ = _app()
        assert app._log_event in app.bus.listeners["*"]

        assert _start(app, LoginCredentials("admin", "secret")) is True

        assert app._log_event not in app.bus.listeners["*"]
        assert app.bus.event_counts[EventTypes.SESSION_LOGIN] == 1
        logged = [r.getMessage() for r in caplog.records if r.name == "main"]
        assert any(m.startswith(f"Event {EventTypes.SESSION_LOGIN} from ") for m in logged)

    def test_component_events_stay_on_the_app_bus(self):
        app, _ = _app()
        _start(app, LoginCredentials("admin", "secret"))

        assert app.bus.event_counts[EventTypes.QUERY_FETCH_ACCEPTED] == 1
