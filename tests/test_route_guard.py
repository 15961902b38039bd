"""Tests for navigation gating."""

import pytest

from core.route_guard import RouteGuard
from core.session_state import SessionState, SessionStateManager
from events import EventTypes
from storage import InMemoryKeyValueStore
from tests.fakes import FakeClock, FakeLoginApi, make_token


def _guard(bus, exp_offset=None):
    clock = FakeClock()
    stored = {}
    if exp_offset is not None:
        stored = {"auth_token": make_token(clock.now + exp_offset), "username": "admin"}
    store = InMemoryKeyValueStore(stored)
    session = SessionStateManager(store=store, login_request=FakeLoginApi("t").login,
                                  clock=clock, bus=bus)
    session.initialize()
    return RouteGuard(session, bus=bus), store


class TestProtectedRoutes:

    @pytest.mark.parametrize("path", [
        "/productos",
        "/productos/",
        "/productos/new",
        "/productos/edit/42",
        "/stock-movements",
        "/stock-movements?productId=3",
    ])
    def test_protected(self, bus, path):
        guard, _ = _guard(bus)
        assert guard.is_protected(path)

    @pytest.mark.parametrize("path", ["/login", "/", "/productos/edit", "/productos/edit/1/extra"])
    def test_unprotected(self, bus, path):
        guard, _ = _guard(bus)
        assert not guard.is_protected(path)


class TestCheck:

    def test_blocks_without_session(self, bus):
        guard, _ = _guard(bus)

        decision = guard.check("/productos/edit/3")

        assert not decision.allowed
        assert decision.target == "/login"
        assert decision.requested == "/productos/edit/3"
        assert bus.event_counts[EventTypes.NAVIGATION_BLOCKED] == 1

    def test_allows_valid_session(self, bus):
        guard, _ = _guard(bus, exp_offset=600)

        decision = guard.check("/productos")

        assert decision.allowed
        assert decision.target == "/productos"

    def test_expired_session_is_cleared_on_block(self, bus):
        guard, store = _guard(bus, exp_offset=-1)

        decision = guard.check("/stock-movements")

        assert not decision.allowed
        assert store.keys() == set()
        assert guard.session.current_state is SessionState.UNAUTHENTICATED
        assert bus.event_counts[EventTypes.SESSION_EXPIRED] == 1

    def test_login_route_is_always_reachable(self, bus):
        guard, _ = _guard(bus)
        assert guard.check("/login").allowed

    def test_custom_protected_routes(self, bus):
        guard, _ = _guard(bus)
        guard = RouteGuard(guard.session, protected_routes=["/reports/:year"], login_route="/signin", bus=bus)

        assert guard.can_activate("/productos")
        assert guard.check("/reports/2024").target == "/signin"
