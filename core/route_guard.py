"""
Navigation guard for protected views
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from config import ROUTES_CONFIG
from events import event_bus as default_event_bus, EventBus, EventTypes
from .logging_config import get_logger
from .session_state import SessionStateManager

logger = get_logger(__name__)


@dataclass(frozen=True)
class NavigationDecision:
    allowed: bool
    target: str
    requested: str


def _route_pattern(route: str) -> "re.Pattern[str]":
    """Compile '/productos/edit/:id' style routes into a full-match regex"""
    parts = []
    for segment in route.strip("/").split("/"):
        parts.append("[^/]+" if segment.startswith(":") else re.escape(segment))
    return re.compile("^/" + "/".join(parts) + "/?$")


class RouteGuard:
    """Consults the session synchronously before protected navigation"""

    def __init__(self,
                 session: SessionStateManager,
                 protected_routes: Optional[List[str]] = None,
                 login_route: str = ROUTES_CONFIG["login"],
                 bus: Optional[EventBus] = None):
        self.session = session
        self.login_route = login_route
        self.bus = bus or default_event_bus
        self._patterns = [_route_pattern(r) for r in (protected_routes or ROUTES_CONFIG["protected"])]

    def is_protected(self, path: str) -> bool:
        path = path.split("?", 1)[0]
        return any(p.match(path) for p in self._patterns)

    def can_activate(self, path: str) -> bool:
        if not self.is_protected(path):
            return True
        return self.session.is_authenticated()

    def check(self, path: str) -> NavigationDecision:
        """
        Decide where navigation to `path` should land.

        A blocked request clears any stale session and lands on the login route.
        """
        if self.can_activate(path):
            return NavigationDecision(allowed=True, target=path, requested=path)

        self.session.expire_if_stale()
        logger.info(f"Navigation to {path} blocked, redirecting to {self.login_route}")
        self.bus.emit(EventTypes.NAVIGATION_BLOCKED, {
            "requested": path,
            "redirect": self.login_route,
        }, source="route_guard")

        return NavigationDecision(allowed=False, target=self.login_route, requested=path)
