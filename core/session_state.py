"""
Session state manager: owns the locally persisted session and broadcasts
whether it is currently usable.

The check is advisory. It decides navigation on the client only; the
inventory service authorizes every request itself.
"""

import time
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config import SESSION_CONFIG
from events import event_bus as default_event_bus, EventBus, EventTypes, StateChannel
from storage import KeyValueStore
from .logging_config import get_logger
from .token import is_token_expired

logger = get_logger(__name__)


class SessionState(Enum):
    """Broadcast session states"""
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SessionTransition:
    """Represents a session state transition"""
    def __init__(self, from_state: SessionState, to_state: SessionState, reason: str = ""):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        self.timestamp = time.time()
        self.datetime = datetime.now()

    def __str__(self):
        return f"{self.from_state.value} → {self.to_state.value} ({self.reason})"


class SessionStateManager:
    """Single source of truth for "is there a usable session" """

    def __init__(self,
                 store: KeyValueStore,
                 login_request: Callable[[Any], Awaitable[Any]],
                 clock: Callable[[], float] = time.time,
                 bus: Optional[EventBus] = None,
                 token_key: str = SESSION_CONFIG["token_key"],
                 username_key: str = SESSION_CONFIG["username_key"]):
        """
        Args:
            store: Durable key-value store holding the token and username
            login_request: Coroutine function taking credentials and returning
                an object with `token` and `username`; raises on failure
            clock: Current time in seconds since the epoch
            bus: Event bus for session events (defaults to the global bus)
            token_key: Store key for the token
            username_key: Store key for the username
        """
        self.store = store
        self.login_request = login_request
        self.clock = clock
        self.bus = bus or default_event_bus
        self.token_key = token_key
        self.username_key = username_key

        self.state = StateChannel(SessionState.UNAUTHENTICATED, name="session")
        self._initialized = False

        self.transitions: List[SessionTransition] = []
        self.max_history = 100

    def initialize(self) -> SessionState:
        """Read the persisted session and publish the initial state"""
        initial = SessionState.AUTHENTICATED if self.is_authenticated() else SessionState.UNAUTHENTICATED
        self._transition_to(initial, "initialized from store")
        self._initialized = True

        self.bus.emit(EventTypes.SESSION_INITIALIZED, {
            "state": initial.value,
            "has_token": self.get_token() is not None,
        }, source="session_state")

        return initial

    async def login(self, credentials) -> Any:
        """
        Authenticate against the service and persist the session.

        Returns:
            The login result from the service

        Raises:
            Whatever `login_request` raises; state is left unchanged
        """
        try:
            result = await self.login_request(credentials)
        except Exception as e:
            logger.warning(f"Login failed for {getattr(credentials, 'username', '?')}: {e}")
            self.bus.emit(EventTypes.SESSION_LOGIN_FAILED, {
                "username": getattr(credentials, "username", None),
                "error": str(e),
            }, source="session_state")
            raise

        # Token and username always travel together
        self.store.set_many({
            self.token_key: result.token,
            self.username_key: result.username,
        })

        logger.info(f"Logged in as {result.username}")
        self.bus.emit(EventTypes.SESSION_LOGIN, {"username": result.username}, source="session_state")
        self._transition_to(SessionState.AUTHENTICATED, "login")

        return result

    def logout(self):
        """Clear the persisted session and publish UNAUTHENTICATED"""
        username = self.get_username()
        self.store.remove_many([self.token_key, self.username_key])

        logger.info(f"Logged out {username or ''}".strip())
        self.bus.emit(EventTypes.SESSION_LOGOUT, {"username": username}, source="session_state")
        self._transition_to(SessionState.UNAUTHENTICATED, "logout")

    def is_authenticated(self) -> bool:
        """
        Whether the persisted token exists and its `exp` claim is in the future.

        The signature is not verified. Malformed tokens count as not
        authenticated and never raise.
        """
        token = self.get_token()
        if not token:
            return False
        return not is_token_expired(token, self.clock())

    def expire_if_stale(self) -> bool:
        """
        Destroy a persisted session whose token is no longer valid.

        Returns:
            True if a stale session was removed
        """
        if self.get_token() is None or self.is_authenticated():
            return False

        username = self.get_username()
        self.store.remove_many([self.token_key, self.username_key])

        logger.info("Discarded expired session")
        self.bus.emit(EventTypes.SESSION_EXPIRED, {"username": username}, source="session_state")
        self._transition_to(SessionState.UNAUTHENTICATED, "token expired")
        return True

    def get_token(self) -> Optional[str]:
        return self.store.get(self.token_key)

    def get_username(self) -> Optional[str]:
        return self.store.get(self.username_key)

    def subscribe(self, listener: Callable[[SessionState], None]) -> Callable[[], None]:
        """Receive the current state now and every later transition"""
        return self.state.subscribe(listener)

    @property
    def current_state(self) -> SessionState:
        return self.state.value

    def _transition_to(self, new_state: SessionState, reason: str):
        old_state = self.state.value
        if old_state == new_state:
            return

        transition = SessionTransition(old_state, new_state, reason)
        self.transitions.append(transition)
        if len(self.transitions) > self.max_history:
            self.transitions = self.transitions[-self.max_history:]

        logger.debug(f"Session transition: {transition}")
        self.bus.emit(EventTypes.SESSION_TRANSITION, {
            "from_state": old_state.value,
            "to_state": new_state.value,
            "reason": reason,
        }, source="session_state")

        self.state.publish(new_state)

    def get_transition_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        recent = self.transitions[-limit:]
        return [
            {
                "from": t.from_state.value,
                "to": t.to_state.value,
                "reason": t.reason,
                "timestamp": t.timestamp,
                "datetime": t.datetime.isoformat()
            }
            for t in recent
        ]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "state": self.state.value.value,
            "username": self.get_username(),
            "has_token": self.get_token() is not None,
            "transition_count": len(self.transitions),
            "subscribers": self.state.subscriber_count,
        }
