"""
Central event bus for tracking and broadcasting client events.

Dispatch is synchronous: listeners run inside the scheduler turn that
emitted the event, so no listener ever observes a half-applied update.
"""

import time
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Dict, Any, List, Callable, Optional

from core.logging_config import get_logger

logger = get_logger(__name__)


class SystemEvent:
    """Represents a client event"""

    def __init__(self, event_type: str, data: Dict[str, Any], source: Optional[str] = None):
        self.id = str(uuid.uuid4())
        self.type = event_type
        self.data = data
        self.source = source or "system"
        self.timestamp = time.time()
        self.datetime = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "data": self.data,
            "source": self.source,
            "timestamp": self.timestamp,
            "datetime": self.datetime
        }


class EventBus:
    """In-process event bus with bounded history"""

    def __init__(self, max_history: int = 1000):
        self.listeners: Dict[str, List[Callable[[SystemEvent], None]]] = defaultdict(list)
        self.event_history: List[SystemEvent] = []
        self.max_history = max_history
        self.event_counts: Dict[str, int] = defaultdict(int)

    def emit(self, event_type: str, data: Dict[str, Any], source: Optional[str] = None) -> SystemEvent:
        """Emit an event and dispatch it to listeners immediately"""
        event = SystemEvent(event_type, data, source)

        self.event_counts[event.type] += 1
        self.event_history.append(event)
        if len(self.event_history) > self.max_history:
            self.event_history.pop(0)

        # Copy so listeners may unsubscribe while being notified
        for listener in list(self.listeners.get(event.type, [])) + list(self.listeners.get("*", [])):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error in event listener for {event.type}: {e}", exc_info=True)

        return event

    def on(self, event_type: str, callback: Callable[[SystemEvent], None]):
        """Register a listener for a specific event type"""
        self.listeners[event_type].append(callback)

    def on_all(self, callback: Callable[[SystemEvent], None]):
        """Register a listener for all events"""
        self.listeners["*"].append(callback)

    def off(self, event_type: str, callback: Callable[[SystemEvent], None]):
        """Remove a listener"""
        if callback in self.listeners[event_type]:
            self.listeners[event_type].remove(callback)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_events": sum(self.event_counts.values()),
            "event_counts": dict(self.event_counts),
            "history_size": len(self.event_history),
            "listener_counts": {
                event_type: len(listeners)
                for event_type, listeners in self.listeners.items()
            }
        }

    def get_recent_events(self, count: int = 50, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get recent events from history, newest last"""
        events = self.event_history
        if event_type:
            events = [e for e in events if e.type == event_type]

        return [e.to_dict() for e in events[-count:]]

    def clear(self):
        """Drop history and counters (listeners are kept)"""
        self.event_history.clear()
        self.event_counts.clear()


# Global event bus instance
event_bus = EventBus()


class EventTypes:
    # Session events
    SESSION_INITIALIZED = "session.initialized"
    SESSION_LOGIN = "session.login"
    SESSION_LOGIN_FAILED = "session.login_failed"
    SESSION_LOGOUT = "session.logout"
    SESSION_EXPIRED = "session.expired"
    SESSION_TRANSITION = "session.transition"

    # Query coordination events
    QUERY_CRITERIA_CHANGED = "query.criteria_changed"
    QUERY_FETCH_ISSUED = "query.fetch_issued"
    QUERY_FETCH_SUPPRESSED = "query.fetch_suppressed"
    QUERY_FETCH_ACCEPTED = "query.fetch_accepted"
    QUERY_FETCH_DISCARDED = "query.fetch_discarded"
    QUERY_FETCH_FAILED = "query.fetch_failed"

    # Product mutation events
    PRODUCT_CREATED = "product.created"
    PRODUCT_UPDATED = "product.updated"
    PRODUCT_DELETED = "product.deleted"
    PRODUCTS_SYNCED = "product.synced"
    STOCK_MOVEMENT_REGISTERED = "stock.movement_registered"
    STOCK_MOVEMENT_REJECTED = "stock.movement_rejected"

    # Navigation
    NAVIGATION_BLOCKED = "navigation.blocked"
