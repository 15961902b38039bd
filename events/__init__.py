"""
Event tracking and state broadcasting for the inventory client
"""

from .event_bus import event_bus, EventBus, EventTypes, SystemEvent
from .state_channel import StateChannel

__all__ = ['event_bus', 'EventBus', 'EventTypes', 'SystemEvent', 'StateChannel']
