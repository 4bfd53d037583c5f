"""
MODULE OVERVIEW:
The in-process event bus and the application-level topic names carried on it.

WHAT IS HAPPENING HERE:
The transport receives wire events from the hub and re-publishes them here under
underscored topic names. Dashboards and the feed controller subscribe by topic and
never see the socket. Publishing is synchronous: by the time `publish()` returns,
every listener has run. A listener that raises is logged and skipped; the publisher
and the remaining listeners are unaffected.
"""

from enum import Enum
from typing import Any, Callable, Dict

from loguru import logger

Listener = Callable[[Any], None]


class Topic(str, Enum):
    # Connection lifecycle (produced by the transport itself)
    CONNECTION_ESTABLISHED = "connection_established"
    CONNECTION_LOST = "connection_lost"
    CONNECTION_ERROR = "connection_error"
    MAX_RECONNECT_ATTEMPTS_REACHED = "max_reconnect_attempts_reached"

    # Re-published wire events
    CONNECTED = "connected"
    JOINED_RESTAURANT = "joined_restaurant"
    LEFT_RESTAURANT = "left_restaurant"
    RESERVATION_UPDATED = "reservation_updated"
    TABLE_STATUS_CHANGED = "table_status_changed"
    ORDER_STATUS_CHANGED = "order_status_changed"
    KITCHEN_DISPLAY_UPDATED = "kitchen_display_updated"
    INVENTORY_ALERT = "inventory_alert"
    LIVE_FEED_SUBSCRIBED = "live_feed_subscribed"
    LIVE_FEED_UNSUBSCRIBED = "live_feed_unsubscribed"
    LIVE_FEED_DATA = "live_feed_data"
    NOTIFICATION = "notification"
    ERROR = "error"
    PONG = "pong"

    # Local feed controller
    FEED_UPDATED = "feed_updated"


def _topic_key(event: str) -> str:
    return event.value if isinstance(event, Topic) else event


class EventBus:
    """
    A name -> listeners registry. A listener registered twice under one topic is kept
    once; removing one that is not registered does nothing.
    """

    def __init__(self):
        # dict keys double as an insertion-ordered set
        self._listeners: Dict[str, Dict[Listener, None]] = {}

    def subscribe(self, event: str, callback: Listener) -> Listener:
        self._listeners.setdefault(_topic_key(event), {})[callback] = None
        return callback

    def unsubscribe(self, event: str, callback: Listener) -> None:
        listeners = self._listeners.get(_topic_key(event))
        if listeners is not None:
            listeners.pop(callback, None)

    def publish(self, event: str, payload: Any = None) -> None:
        key = _topic_key(event)
        # Snapshot so listeners may (un)subscribe while being called
        for callback in list(self._listeners.get(key, ())):
            try:
                callback(payload)
            except Exception:
                logger.exception(f"topic={key} event=listener_error")

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(_topic_key(event), ()))

    def clear(self) -> None:
        self._listeners.clear()
