"""
MODULE OVERVIEW:
The wire contract between the transport and the hub.

WHAT IS HAPPENING HERE:
Every message on the socket is one JSON object: {"event": "<wire-name>", "data": {...}}.
Wire names are hyphenated ("table-status-changed"); the transport republishes each one on
the event bus under an underscored topic ("table_status_changed") with its payload parsed
into the model registered for it below, so listeners get a typed object per topic.
"""
import json
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from shared.events import Topic

# Disconnect reasons, named the way socket.io reports them
SERVER_DISCONNECT = "io server disconnect"
CLIENT_DISCONNECT = "io client disconnect"
TRANSPORT_CLOSE = "transport close"


class FrameError(ValueError):
    pass


def encode_frame(event: str, data: Any = None) -> str:
    return json.dumps({"event": event, "data": data if data is not None else {}}, default=str)


def decode_frame(raw: str | bytes) -> Tuple[str, Any]:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FrameError(f"invalid json: {e}") from e
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        raise FrameError("frame must be an object with a string 'event'")
    return frame["event"], frame.get("data")


class WirePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class ServerHello(WirePayload):
    message: str
    user_id: Optional[str] = None
    timestamp: datetime


class RestaurantAck(WirePayload):
    restaurant_id: str
    timestamp: datetime


class ReservationUpdated(WirePayload):
    reservation_id: str
    status: Optional[str] = None
    table_id: Optional[str] = None
    timestamp: datetime
    updated_by: Optional[str] = None


class TableStatusChanged(WirePayload):
    table_id: str
    status: str
    timestamp: datetime
    updated_by: Optional[str] = None


class OrderStatusChanged(WirePayload):
    order_id: str
    status: str
    table_id: Optional[str] = None
    timestamp: datetime
    updated_by: Optional[str] = None


class KitchenDisplayUpdated(WirePayload):
    # Carries the order record itself as extra fields
    id: Optional[str] = None
    timestamp: datetime


class InventoryAlert(WirePayload):
    item_id: str
    alert_type: str  # low-stock, out-of-stock, expired
    message: str
    timestamp: datetime


class LiveFeedSubscription(WirePayload):
    restaurant_id: str
    feed_types: list[str] = []
    timestamp: datetime


class LiveFeedData(WirePayload):
    feed_type: str
    data: Any
    timestamp: datetime


class Notification(WirePayload):
    message: str
    timestamp: datetime


class ServerError(WirePayload):
    message: str
    restaurant_id: Optional[str] = None


class Pong(WirePayload):
    timestamp: datetime


WIRE_EVENTS: Dict[str, Tuple[Topic, Type[WirePayload]]] = {
    "connected": (Topic.CONNECTED, ServerHello),
    "joined-restaurant": (Topic.JOINED_RESTAURANT, RestaurantAck),
    "left-restaurant": (Topic.LEFT_RESTAURANT, RestaurantAck),
    "reservation-updated": (Topic.RESERVATION_UPDATED, ReservationUpdated),
    "table-status-changed": (Topic.TABLE_STATUS_CHANGED, TableStatusChanged),
    "order-status-changed": (Topic.ORDER_STATUS_CHANGED, OrderStatusChanged),
    "kitchen-display-updated": (Topic.KITCHEN_DISPLAY_UPDATED, KitchenDisplayUpdated),
    "inventory-alert": (Topic.INVENTORY_ALERT, InventoryAlert),
    "live-feed-subscribed": (Topic.LIVE_FEED_SUBSCRIBED, LiveFeedSubscription),
    "live-feed-unsubscribed": (Topic.LIVE_FEED_UNSUBSCRIBED, LiveFeedSubscription),
    "live-feed-data": (Topic.LIVE_FEED_DATA, LiveFeedData),
    "notification": (Topic.NOTIFICATION, Notification),
    "error": (Topic.ERROR, ServerError),
    "pong": (Topic.PONG, Pong),
}


def parse_payload(event: str, data: Any) -> Tuple[Topic, WirePayload]:
    """
    Resolves a wire event to its topic and validated payload.
    Raises KeyError for unknown events and pydantic.ValidationError for bad payloads.
    """
    topic, model = WIRE_EVENTS[event]
    return topic, model.model_validate(data if data is not None else {})
