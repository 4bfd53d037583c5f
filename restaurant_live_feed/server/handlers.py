"""
MODULE OVERVIEW:
Command handlers for frames a client sends to the hub.

WHAT IS HAPPENING HERE:
Each inbound wire event maps to one coroutine. A handler validates its payload with a
small Pydantic model, updates rooms or the restaurant's simulator, and answers with an
ack to the sender or a broadcast to a room. Payload validation errors bubble up to the
websocket route, which turns them into an `error` frame; the socket stays open.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from server.connection_manager import ConnectionManager, feed_room, restaurant_room
from shared.models import LiveFeedSnapshot


@dataclass
class Session:
    client_id: str
    user_id: Optional[str] = None
    restaurant_id: Optional[str] = None


class Command(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RestaurantCommand(Command):
    restaurant_id: Optional[str] = None


class FeedSubscription(RestaurantCommand):
    feed_types: list[str] = []


class TableCommand(RestaurantCommand):
    table_id: str


class TableStatusUpdate(TableCommand):
    status: str
    notes: str = ""


class ReservationUpdate(RestaurantCommand):
    reservation_id: str
    status: Optional[str] = None
    table_id: Optional[str] = None


class OrderStatusUpdate(RestaurantCommand):
    order_id: str
    status: str
    table_id: Optional[str] = None


class KitchenDisplayUpdate(RestaurantCommand):
    order_data: Dict[str, Any]


class InventoryAlertCommand(RestaurantCommand):
    item_id: str
    alert_type: str
    message: str


class AcknowledgeAlert(RestaurantCommand):
    alert_id: int


class CommandError(Exception):
    pass


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _restaurant(session: Session, command: RestaurantCommand) -> str:
    restaurant_id = command.restaurant_id or session.restaurant_id
    if not restaurant_id:
        raise CommandError("restaurantId is required")
    return restaurant_id


def feed_payload(snapshot: LiveFeedSnapshot, feed_type: str) -> Any:
    if feed_type == "kitchen":
        return [o.to_wire() for o in snapshot.kitchen_orders]
    if feed_type == "service":
        return [u.to_wire() for u in snapshot.service_updates]
    if feed_type == "financial":
        return [f.to_wire() for f in snapshot.financial_stream]
    if feed_type == "alerts":
        return [a.to_wire() for a in snapshot.alerts]
    if feed_type == "metrics":
        return snapshot.metrics.to_wire()
    raise CommandError(f"Unknown feed type: {feed_type}")


async def handle_join_restaurant(manager: ConnectionManager, session: Session, data: dict):
    restaurant_id = _restaurant(session, RestaurantCommand.model_validate(data))
    manager.join(session.client_id, restaurant_room(restaurant_id))
    session.restaurant_id = restaurant_id
    await manager.send(session.client_id, "joined-restaurant", {"restaurantId": restaurant_id, "timestamp": now_iso()})


async def handle_leave_restaurant(manager: ConnectionManager, session: Session, data: dict):
    restaurant_id = _restaurant(session, RestaurantCommand.model_validate(data))
    manager.leave(session.client_id, restaurant_room(restaurant_id))
    await manager.send(session.client_id, "left-restaurant", {"restaurantId": restaurant_id, "timestamp": now_iso()})


async def handle_subscribe_live_feed(manager: ConnectionManager, session: Session, data: dict):
    command = FeedSubscription.model_validate(data)
    restaurant_id = _restaurant(session, command)
    snapshot = manager.feed_for(restaurant_id).snapshot()
    # Validate every feed type before joining any room
    initial = {feed_type: feed_payload(snapshot, feed_type) for feed_type in command.feed_types}

    for feed_type in command.feed_types:
        manager.join(session.client_id, feed_room(restaurant_id, feed_type))
    await manager.send(session.client_id, "live-feed-subscribed", {
        "restaurantId": restaurant_id,
        "feedTypes": command.feed_types,
        "timestamp": now_iso(),
    })
    # Current state right away so the client does not wait a full tick
    for feed_type, payload in initial.items():
        await manager.send(session.client_id, "live-feed-data", {
            "feedType": feed_type,
            "data": payload,
            "timestamp": now_iso(),
        })
    logger.debug(f"client_id={session.client_id} event=feed_subscribe feeds={','.join(command.feed_types)}")


async def handle_unsubscribe_live_feed(manager: ConnectionManager, session: Session, data: dict):
    command = FeedSubscription.model_validate(data)
    restaurant_id = _restaurant(session, command)
    for feed_type in command.feed_types:
        manager.leave(session.client_id, feed_room(restaurant_id, feed_type))
    await manager.send(session.client_id, "live-feed-unsubscribed", {
        "restaurantId": restaurant_id,
        "feedTypes": command.feed_types,
        "timestamp": now_iso(),
    })


async def handle_ping(manager: ConnectionManager, session: Session, data: dict):
    await manager.send(session.client_id, "pong", {"timestamp": now_iso()})


async def handle_subscribe_table(manager: ConnectionManager, session: Session, data: dict):
    command = TableCommand.model_validate(data)
    manager.join(session.client_id, f"table:{_restaurant(session, command)}:{command.table_id}")


async def handle_unsubscribe_table(manager: ConnectionManager, session: Session, data: dict):
    command = TableCommand.model_validate(data)
    manager.leave(session.client_id, f"table:{_restaurant(session, command)}:{command.table_id}")


async def handle_table_status_update(manager: ConnectionManager, session: Session, data: dict):
    command = TableStatusUpdate.model_validate(data)
    await manager.broadcast(restaurant_room(_restaurant(session, command)), "table-status-changed", {
        "tableId": command.table_id,
        "status": command.status,
        "timestamp": now_iso(),
        "updatedBy": session.user_id,
    })


async def handle_reservation_update(manager: ConnectionManager, session: Session, data: dict):
    command = ReservationUpdate.model_validate(data)
    restaurant_id = _restaurant(session, command)
    await manager.broadcast(restaurant_room(restaurant_id), "reservation-updated", {
        "reservationId": command.reservation_id,
        "status": command.status,
        "tableId": command.table_id,
        "timestamp": now_iso(),
        "updatedBy": session.user_id,
    })
    logger.info(f"restaurant_id={restaurant_id} event=reservation_updated reservation_id={command.reservation_id}")


async def handle_order_status_update(manager: ConnectionManager, session: Session, data: dict):
    command = OrderStatusUpdate.model_validate(data)
    restaurant_id = _restaurant(session, command)
    await manager.broadcast(restaurant_room(restaurant_id), "order-status-changed", {
        "orderId": command.order_id,
        "status": command.status,
        "tableId": command.table_id,
        "timestamp": now_iso(),
        "updatedBy": session.user_id,
    })
    logger.info(f"restaurant_id={restaurant_id} event=order_status order_id={command.order_id} status={command.status}")


async def handle_kitchen_display_update(manager: ConnectionManager, session: Session, data: dict):
    command = KitchenDisplayUpdate.model_validate(data)
    await manager.broadcast(restaurant_room(_restaurant(session, command)), "kitchen-display-updated", {
        **command.order_data,
        "timestamp": now_iso(),
    })


async def handle_inventory_alert(manager: ConnectionManager, session: Session, data: dict):
    command = InventoryAlertCommand.model_validate(data)
    restaurant_id = _restaurant(session, command)
    await manager.broadcast(restaurant_room(restaurant_id), "inventory-alert", {
        "itemId": command.item_id,
        "alertType": command.alert_type,
        "message": command.message,
        "timestamp": now_iso(),
    })
    logger.warning(f"restaurant_id={restaurant_id} event=inventory_alert item_id={command.item_id} type={command.alert_type}")


async def handle_acknowledge_alert(manager: ConnectionManager, session: Session, data: dict):
    command = AcknowledgeAlert.model_validate(data)
    found = manager.feed_for(_restaurant(session, command)).acknowledge_alert(command.alert_id)
    await manager.send(session.client_id, "notification", {
        "message": f"Alert {command.alert_id} acknowledged" if found else f"Alert {command.alert_id} not found",
        "alertId": command.alert_id,
        "acknowledged": found,
        "timestamp": now_iso(),
    })


Handler = Callable[[ConnectionManager, Session, dict], Awaitable[None]]

HANDLERS: Dict[str, Handler] = {
    "join-restaurant": handle_join_restaurant,
    "leave-restaurant": handle_leave_restaurant,
    "subscribe-live-feed": handle_subscribe_live_feed,
    "unsubscribe-live-feed": handle_unsubscribe_live_feed,
    "ping": handle_ping,
    "subscribe-table": handle_subscribe_table,
    "unsubscribe-table": handle_unsubscribe_table,
    "table-status-update": handle_table_status_update,
    "reservation-update": handle_reservation_update,
    "order-status-update": handle_order_status_update,
    "kitchen-display-update": handle_kitchen_display_update,
    "inventory-alert": handle_inventory_alert,
    "acknowledge_alert": handle_acknowledge_alert,
}
