"""
MODULE OVERVIEW:
The reconnecting transport: one logical connection to the real-time hub.

WHAT IS HAPPENING HERE:
The transport sits between a low-level channel and the event bus.
  - Channel callbacks (open / close / error / frame) drive a small state machine over
    disconnected -> connecting -> connected.
  - Lifecycle changes are published as connection_* topics; inbound frames are
    republished under their underscored topic with a typed payload.
  - A fixed-interval retry is scheduled when dialing fails or the socket closes for any
    reason other than our own `disconnect()`: a hub close with any code, or a dropped
    link. After `max_reconnect_attempts` consecutive retries the transport gives up and
    publishes max_reconnect_attempts_reached once.
  - Outbound commands are fire-and-forget: while disconnected they are dropped, never
    queued, and never raise.
Nothing here raises across the public surface; every failure becomes an event.
"""
from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger
from pydantic import ValidationError

from client.websocket_client import WebSocketChannel
from shared.client_utils import auth_headers
from shared.config import settings
from shared.events import EventBus, Topic
from shared.models import ConnectionSnapshot
from shared.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from shared.wire import CLIENT_DISCONNECT, parse_payload

ChannelFactory = Callable[..., Any]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class _ChannelListener:
    """Forwards one channel's callbacks, and drops them once that channel is replaced."""

    def __init__(self, transport: "ReconnectingTransport"):
        self.transport = transport
        self.channel = None

    def _current(self, what: str) -> bool:
        if self.channel is None or self.transport._channel is not self.channel:
            logger.debug(f"protocol=websocket event=stale_callback kind={what}")
            return False
        return True

    def on_open(self) -> None:
        if self._current("open"):
            self.transport._handle_open()

    def on_close(self, reason: str) -> None:
        if self._current("close"):
            self.transport._handle_close(reason)

    def on_error(self, error: Exception) -> None:
        if self._current("error"):
            self.transport._handle_error(error)

    def on_message(self, event: str, data: Any) -> None:
        if self._current("message"):
            self.transport._handle_message(event, data)


class ReconnectingTransport:
    def __init__(
        self,
        bus: Optional[EventBus] = None,
        url: Optional[str] = None,
        scheduler: Optional[Scheduler] = None,
        channel_factory: Optional[ChannelFactory] = None,
        max_reconnect_attempts: Optional[int] = None,
        reconnect_interval_ms: Optional[int] = None,
        open_timeout_ms: Optional[int] = None,
    ):
        self.bus = bus or EventBus()
        self.url = url or settings.SOCKET_URL
        self.scheduler = scheduler or AsyncioScheduler()
        self.channel_factory = channel_factory or WebSocketChannel
        self.max_reconnect_attempts = (
            max_reconnect_attempts if max_reconnect_attempts is not None else settings.MAX_RECONNECT_ATTEMPTS
        )
        self.reconnect_interval_ms = (
            reconnect_interval_ms if reconnect_interval_ms is not None else settings.RECONNECT_INTERVAL_MS
        )
        self.open_timeout_ms = open_timeout_ms if open_timeout_ms is not None else settings.SOCKET_TIMEOUT_MS

        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0
        self.restaurant_id: Optional[str] = None
        self.user_id: Optional[str] = None

        self._channel = None
        self._reconnect_timer: Optional[TimerHandle] = None
        self._gave_up = False

    # ==========================
    # EVENT BUS PASSTHROUGH
    # ==========================
    def on(self, event: str, callback: Callable[[Any], None]):
        return self.bus.subscribe(event, callback)

    def off(self, event: str, callback: Callable[[Any], None]) -> None:
        self.bus.unsubscribe(event, callback)

    # ==========================
    # CONNECTION MANAGEMENT
    # ==========================
    @property
    def is_connected(self) -> bool:
        return self._channel is not None and self.state == ConnectionState.CONNECTED

    def connection_state(self) -> ConnectionSnapshot:
        return ConnectionSnapshot(
            connected=self.is_connected,
            state=self.state.value,
            reconnect_attempts=self.reconnect_attempts,
            max_reconnect_attempts=self.max_reconnect_attempts,
        )

    def connect(self, restaurant_id: str, user_id: Optional[str] = None, token: Optional[str] = None):
        """
        Opens a fresh channel carrying restaurantId/userId as query context and the
        token as a bearer credential. Callers should check `is_connected` first; a
        channel that is already open is closed and replaced.
        """
        if self._channel is not None:
            logger.warning(f"restaurant_id={self.restaurant_id} event=replace_channel")
            old, self._channel = self._channel, None
            old.close()
        self._cancel_reconnect()

        self.restaurant_id = restaurant_id
        self.user_id = user_id
        self._gave_up = False

        listener = _ChannelListener(self)
        channel = self.channel_factory(
            self.url,
            listener,
            params={"restaurantId": restaurant_id, "userId": user_id},
            headers=auth_headers(token),
            open_timeout_s=self.open_timeout_ms / 1000.0,
        )
        listener.channel = channel
        self._channel = channel
        self.state = ConnectionState.CONNECTING
        logger.info(f"restaurant_id={restaurant_id} user_id={user_id} event=connecting url={self.url}")
        channel.open()
        return channel

    def disconnect(self) -> None:
        """
        Closes the channel, cancels any pending retry, and clears every bus listener.
        Listeners must subscribe again after a manual disconnect.
        """
        self._cancel_reconnect()
        if self._channel is not None:
            channel, self._channel = self._channel, None
            channel.close()
            logger.info(f"restaurant_id={self.restaurant_id} event=disconnect reason=manual")
        self.state = ConnectionState.DISCONNECTED
        self.bus.clear()

    def attempt_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            # A retry is already on its way
            return
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            if not self._gave_up:
                self._gave_up = True
                logger.error(
                    f"restaurant_id={self.restaurant_id} event=give_up attempts={self.reconnect_attempts}"
                )
                self.bus.publish(Topic.MAX_RECONNECT_ATTEMPTS_REACHED)
            return

        self.reconnect_attempts += 1
        logger.info(
            f"restaurant_id={self.restaurant_id} event=reconnect_scheduled "
            f"attempt={self.reconnect_attempts}/{self.max_reconnect_attempts} "
            f"delay_ms={self.reconnect_interval_ms}"
        )
        self._reconnect_timer = self.scheduler.call_later(
            self.reconnect_interval_ms / 1000.0, self._fire_reconnect
        )

    def _fire_reconnect(self) -> None:
        self._reconnect_timer = None
        if self._channel is None or self.is_connected:
            return
        self.state = ConnectionState.CONNECTING
        self._channel.open()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    # ==========================
    # CHANNEL CALLBACKS
    # ==========================
    def _handle_open(self) -> None:
        self.state = ConnectionState.CONNECTED
        self.reconnect_attempts = 0
        self._gave_up = False
        self._cancel_reconnect()
        logger.info(f"restaurant_id={self.restaurant_id} event=connected")
        self.bus.publish(Topic.CONNECTION_ESTABLISHED)

    def _handle_close(self, reason: str) -> None:
        self.state = ConnectionState.DISCONNECTED
        logger.info(f"restaurant_id={self.restaurant_id} event=disconnected reason='{reason}'")
        self.bus.publish(Topic.CONNECTION_LOST, reason)
        # Only a close we asked for stays closed
        if reason != CLIENT_DISCONNECT:
            self.attempt_reconnect()

    def _handle_error(self, error: Exception) -> None:
        self.state = ConnectionState.DISCONNECTED
        logger.error(f"restaurant_id={self.restaurant_id} event=connect_error reason='{error}'")
        self.bus.publish(Topic.CONNECTION_ERROR, error)
        self.attempt_reconnect()

    def _handle_message(self, event: str, data: Any) -> None:
        try:
            topic, payload = parse_payload(event, data)
        except KeyError:
            logger.debug(f"event=unknown_wire_event name={event}")
            return
        except ValidationError as e:
            logger.warning(f"event=invalid_payload name={event} errors={e.error_count()}")
            return
        self.bus.publish(topic, payload)

    # ==========================
    # OUTBOUND COMMANDS
    # ==========================
    def _emit(self, event: str, data: dict) -> bool:
        if not self.is_connected:
            logger.debug(f"event=command_dropped name={event} reason=not_connected")
            return False
        try:
            self._channel.send(event, data)
        except Exception:
            logger.exception(f"event=command_failed name={event}")
            return False
        return True

    def join_restaurant(self, restaurant_id: str) -> bool:
        return self._emit("join-restaurant", {"restaurantId": restaurant_id})

    def leave_restaurant(self, restaurant_id: str) -> bool:
        return self._emit("leave-restaurant", {"restaurantId": restaurant_id})

    def subscribe_to_live_feed(self, restaurant_id: str, feed_types: Optional[list[str]] = None) -> bool:
        return self._emit("subscribe-live-feed", {"restaurantId": restaurant_id, "feedTypes": feed_types or []})

    def unsubscribe_from_live_feed(self, restaurant_id: str, feed_types: Optional[list[str]] = None) -> bool:
        return self._emit("unsubscribe-live-feed", {"restaurantId": restaurant_id, "feedTypes": feed_types or []})

    def send_ping(self) -> bool:
        return self._emit("ping", {})

    def subscribe_to_table(self, table_id: str) -> bool:
        return self._emit("subscribe-table", {"tableId": table_id})

    def unsubscribe_from_table(self, table_id: str) -> bool:
        return self._emit("unsubscribe-table", {"tableId": table_id})

    def mark_table_status(self, table_id: str, status: str, notes: str = "") -> bool:
        return self._emit("table-status-update", {
            "tableId": table_id,
            "status": status,
            "notes": notes,
            "restaurantId": self.restaurant_id,
        })

    def notify_reservation_update(self, reservation_id: str, update: dict) -> bool:
        return self._emit("reservation-update", {
            **update,
            "reservationId": reservation_id,
            "restaurantId": self.restaurant_id,
        })

    def update_order_status(self, order_id: str, status: str, table_id: Optional[str] = None) -> bool:
        return self._emit("order-status-update", {
            "orderId": order_id,
            "status": status,
            "tableId": table_id,
            "restaurantId": self.restaurant_id,
        })

    def update_kitchen_display(self, order: dict) -> bool:
        return self._emit("kitchen-display-update", {"restaurantId": self.restaurant_id, "orderData": order})

    def raise_inventory_alert(self, item_id: str, alert_type: str, message: str) -> bool:
        return self._emit("inventory-alert", {
            "restaurantId": self.restaurant_id,
            "itemId": item_id,
            "alertType": alert_type,
            "message": message,
        })

    def acknowledge_alert(self, alert_id: Any) -> bool:
        return self._emit("acknowledge_alert", {"alertId": alert_id, "restaurantId": self.restaurant_id})
