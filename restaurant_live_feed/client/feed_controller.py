"""
MODULE OVERVIEW:
The live feed controller: drives a LiveOpsSimulator on a fixed period and tells
consumers when the data moved.

WHAT IS HAPPENING HERE:
While active, a timer fires every `tick_interval_ms`; each firing runs one simulator
tick, records the wall-clock time as "last update", publishes a FEED_UPDATED snapshot on
the bus, and re-arms itself. Stopping (or closing the controller) cancels the pending
timer, so once `stop_live_feed()` returns nothing changes any more.

When a transport is attached, the controller also keeps the hub in step: it subscribes to
the restaurant's live feed on start (and again after every reconnect), unsubscribes on
stop, and forwards alert acknowledgements. Those calls are best-effort and silently
dropped while the transport is offline. FEED_UPDATED goes out on the controller's own
bus, so a manual `transport.disconnect()` does not drop its consumers; it does drop the
reconnect hook, which `reattach()` (or the next `start_live_feed()`) restores.
"""
from datetime import datetime
from typing import Any, Callable, List, Optional

from loguru import logger

from client.transport import ReconnectingTransport
from shared.config import settings
from shared.events import EventBus, Topic
from shared.models import ActivityEntry, Alert, FinancialEvent, KitchenOrder, LiveFeedSnapshot, Metrics, ServiceUpdate
from shared.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from simulator.engine import LiveOpsSimulator


class LiveFeedController:
    def __init__(
        self,
        simulator: Optional[LiveOpsSimulator] = None,
        scheduler: Optional[Scheduler] = None,
        bus: Optional[EventBus] = None,
        transport: Optional[ReconnectingTransport] = None,
        feed_types: Optional[List[str]] = None,
        tick_interval_ms: Optional[int] = None,
    ):
        self.simulator = simulator or LiveOpsSimulator()
        self.scheduler = scheduler or AsyncioScheduler()
        # Kept apart from the transport bus, which disconnect() clears
        self.bus = bus or EventBus()
        self.transport = transport
        self.feed_types = feed_types if feed_types is not None else list(settings.HUB_FEED_TYPES)
        self.tick_interval_ms = tick_interval_ms if tick_interval_ms is not None else settings.LIVE_FEED_TICK_MS

        self._timer: Optional[TimerHandle] = None
        self._closed = False
        self.reattach()

    # ==========================
    # READ SURFACE
    # ==========================
    @property
    def is_active(self) -> bool:
        return self.simulator.is_running

    @property
    def last_update(self) -> Optional[datetime]:
        return self.simulator.last_update

    @property
    def kitchen_orders(self) -> List[KitchenOrder]:
        return self.simulator.kitchen_orders

    @property
    def service_updates(self) -> List[ServiceUpdate]:
        return self.simulator.service_updates

    @property
    def financial_stream(self) -> List[FinancialEvent]:
        return self.simulator.financial_stream

    @property
    def alerts(self) -> List[Alert]:
        return self.simulator.alerts

    @property
    def metrics(self) -> Metrics:
        return self.simulator.metrics

    def activity_timeline(self, kind: str = "all") -> List[ActivityEntry]:
        return self.simulator.activity_timeline(kind)

    def snapshot(self) -> LiveFeedSnapshot:
        return self.simulator.snapshot()

    def subscribe(self, callback: Callable[[LiveFeedSnapshot], Any]):
        return self.bus.subscribe(Topic.FEED_UPDATED, callback)

    def unsubscribe(self, callback: Callable[[LiveFeedSnapshot], Any]) -> None:
        self.bus.unsubscribe(Topic.FEED_UPDATED, callback)

    # ==========================
    # COMMANDS
    # ==========================
    def start_live_feed(self) -> None:
        if self._closed:
            raise RuntimeError("LiveFeedController is closed")
        self.reattach()
        # Starting again only refreshes last_update
        self.simulator.start()
        if self._timer is None:
            self._schedule()
            logger.info(f"event=live_feed_started interval_ms={self.tick_interval_ms}")
            self._subscribe_remote()

    def stop_live_feed(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self.simulator.is_running:
            return
        self.simulator.stop()
        logger.info(f"event=live_feed_stopped ticks={self.simulator.ticks}")
        if self.transport is not None and self.transport.restaurant_id:
            self.transport.unsubscribe_from_live_feed(self.transport.restaurant_id, self.feed_types)

    def acknowledge_alert(self, alert_id: int) -> bool:
        found = self.simulator.acknowledge_alert(alert_id)
        if self.transport is not None:
            self.transport.acknowledge_alert(alert_id)
        return found

    def clear_acknowledged_alerts(self) -> int:
        return self.simulator.clear_acknowledged_alerts()

    def reattach(self) -> None:
        """
        Hooks the controller back onto its transport. `transport.disconnect()` clears every
        transport listener, so call this after reconnecting a transport that was disconnected
        by hand while the feed stays active. Starting the feed does it too.
        """
        if self.transport is not None and not self._closed:
            self.transport.on(Topic.CONNECTION_ESTABLISHED, self._on_transport_connected)

    def close(self) -> None:
        """Tears the controller down; the timer never outlives it."""
        self.stop_live_feed()
        if self.transport is not None:
            self.transport.off(Topic.CONNECTION_ESTABLISHED, self._on_transport_connected)
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ==========================
    # TIMER
    # ==========================
    def _schedule(self) -> None:
        self._timer = self.scheduler.call_later(self.tick_interval_ms / 1000.0, self._on_tick)

    def _on_tick(self) -> None:
        self._timer = None
        if not self.simulator.tick():
            return
        self.bus.publish(Topic.FEED_UPDATED, self.simulator.snapshot())
        self._schedule()

    def _subscribe_remote(self) -> None:
        if self.transport is not None and self.transport.restaurant_id:
            self.transport.subscribe_to_live_feed(self.transport.restaurant_id, self.feed_types)

    def _on_transport_connected(self, _payload) -> None:
        if self.is_active:
            self._subscribe_remote()
