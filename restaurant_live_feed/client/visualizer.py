"""
MODULE OVERVIEW:
The Rich terminal dashboard for the live feed.

WHAT IS HAPPENING HERE:
The dashboard never reads the socket or the simulator directly. It listens on the event
bus (connection lifecycle, inbound topics, FEED_UPDATED) and redraws from what it was
told. In local mode the data comes from a LiveFeedController; in remote mode from the
live-feed-data frames the hub pushes through the transport.
"""

import asyncio
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional

from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from client.feed_controller import LiveFeedController
from client.transport import ReconnectingTransport
from shared.events import EventBus, Topic
from shared.models import Alert, KitchenOrder, Metrics
from shared.wire import WIRE_EVENTS, LiveFeedData

STATUS_COLORS = {"pending": "yellow", "cooking": "red", "plating": "magenta", "ready": "green"}
SEVERITY_COLORS = {"critical": "red", "warning": "yellow", "info": "blue"}

LIFECYCLE_STATUS = {
    Topic.CONNECTION_ESTABLISHED: "CONNECTED",
    Topic.CONNECTION_LOST: "DISCONNECTED",
    Topic.CONNECTION_ERROR: "CONNECT ERROR",
    Topic.MAX_RECONNECT_ATTEMPTS_REACHED: "GAVE UP",
}


class Visualizer:
    def __init__(
        self,
        controller: Optional[LiveFeedController] = None,
        transport: Optional[ReconnectingTransport] = None,
        title: str = "Live Operations",
    ):
        self.controller = controller
        self.transport = transport
        self.title = title
        self.status = "INITIALIZING"
        self.recent_events = deque(maxlen=10)
        self.timeline = deque(maxlen=5)
        # Latest live-feed-data payload per feed type (remote mode)
        self.remote_feed: Dict[str, Any] = {}

    # ==========================
    # BUS HOOKS
    # ==========================
    def attach(self, bus: EventBus) -> None:
        for topic, status in LIFECYCLE_STATUS.items():
            bus.subscribe(topic, lambda payload, s=status: self.on_status_change(s, payload))
        for topic, _model in WIRE_EVENTS.values():
            bus.subscribe(topic, lambda payload, t=topic: self.on_event(t, payload))
        bus.subscribe(Topic.FEED_UPDATED, lambda _snapshot: self.on_status_change("TICK"))

    def on_status_change(self, status: str, detail: Any = None):
        self.status = status
        ts = datetime.now().strftime("%H:%M:%S")
        suffix = f" ({detail})" if detail else ""
        self.timeline.appendleft(f"[{ts}] {status}{suffix}")

    def on_event(self, topic: Topic, payload: Any):
        ts = datetime.now().strftime("%H:%M:%S")
        if isinstance(payload, LiveFeedData):
            self.remote_feed[payload.feed_type] = payload.data
        payload_str = str(payload)
        if len(payload_str) > 40:
            payload_str = payload_str[:40] + "..."
        self.recent_events.appendleft((ts, topic.value, payload_str))

    # ==========================
    # DATA SOURCES
    # ==========================
    def _orders(self) -> List[KitchenOrder]:
        if self.controller is not None:
            return self.controller.kitchen_orders
        return [KitchenOrder.model_validate(o) for o in self.remote_feed.get("kitchen", [])]

    def _alerts(self) -> List[Alert]:
        if self.controller is not None:
            return self.controller.alerts
        return [Alert.model_validate(a) for a in self.remote_feed.get("alerts", [])]

    def _metrics(self) -> Optional[Metrics]:
        if self.controller is not None:
            return self.controller.metrics
        raw = self.remote_feed.get("metrics")
        return Metrics.model_validate(raw) if raw else None

    # ==========================
    # RENDERING
    # ==========================
    def generate_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["left"].split_column(
            Layout(name="kitchen"),
            Layout(name="events")
        )
        layout["right"].split_column(
            Layout(name="metrics"),
            Layout(name="alerts"),
            Layout(name="timeline")
        )

        color = "green" if self.status in ("CONNECTED", "ACTIVE", "TICK") else "yellow" if "INIT" in self.status else "red"
        last = self.controller.last_update.strftime("%H:%M:%S") if self.controller and self.controller.last_update else "-"
        layout["header"].update(Panel(
            f"[{color} bold]{self.title} | Status: {self.status} | Last update: {last}[/]", style=color
        ))

        kitchen = Table(title="Kitchen", expand=True)
        kitchen.add_column("Order", style="cyan", no_wrap=True)
        kitchen.add_column("Table")
        kitchen.add_column("Status")
        kitchen.add_column("Elapsed")
        kitchen.add_column("Chef", style="blue")
        for order in self._orders():
            status_color = STATUS_COLORS.get(order.status, "white")
            kitchen.add_row(
                order.id,
                order.table,
                f"[{status_color}]{order.status}[/]",
                f"{order.elapsed}/{order.estimated_time}m",
                order.chef or "-",
            )
        layout["kitchen"].update(Panel(kitchen, title="Orders"))

        events = Table(title="Inbound Topics", expand=True)
        events.add_column("Time", style="cyan", no_wrap=True)
        events.add_column("Topic", style="magenta")
        events.add_column("Payload", style="green")
        for e in self.recent_events:
            events.add_row(e[0], e[1], e[2])
        layout["events"].update(Panel(events, title="Feed"))

        metrics = self._metrics()
        if metrics is not None:
            metrics_text = (
                f"Revenue: ${metrics.current_revenue:,.2f}\n"
                f"Orders today: {metrics.orders_today}\n"
                f"Avg wait: {metrics.avg_wait_time}m\n"
                f"Occupancy: {metrics.table_occupancy}%\n"
                f"Kitchen: {metrics.kitchen_efficiency}%\n"
                f"Satisfaction: {metrics.customer_satisfaction:.1f}/5\n"
                f"Staff: {metrics.staff_performance}%"
            )
        else:
            metrics_text = "Waiting for data..."
        layout["metrics"].update(Panel(metrics_text, title="Metrics"))

        alert_lines = []
        for alert in self._alerts():
            if alert.acknowledged:
                continue
            c = SEVERITY_COLORS.get(alert.severity, "white")
            alert_lines.append(f"[{c}]{alert.severity.upper()}[/] {alert.title}")
        layout["alerts"].update(Panel("\n".join(alert_lines) or "No open alerts", title="Alerts"))

        layout["timeline"].update(Panel("\n".join(self.timeline), title="Timeline"))
        return layout

    async def run(self, duration_s: float):
        if self.controller is not None:
            self.attach(self.controller.bus)
            self.controller.start_live_feed()
            self.on_status_change("ACTIVE")
        elif self.transport is not None:
            self.attach(self.transport.bus)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration_s
        try:
            with Live(self.generate_layout(), refresh_per_second=4) as live:
                while loop.time() < deadline:
                    live.update(self.generate_layout())
                    await asyncio.sleep(0.25)
        finally:
            if self.controller is not None:
                self.controller.close()
            if self.transport is not None:
                self.transport.disconnect()
