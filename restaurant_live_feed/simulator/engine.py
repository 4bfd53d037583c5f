import random
from datetime import datetime
from typing import Callable, List, Optional

from loguru import logger

from shared.models import (
    ActivityEntry,
    Alert,
    FinancialEvent,
    KitchenOrder,
    LiveFeedSnapshot,
    Metrics,
    ServiceUpdate,
)
from .config import CONFIG
from . import demo_data, stages

ACTIVITY_KINDS = ("all", "service", "financial", "milestone", "alert")


class LiveOpsSimulator:
    """
    In-memory state of a restaurant's live operations, advanced one tick at a time.

    A tick runs five procedures in a fixed order: kitchen orders, service updates,
    financial stream, alerts, metrics drift. All randomness comes from `rng`, so a seeded
    `random.Random` makes every tick reproducible. Accessors hand out copies; the only
    way to change state from outside is `tick()` and the alert commands.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        kitchen_orders: Optional[List[KitchenOrder]] = None,
        service_updates: Optional[List[ServiceUpdate]] = None,
        financial_stream: Optional[List[FinancialEvent]] = None,
        alerts: Optional[List[Alert]] = None,
        metrics: Optional[Metrics] = None,
    ):
        self.rng = rng or random.Random()
        self.clock = clock
        self._kitchen_orders = list(kitchen_orders) if kitchen_orders is not None else demo_data.kitchen_orders()
        self._service_updates = list(service_updates) if service_updates is not None else demo_data.service_updates()
        self._financial_stream = list(financial_stream) if financial_stream is not None else demo_data.financial_stream()
        self._alerts = list(alerts) if alerts is not None else demo_data.alerts()
        self._metrics = metrics if metrics is not None else demo_data.metrics()

        self.is_running = False
        self.last_update: Optional[datetime] = None
        self.ticks = 0
        self._last_id = 0

    # ==========================
    # READ SURFACE
    # ==========================
    @property
    def kitchen_orders(self) -> List[KitchenOrder]:
        return [o.model_copy(deep=True) for o in self._kitchen_orders]

    @property
    def service_updates(self) -> List[ServiceUpdate]:
        return [u.model_copy(deep=True) for u in self._service_updates]

    @property
    def financial_stream(self) -> List[FinancialEvent]:
        return [f.model_copy(deep=True) for f in self._financial_stream]

    @property
    def alerts(self) -> List[Alert]:
        return [a.model_copy(deep=True) for a in self._alerts]

    @property
    def metrics(self) -> Metrics:
        return self._metrics.model_copy(deep=True)

    @property
    def unacknowledged_alerts(self) -> int:
        return sum(1 for a in self._alerts if not a.acknowledged)

    @property
    def critical_alerts(self) -> int:
        return sum(1 for a in self._alerts if a.severity == "critical" and not a.acknowledged)

    @property
    def active_orders(self) -> int:
        return sum(1 for o in self._kitchen_orders if o.status in ("cooking", "plating"))

    @property
    def pending_orders(self) -> int:
        return sum(1 for o in self._kitchen_orders if o.status == "pending")

    @property
    def delayed_orders(self) -> List[KitchenOrder]:
        return [o.model_copy(deep=True) for o in self._kitchen_orders if stages.is_delayed(o)]

    def activity_timeline(self, kind: str = "all") -> List[ActivityEntry]:
        if kind not in ACTIVITY_KINDS:
            raise ValueError(f"Unknown activity kind: {kind}")
        return stages.activity_entries(
            self._service_updates,
            self._financial_stream,
            self._alerts,
            kind=None if kind == "all" else kind,
        )

    def snapshot(self) -> LiveFeedSnapshot:
        return LiveFeedSnapshot(
            kitchen_orders=self.kitchen_orders,
            service_updates=self.service_updates,
            financial_stream=self.financial_stream,
            alerts=self.alerts,
            metrics=self.metrics,
            is_active=self.is_running,
            last_update=self.last_update,
            unacknowledged_alerts=self.unacknowledged_alerts,
            critical_alerts=self.critical_alerts,
            active_orders=self.active_orders,
            pending_orders=self.pending_orders,
        )

    # ==========================
    # LIFECYCLE
    # ==========================
    def start(self) -> None:
        self.is_running = True
        self.last_update = self.clock()

    def stop(self) -> None:
        self.is_running = False

    def tick(self) -> bool:
        """Runs one update if started. Returns False (and changes nothing) when stopped."""
        if not self.is_running:
            return False
        self.update_kitchen_orders()
        self.update_service_updates()
        self.update_financial_stream()
        self.update_alerts()
        self.drift_metrics()
        self.ticks += 1
        self.last_update = self.clock()
        return True

    # ==========================
    # TICK PROCEDURES
    # ==========================
    def update_kitchen_orders(self) -> None:
        now = self.clock()
        updated = []
        for order in self._kitchen_orders:
            new_order = stages.advance_order(order, self.rng, now)
            if new_order.status != order.status:
                logger.debug(f"order_id={order.id} event=status from={order.status} to={new_order.status}")
            updated.append(new_order)
        self._kitchen_orders = updated

    def update_service_updates(self) -> Optional[ServiceUpdate]:
        if self.rng.random() >= CONFIG["probabilities"]["service_update"]:
            return None
        now = self.clock()
        update = stages.make_service_update(self.rng, now, self._next_id(now))
        self._service_updates = stages.push_rolling(
            self._service_updates, update, CONFIG["caps"]["service_updates"]
        )
        return update

    def update_financial_stream(self) -> Optional[FinancialEvent]:
        if self.rng.random() >= CONFIG["probabilities"]["sale"]:
            return None
        now = self.clock()
        sale = stages.make_sale(self.rng, now, self._next_id(now))
        self._financial_stream = stages.push_rolling(
            self._financial_stream, sale, CONFIG["caps"]["financial_stream"]
        )
        # The sale and its revenue land in the same tick
        self._metrics = self._metrics.model_copy(update={
            "current_revenue": round(self._metrics.current_revenue + sale.amount, 2),
            "orders_today": self._metrics.orders_today + 1,
        })
        return sale

    def update_alerts(self) -> Optional[Alert]:
        if self.rng.random() >= CONFIG["probabilities"]["alert"]:
            return None
        now = self.clock()
        alert = stages.make_alert(self.rng, now, self._next_id(now))
        self._alerts = stages.push_rolling(self._alerts, alert, CONFIG["caps"]["alerts"])
        logger.debug(f"alert_id={alert.id} event=raised severity={alert.severity} title='{alert.title}'")
        return alert

    def drift_metrics(self) -> None:
        self._metrics = stages.drift_metrics(self._metrics, self.rng)

    # ==========================
    # COMMANDS
    # ==========================
    def acknowledge_alert(self, alert_id: int) -> bool:
        """Marks the alert acknowledged. Unknown ids are ignored; returns whether one matched."""
        found = False
        for i, alert in enumerate(self._alerts):
            if alert.id == alert_id:
                found = True
                if not alert.acknowledged:
                    self._alerts[i] = alert.model_copy(update={"acknowledged": True})
        return found

    def clear_acknowledged_alerts(self) -> int:
        before = len(self._alerts)
        self._alerts = [a for a in self._alerts if not a.acknowledged]
        return before - len(self._alerts)

    def _next_id(self, now: datetime) -> int:
        # Millisecond timestamps, bumped so ids stay unique within a millisecond
        self._last_id = max(int(now.timestamp() * 1000), self._last_id + 1)
        return self._last_id
