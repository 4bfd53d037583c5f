# stages.py
# The pure procedures one simulation tick is made of. Each takes the current record(s)
# and a random source and returns new records; the engine owns the collections.
import random
from datetime import datetime
from typing import Iterable, List, Optional, TypeVar

from shared.models import (
    ActivityEntry,
    Alert,
    FinancialEvent,
    KitchenOrder,
    Metrics,
    ORDER_STATUS_SEQUENCE,
    ServiceUpdate,
)
from .config import CONFIG

T = TypeVar("T")


def format_clock(now: datetime) -> str:
    return now.strftime("%H:%M")


def clock_minutes(timestamp: str) -> int:
    hours, minutes = timestamp.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def clamp(value, low=None, high=None):
    if low is not None:
        value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def push_rolling(log: List[T], item: T, cap: int) -> List[T]:
    """Newest at the head; anything past `cap` falls off the tail."""
    return [item, *log][:cap]


def advance_order(order: KitchenOrder, rng: random.Random, now: datetime) -> KitchenOrder:
    """
    Stage 1: Kitchen. Moves one order at most one step along
    pending -> cooking -> plating -> ready. Thresholds are checked against the status
    the order had when the tick began, so no order skips a state.
    """
    if order.status == "ready":
        return order

    step = rng.randint(*CONFIG["elapsed_step"])

    if order.status == "pending":
        if rng.random() < CONFIG["probabilities"]["start_cooking"]:
            return order.model_copy(update={
                "status": "cooking",
                "cook_time": format_clock(now),
                "chef": order.chef or rng.choice(CONFIG["chefs"]),
            })
        # Still waiting; the ticket keeps ageing
        return order.model_copy(update={"elapsed": order.elapsed + step})

    elapsed = order.elapsed + step
    status = order.status
    if elapsed >= order.estimated_time * CONFIG["advance_thresholds"][status]:
        status = ORDER_STATUS_SEQUENCE[ORDER_STATUS_SEQUENCE.index(status) + 1]
    return order.model_copy(update={"elapsed": elapsed, "status": status})


def is_delayed(order: KitchenOrder) -> bool:
    return order.elapsed > order.estimated_time * CONFIG["delay_threshold"]


def make_service_update(rng: random.Random, now: datetime, entry_id: int) -> ServiceUpdate:
    """Stage 2: Floor service. One synthetic action at a random table."""
    action = rng.choice(CONFIG["service_actions"])
    return ServiceUpdate(
        id=entry_id,
        type=action["type"],
        details=action["details"],
        table=str(rng.randint(*CONFIG["table_range"])),
        timestamp=format_clock(now),
        server=rng.choice(CONFIG["servers"]),
        guests=rng.randint(*CONFIG["guest_range"]),
    )


def make_sale(rng: random.Random, now: datetime, entry_id: int) -> FinancialEvent:
    """Stage 3: Till. A settled check."""
    return FinancialEvent(
        id=entry_id,
        type="sale",
        amount=float(rng.randint(*CONFIG["sale_amount_range"])),
        table=str(rng.randint(*CONFIG["table_range"])),
        timestamp=format_clock(now),
        payment_method=rng.choice(CONFIG["payment_methods"]),
        server=rng.choice(CONFIG["servers"]),
    )


def make_alert(rng: random.Random, now: datetime, entry_id: int) -> Alert:
    """Stage 4: Alerts. Always unacknowledged when raised."""
    template = rng.choice(CONFIG["alert_catalog"])
    table = rng.randint(*CONFIG["table_range"])
    return Alert(
        id=entry_id,
        severity=template["type"],
        title=template["title"],
        message=template["message"].format(table=table),
        timestamp=format_clock(now),
        category=template["category"],
        acknowledged=False,
    )


def drift_metrics(metrics: Metrics, rng: random.Random) -> Metrics:
    """Stage 5: Nudge every bounded metric and clamp it back into range."""
    update = {}
    for name, drift in CONFIG["metric_drift"].items():
        value = getattr(metrics, name) + rng.randint(*drift["step"])
        update[name] = clamp(value, *drift["bounds"])

    spread = CONFIG["satisfaction_drift"]["step"]
    satisfaction = round(metrics.customer_satisfaction + rng.uniform(-spread, spread), 2)
    update["customer_satisfaction"] = clamp(satisfaction, *CONFIG["satisfaction_drift"]["bounds"])
    return metrics.model_copy(update=update)


def activity_entries(
    service_updates: Iterable[ServiceUpdate],
    financial_stream: Iterable[FinancialEvent],
    alerts: Iterable[Alert],
    kind: Optional[str] = None,
) -> List[ActivityEntry]:
    """
    Merges the three logs into one timeline, newest first by HH:MM.
    Acknowledged alerts are left out.
    """
    entries: List[ActivityEntry] = []

    for update in service_updates:
        entries.append(ActivityEntry(
            id=f"service-{update.id}",
            kind="service",
            category=update.type,
            title=CONFIG["service_titles"].get(update.type, "Service Update"),
            description=update.details,
            table=update.table,
            timestamp=update.timestamp,
            server=update.server,
        ))

    for tx in financial_stream:
        if tx.type == "milestone":
            entries.append(ActivityEntry(
                id=f"milestone-{tx.id}",
                kind="milestone",
                category="milestone",
                title="Revenue Milestone",
                description=tx.details,
                timestamp=tx.timestamp,
            ))
            continue
        entries.append(ActivityEntry(
            id=f"financial-{tx.id}",
            kind="financial",
            category=tx.type,
            title="Refund Processed" if tx.type == "refund" else "Payment Processed",
            description=f"${abs(tx.amount):.2f} - {tx.payment_method or 'Cash'}",
            table=tx.table,
            timestamp=tx.timestamp,
            server=tx.server,
        ))

    for alert in alerts:
        if alert.acknowledged:
            continue
        entries.append(ActivityEntry(
            id=f"alert-{alert.id}",
            kind="alert",
            category=alert.category,
            title=alert.title,
            description=alert.message,
            timestamp=alert.timestamp,
            priority=alert.severity,
        ))

    if kind is not None:
        entries = [e for e in entries if e.kind == kind]
    # sorted() is stable, so equal minutes keep log order
    return sorted(entries, key=lambda e: clock_minutes(e.timestamp), reverse=True)
