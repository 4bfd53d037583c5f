"""
MODULE OVERVIEW:
This module defines the typed records of the live operations feed, shared by the
simulator, the client side and the hub, powered by Pydantic v2.

WHAT IS HAPPENING HERE:
Python code uses snake_case attributes; on the wire (and in the demo data) the same
records travel with camelCase keys. `alias_generator=to_camel` plus `populate_by_name`
lets both spellings validate, and `model_dump(by_alias=True)` produces the wire shape.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OrderStatus = Literal["pending", "cooking", "plating", "ready"]
AlertSeverity = Literal["critical", "warning", "info"]
ActivityKind = Literal["service", "financial", "milestone", "alert"]

ORDER_STATUS_SEQUENCE: tuple[str, ...] = ("pending", "cooking", "plating", "ready")


class FeedModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# WHAT IS HAPPENING HERE:
# A kitchen ticket in flight. `estimated_time` and `elapsed` are minutes.
# Status only ever moves forward along ORDER_STATUS_SEQUENCE.
class KitchenOrder(FeedModel):
    id: str
    table: str
    items: list[str]
    order_time: str
    cook_time: Optional[str] = None
    estimated_time: int
    elapsed: int = Field(default=0, ge=0)
    status: OrderStatus = "pending"
    priority: Literal["normal", "high"] = "normal"
    chef: Optional[str] = None
    temperature: Optional[str] = None
    notes: Optional[str] = None


class ServiceUpdate(FeedModel):
    id: int
    type: str
    table: Optional[str] = None
    timestamp: str
    server: str
    guests: Optional[int] = None
    details: str
    amount: Optional[float] = None


class FinancialEvent(FeedModel):
    id: int
    type: Literal["sale", "refund", "milestone"]
    amount: float
    timestamp: str
    table: Optional[str] = None
    payment_method: Optional[str] = None
    server: Optional[str] = None
    details: Optional[str] = None
    reason: Optional[str] = None


class Alert(FeedModel):
    id: int
    # Travels as "type" on the wire
    severity: AlertSeverity = Field(alias="type")
    title: str
    message: str
    timestamp: str
    category: str
    acknowledged: bool = False


class Metrics(FeedModel):
    current_revenue: float
    orders_today: int
    avg_wait_time: int
    table_occupancy: int
    kitchen_efficiency: int
    customer_satisfaction: float
    staff_performance: int


# WHAT IS HAPPENING HERE:
# One row of the merged activity timeline. The id is prefixed with the source log
# ("service-3", "alert-12") so rows from different logs never collide.
class ActivityEntry(FeedModel):
    id: str
    kind: ActivityKind
    category: str
    title: str
    description: Optional[str] = None
    table: Optional[str] = None
    timestamp: str
    server: Optional[str] = None
    priority: Optional[str] = None


class LiveFeedSnapshot(FeedModel):
    kitchen_orders: list[KitchenOrder]
    service_updates: list[ServiceUpdate]
    financial_stream: list[FinancialEvent]
    alerts: list[Alert]
    metrics: Metrics
    is_active: bool
    last_update: Optional[datetime]
    unacknowledged_alerts: int
    critical_alerts: int
    active_orders: int
    pending_orders: int


class ConnectionSnapshot(FeedModel):
    connected: bool
    state: Literal["disconnected", "connecting", "connected"]
    reconnect_attempts: int
    max_reconnect_attempts: int


class HubStats(FeedModel):
    active_connections: int
    rooms: int
    restaurants: int
    total_frames_sent: int
    uptime_s: float
    server_time: datetime
