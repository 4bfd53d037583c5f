# demo_data.py
# Initial state of a freshly opened live feed, in wire (camelCase) shape.
# Builders return fresh copies so no two simulators share records.
import copy

from shared.models import Alert, FinancialEvent, KitchenOrder, Metrics, ServiceUpdate

LIVE_KITCHEN_ORDERS = [
    {
        "id": "ORD-101",
        "table": "12",
        "items": ["Wagyu Steak", "Caesar Salad", "Red Wine"],
        "orderTime": "15:32",
        "cookTime": "18:42",
        "estimatedTime": 25,
        "elapsed": 12,
        "status": "cooking",
        "priority": "high",
        "chef": "Sarah Johnson",
        "temperature": "medium-rare",
    },
    {
        "id": "ORD-102",
        "table": "8",
        "items": ["Lobster Thermidor", "Truffle Pasta", "White Wine"],
        "orderTime": "15:28",
        "cookTime": "18:38",
        "estimatedTime": 30,
        "elapsed": 16,
        "status": "plating",
        "priority": "normal",
        "chef": "Mike Chen",
        "notes": "Customer allergic to nuts",
    },
    {
        "id": "ORD-103",
        "table": "15",
        "items": ["Caesar Salad", "House Wine"],
        "orderTime": "15:35",
        "cookTime": None,
        "estimatedTime": 15,
        "elapsed": 5,
        "status": "pending",
        "priority": "normal",
        "chef": None,
        "notes": "Extra dressing on side",
    },
]

LIVE_SERVICE_UPDATES = [
    {"id": 1, "type": "table_seated", "table": "14", "timestamp": "18:45", "server": "Emma Davis",
     "guests": 4, "details": "Anderson party seated, menus provided"},
    {"id": 2, "type": "order_taken", "table": "22", "timestamp": "18:43", "server": "Tom Wilson",
     "guests": 2, "details": "Order taken, sent to kitchen"},
    {"id": 3, "type": "payment_processing", "table": "18", "timestamp": "18:41", "server": "Emma Davis",
     "guests": 6, "amount": 245.80, "details": "Processing credit card payment"},
    {"id": 4, "type": "table_cleaning", "table": "5", "timestamp": "18:39", "server": "Cleaning Staff",
     "details": "Table being prepared for next guests"},
]

LIVE_FINANCIAL_STREAM = [
    {"id": 1, "type": "sale", "amount": 89.50, "table": "12", "timestamp": "18:45",
     "paymentMethod": "Credit Card", "server": "Emma Davis"},
    {"id": 2, "type": "sale", "amount": 156.75, "table": "8", "timestamp": "18:42",
     "paymentMethod": "Cash", "server": "Tom Wilson"},
    {"id": 3, "type": "milestone", "amount": 5000.00, "timestamp": "18:40",
     "details": "Daily revenue milestone reached"},
    {"id": 4, "type": "refund", "amount": -25.00, "table": "15", "timestamp": "18:38",
     "reason": "Item not available", "server": "Emma Davis"},
]

LIVE_ALERTS = [
    {"id": 1, "type": "critical", "title": "Kitchen Equipment Alert",
     "message": "Grill #2 temperature running high - needs attention",
     "timestamp": "18:44", "acknowledged": False, "category": "equipment"},
    {"id": 2, "type": "warning", "title": "Long Wait Time",
     "message": "Table 12 has been waiting 45+ minutes for food",
     "timestamp": "18:43", "acknowledged": False, "category": "service"},
    {"id": 3, "type": "info", "title": "Inventory Alert",
     "message": "Wagyu beef stock running low (8 portions remaining)",
     "timestamp": "18:40", "acknowledged": True, "category": "inventory"},
    {"id": 4, "type": "critical", "title": "Staff Alert",
     "message": "Server called in sick - dining room understaffed",
     "timestamp": "18:35", "acknowledged": False, "category": "staff"},
]

LIVE_METRICS = {
    "currentRevenue": 4567.89,
    "ordersToday": 87,
    "avgWaitTime": 22,
    "tableOccupancy": 72,
    "kitchenEfficiency": 94,
    "customerSatisfaction": 4.8,
    "staffPerformance": 89,
}


def kitchen_orders() -> list[KitchenOrder]:
    return [KitchenOrder.model_validate(o) for o in copy.deepcopy(LIVE_KITCHEN_ORDERS)]


def service_updates() -> list[ServiceUpdate]:
    return [ServiceUpdate.model_validate(u) for u in copy.deepcopy(LIVE_SERVICE_UPDATES)]


def financial_stream() -> list[FinancialEvent]:
    return [FinancialEvent.model_validate(f) for f in copy.deepcopy(LIVE_FINANCIAL_STREAM)]


def alerts() -> list[Alert]:
    return [Alert.model_validate(a) for a in copy.deepcopy(LIVE_ALERTS)]


def metrics() -> Metrics:
    return Metrics.model_validate(dict(LIVE_METRICS))
