# config.py
# All tuning parameters for the live operations simulation

CONFIG = {
    # Per-tick probabilities
    "probabilities": {
        "start_cooking": 0.3,
        "service_update": 0.4,
        "sale": 0.3,
        "alert": 0.2,
    },
    # An order leaves a timed status once elapsed reaches this fraction of the estimate
    "advance_thresholds": {"cooking": 0.9, "plating": 1.0},
    # An order is delayed once elapsed passes this multiple of the estimate
    "delay_threshold": 1.1,
    "elapsed_step": (0, 1),
    # Rolling log caps (newest first, oldest evicted)
    "caps": {
        "service_updates": 20,
        "financial_stream": 20,
        "alerts": 10,
    },
    "table_range": (1, 25),
    "guest_range": (1, 6),
    "sale_amount_range": (50, 250),
    "servers": ["Emma Davis", "Tom Wilson", "Sarah Johnson"],
    "chefs": ["Sarah Johnson", "Mike Chen"],
    "payment_methods": ["Credit Card", "Cash", "Mobile Pay"],
    "service_actions": [
        {"type": "order_delivered", "details": "Food delivered to table"},
        {"type": "table_cleared", "details": "Table cleared and cleaned"},
        {"type": "customer_arrived", "details": "Walk-in party of 3 seated"},
        {"type": "drink_refilled", "details": "Beverages refilled"},
        {"type": "check_requested", "details": "Table requested check"},
    ],
    # "{table}" is filled with a random table number
    "alert_catalog": [
        {
            "type": "warning",
            "title": "Table Wait Time",
            "message": "Table {table} waiting longer than expected",
            "category": "service",
        },
        {
            "type": "info",
            "title": "Kitchen Update",
            "message": "All orders on track for timely delivery",
            "category": "kitchen",
        },
        {
            "type": "warning",
            "title": "Inventory Alert",
            "message": "Fresh salmon running low",
            "category": "inventory",
        },
    ],
    # Metric drift: integer step range (inclusive) and clamp bounds.
    # A bound of None leaves that side open.
    "metric_drift": {
        "avg_wait_time": {"step": (-1, 1), "bounds": (15, None)},
        "table_occupancy": {"step": (-3, 2), "bounds": (50, 100)},
        "kitchen_efficiency": {"step": (-2, 1), "bounds": (80, 100)},
        "staff_performance": {"step": (-2, 1), "bounds": (75, 100)},
    },
    "satisfaction_drift": {"step": 0.1, "bounds": (4.0, 5.0)},
    "service_titles": {
        "table_seated": "Table Seated",
        "order_taken": "Order Taken",
        "payment_processing": "Processing Payment",
        "table_cleaning": "Table Cleaning",
        "order_delivered": "Order Delivered",
        "table_cleared": "Table Cleared",
        "customer_arrived": "Customer Arrived",
        "drink_refilled": "Drinks Refilled",
        "check_requested": "Check Requested",
    },
}
