from prometheus_client import Counter, Histogram, Gauge

# Business Metrics
storefront_checkout_total = Counter(
    "storefront_checkout_total",
    "Total order placements processed",
    ["status", "payment_type"]  # status: 'success', 'failed'
)

storefront_checkout_duration_seconds = Histogram(
    "storefront_checkout_duration_seconds",
    "Order placement duration in seconds",
    ["payment_type"]
)

storefront_saga_compensation_total = Counter(
    "storefront_saga_compensation_total",
    "Total saga compensations triggered",
    ["step_name"]
)

storefront_stock_broadcast_total = Counter(
    "storefront_stock_broadcast_total",
    "Stock change notifications fanned out to observers",
    ["outcome"]  # 'delivered', 'dropped'
)

storefront_stock_observers = Gauge(
    "storefront_stock_observers",
    "Number of currently connected stock observers"
)

storefront_payment_events_total = Counter(
    "storefront_payment_events_total",
    "Payment confirmations received",
    ["source", "event_type", "outcome"]  # source: 'webhook', 'confirm'
)

storefront_order_transitions_total = Counter(
    "storefront_order_transitions_total",
    "Seller-driven order status transitions",
    ["from_status", "to_status"]
)
