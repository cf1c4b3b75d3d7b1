from .setup import setup_observability
from .metrics import (
    storefront_checkout_total,
    storefront_checkout_duration_seconds,
    storefront_saga_compensation_total,
    storefront_stock_broadcast_total,
    storefront_stock_observers,
    storefront_payment_events_total,
    storefront_order_transitions_total,
)
