from .setup import setup_observability
from .metrics import (
    ecomm_orders_created_total,
    ecomm_order_placement_duration_seconds,
    ecomm_saga_compensation_total,
    ecomm_orphaned_reservations_total,
    ecomm_cart_cleanup_failures_total,
    ecomm_payment_notifications_total,
)
