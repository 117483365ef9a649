from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_orders_created_total = Counter(
    "ecomm_orders_created_total",
    "Total order placements processed",
    ["status"] # Labels: 'success', 'failure'
)

ecomm_order_placement_duration_seconds = Histogram(
    "ecomm_order_placement_duration_seconds",
    "Order placement saga duration in seconds"
)

ecomm_saga_compensation_total = Counter(
    "ecomm_saga_compensation_total",
    "Total saga compensations triggered",
    ["step_name"] # Labels: 'reserve_stock', ...
)

ecomm_orphaned_reservations_total = Counter(
    "ecomm_orphaned_reservations_total",
    "Stock reservations left held without a matching order (manual reconciliation needed)"
)

ecomm_cart_cleanup_failures_total = Counter(
    "ecomm_cart_cleanup_failures_total",
    "Best-effort cart cleanups that failed after an order was committed"
)

ecomm_payment_notifications_total = Counter(
    "ecomm_payment_notifications_total",
    "Payment gateway notifications received",
    ["outcome"] # Labels: 'applied', 'duplicate', 'ignored', 'invalid_signature'
)
