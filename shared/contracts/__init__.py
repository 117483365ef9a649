from .orders import OrderStatus, TRADE_SUCCESS_STATUSES

__all__ = ["OrderStatus", "TRADE_SUCCESS_STATUSES"]
