"""
Service discovery, timeouts and payment gateway settings.

Everything is read from the environment (a local .env is honoured) so each
service can be deployed independently with its own values.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# --- Internal service URLs ---
INVENTORY_URL = os.getenv("INVENTORY_URL", "http://localhost:8000/inventory")
ORDER_URL = os.getenv("ORDER_URL", "http://localhost:8000/orders")
CART_URL = os.getenv("CART_URL", "http://localhost:8000/cart")

# Security header for internal service-to-service communication
INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "internal-cluster-key-change-me")
API_HEADERS = {"X-Internal-API-Key": INTERNAL_API_KEY}

# Every remote call made by the orchestrator is bounded by this deadline
REMOTE_CALL_TIMEOUT_SECONDS = float(os.getenv("REMOTE_CALL_TIMEOUT_SECONDS", "5.0"))

# --- Order ID generation ---
# 2024-01-01T00:00:00Z in milliseconds
ORDER_ID_EPOCH_MS = int(os.getenv("ORDER_ID_EPOCH_MS", "1704067200000"))
ORDER_ID_WORKER_ID = int(os.getenv("ORDER_ID_WORKER_ID", "1"))

# --- Payment gateway ---
PAYMENT_APP_ID = os.getenv("PAYMENT_APP_ID", "")
PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL", "https://openapi.alipay.com/gateway.do")
PAYMENT_NOTIFY_URL = os.getenv("PAYMENT_NOTIFY_URL", "http://localhost:8000/orchestrator/payments/notify")
PAYMENT_RETURN_URL = os.getenv("PAYMENT_RETURN_URL", "")
# PEM encoded keys; the *_FILE variants take precedence when set
PAYMENT_PRIVATE_KEY = os.getenv("PAYMENT_PRIVATE_KEY", "")
PAYMENT_PRIVATE_KEY_FILE = os.getenv("PAYMENT_PRIVATE_KEY_FILE", "")
PAYMENT_GATEWAY_PUBLIC_KEY = os.getenv("PAYMENT_GATEWAY_PUBLIC_KEY", "")
PAYMENT_GATEWAY_PUBLIC_KEY_FILE = os.getenv("PAYMENT_GATEWAY_PUBLIC_KEY_FILE", "")


def read_pem(value: str, path: str) -> str:
    """Return the PEM text from ``path`` if given, otherwise ``value``."""
    if path:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    return value
