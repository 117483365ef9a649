"""
Alipay-style payment gateway adapter.

Outgoing requests and incoming notifications are signed with "RSA2":
RSA PKCS#1 v1.5 over SHA-256 of the parameters sorted by key and joined as
``k1=v1&k2=v2``. ``sign`` and ``sign_type`` never take part in the signed
string, and neither do empty values.
"""
import base64
import binascii
import json
from datetime import datetime
from typing import Callable, Mapping, Optional
from urllib.parse import urlencode

import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from shared.config import settings

logger = structlog.get_logger(__name__)

SIGN_TYPE = "RSA2"
PAGE_PAY_METHOD = "alipay.trade.page.pay"
PRODUCT_CODE = "FAST_INSTANT_TRADE_PAY"


class SignatureVerificationError(Exception):
    """The notification was not signed by the gateway (or was tampered with)."""


def format_amount(minor_units: int) -> str:
    """899900 -> '8999.00'. Integer arithmetic only."""
    if minor_units < 0:
        raise ValueError("amount must not be negative")
    return f"{minor_units // 100}.{minor_units % 100:02d}"


def signing_string(params: Mapping[str, str]) -> str:
    return "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in ("sign", "sign_type") and params[key] not in ("", None)
    )


class PaymentGateway:
    def __init__(
        self,
        app_id: str,
        private_key_pem: str,
        gateway_public_key_pem: str,
        gateway_url: str,
        notify_url: str,
        return_url: str = "",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.app_id = app_id
        self.gateway_url = gateway_url
        self.notify_url = notify_url
        self.return_url = return_url
        self._clock = clock
        self._private_key = serialization.load_pem_private_key(private_key_pem.encode(), password=None)
        public_key = serialization.load_pem_public_key(gateway_public_key_pem.encode())
        if not isinstance(self._private_key, rsa.RSAPrivateKey) or not isinstance(public_key, rsa.RSAPublicKey):
            raise ValueError("payment gateway keys must be RSA keys")
        self._gateway_public_key = public_key

    @classmethod
    def from_settings(cls) -> "PaymentGateway":
        return cls(
            app_id=settings.PAYMENT_APP_ID,
            private_key_pem=settings.read_pem(settings.PAYMENT_PRIVATE_KEY, settings.PAYMENT_PRIVATE_KEY_FILE),
            gateway_public_key_pem=settings.read_pem(
                settings.PAYMENT_GATEWAY_PUBLIC_KEY, settings.PAYMENT_GATEWAY_PUBLIC_KEY_FILE
            ),
            gateway_url=settings.PAYMENT_GATEWAY_URL,
            notify_url=settings.PAYMENT_NOTIFY_URL,
            return_url=settings.PAYMENT_RETURN_URL,
        )

    def sign(self, params: Mapping[str, str]) -> str:
        signature = self._private_key.sign(
            signing_string(params).encode("utf-8"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("ascii")

    def build_payment_url(self, order, subject: Optional[str] = None) -> str:
        """Redirect URL for the gateway's hosted checkout page."""
        biz_content = {
            "out_trade_no": str(order.order_id),
            "total_amount": format_amount(order.payment_amount),
            "subject": subject or f"Order {order.order_id}",
            "product_code": PRODUCT_CODE,
        }
        params = {
            "app_id": self.app_id,
            "method": PAGE_PAY_METHOD,
            "format": "JSON",
            "charset": "utf-8",
            "sign_type": SIGN_TYPE,
            "timestamp": self._clock().strftime("%Y-%m-%d %H:%M:%S"),
            "version": "1.0",
            "notify_url": self.notify_url,
            "return_url": self.return_url,
            "biz_content": json.dumps(biz_content, separators=(",", ":"), ensure_ascii=False),
        }
        params["sign"] = self.sign(params)

        logger.info("payment_url_built", order_id=order.order_id, amount=order.payment_amount)
        return f"{self.gateway_url}?{urlencode(params)}"

    def verify_notification(self, payload: Mapping[str, str]) -> dict[str, str]:
        """
        Checks the gateway's signature over the notification and returns the
        verified key/value map (without ``sign``/``sign_type``).
        """
        params = {str(k): str(v) for k, v in payload.items()}
        sign = params.pop("sign", "")
        params.pop("sign_type", None)
        if not sign:
            raise SignatureVerificationError("notification carries no signature")

        try:
            signature = base64.b64decode(sign, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SignatureVerificationError("signature is not valid base64") from e

        try:
            self._gateway_public_key.verify(
                signature,
                signing_string(params).encode("utf-8"),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except InvalidSignature as e:
            raise SignatureVerificationError("signature mismatch") from e

        if self.app_id and params.get("app_id") not in (None, self.app_id):
            raise SignatureVerificationError("notification addressed to another app_id")
        return params
