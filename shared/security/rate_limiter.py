import os
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from .jwt_handler import verify_access_token

PLACE_ORDER_RATE_LIMIT = os.getenv("PLACE_ORDER_RATE_LIMIT", "10/minute")

def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI: the JWT subject when present, otherwise the
    client's IP address.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        payload = verify_access_token(auth_header.split(" ", 1)[1])
        if payload and "sub" in payload:
            return f"user:{payload['sub']}"

    return f"ip:{get_remote_address(request)}"

limiter = Limiter(
    key_func=user_id_or_ip,
    enabled=os.getenv("RATE_LIMIT_ENABLED", "1") == "1",
)
