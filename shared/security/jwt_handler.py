"""
Bearer tokens for shoppers. Tokens are minted by the user service; the order
endpoints only verify them and read the numeric user id from ``sub``.
"""
import os
import warnings
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
if not SECRET_KEY:
    warnings.warn(
        "JWT_SECRET_KEY is not set. Using an insecure default. "
        "Set this env var in production!",
        stacklevel=2,
    )
    SECRET_KEY = "insecure-jwt-secret-change-me"

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))


def create_access_token(claims: dict, expires_in: timedelta | None = None) -> str:
    """Signs ``claims`` with an ``exp`` relative to now (UTC)."""
    lifetime = expires_in or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {**claims, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def verify_access_token(token: str) -> dict | None:
    """Returns the decoded claims, or None when the token is forged or expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
