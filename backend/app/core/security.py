from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import secrets

from jose import jwt

from app.core.config import get_settings

settings = get_settings()

_HASH_SCHEME = "pbkdf2_sha256"


def create_access_token(subject: str, *, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": subject, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    # Raises jose.JWTError on bad signature or expiry; callers map it to 401.
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def get_password_hash(password: str) -> str:
    salt = secrets.token_bytes(16)
    iterations = settings.password_hash_iterations
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{_HASH_SCHEME}${iterations}${_b64(salt)}${_b64(digest)}"


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        scheme, raw_iterations, raw_salt, raw_digest = hashed_password.split("$")
        iterations = int(raw_iterations)
        salt = base64.b64decode(raw_salt)
        expected = base64.b64decode(raw_digest)
    except ValueError:
        return False
    if scheme != _HASH_SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(digest, expected)
