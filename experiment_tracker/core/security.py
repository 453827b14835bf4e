from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from experiment_tracker.config.settings import settings


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(user: dict[str, Any], ttl_minutes: int | None = None) -> str:
    now = _now_utc()
    ttl = ttl_minutes if ttl_minutes is not None else settings.ACCESS_TOKEN_TTL_MINUTES
    payload: dict[str, Any] = {
        "sub": user["id"],
        "login": user.get("githubUsername"),
        "email": user.get("email"),
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired token") from exc
    if str(payload.get("type") or "") != "access":
        raise ValueError("Invalid token type")
    if not str(payload.get("sub") or "").strip():
        raise ValueError("Invalid token subject")
    return payload
