"""JWT creation and decoding for wizard sessions and admin access.

Token claims:
  - sub:   subject ID (session tokens) or admin name (admin tokens)
  - role:  "admin" on admin tokens
  - type:  "session" | "admin"
  - exp:   expiry timestamp

The session token is the wizard's only continuation token: the client
keeps it in local storage and drops it on restart.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import settings

ALGORITHM = settings.jwt_algorithm


def create_session_token(
    subject_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.session_token_expire_days)
    )
    payload = {
        "sub": subject_id,
        "type": "session",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def create_admin_token(
    name: str = "admin",
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.admin_token_expire_minutes)
    )
    payload = {
        "sub": name,
        "role": "admin",
        "type": "admin",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}


def subject_id_from_session_token(token: str | None) -> str | None:
    """Return the subject ID carried by a valid session token, else None."""
    if not token:
        return None
    payload = decode_token(token)
    if payload.get("type") != "session":
        return None
    return payload.get("sub") or None
