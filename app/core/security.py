"""Bearer token handling for identities issued by the external auth broker.

The broker signs HS256 JWTs whose ``sub`` claim is the opaque user id. This
service only verifies them; ``create_access_token`` is kept for local
development and tests.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt

from app.config import settings
from app.schemas.user import TokenPayload

ALGORITHM = "HS256"


def create_access_token(user_id: str | UUID) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    to_encode = {
        "sub": str(user_id),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenPayload | None:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        return TokenPayload(sub=payload["sub"], exp=payload["exp"])
    except (JWTError, KeyError):
        return None


def resolve_user_id(token: str | None) -> UUID | None:
    """Return the user id carried by a valid token, else None."""
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    try:
        return UUID(payload.sub)
    except ValueError:
        return None
