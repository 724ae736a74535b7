import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import settings
from .errors import AuthenticationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: str
    email: str | None = None
    app_metadata: dict[str, Any] = field(default_factory=dict)
    user_metadata: dict[str, Any] = field(default_factory=dict)


def issue_session_token(
    principal: Principal,
    secret: str,
    expires_in: timedelta = timedelta(hours=12),
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": principal.user_id,
        "email": principal.email,
        "app_metadata": principal.app_metadata,
        "user_metadata": principal.user_metadata,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def authenticate(token: str, secret: str) -> Principal:
    if not isinstance(token, str) or token.count(".") != 2:
        raise AuthenticationError("Malformed bearer token")
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.info("Rejected session token: %s", exc)
        raise AuthenticationError("Invalid or expired session") from None

    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Session token has no subject")
    return Principal(
        user_id=str(subject),
        email=claims.get("email"),
        app_metadata=claims.get("app_metadata") or {},
        user_metadata=claims.get("user_metadata") or {},
    )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    if credentials is None:
        raise AuthenticationError("No authorization header")
    return authenticate(credentials.credentials, settings.secret_key)
