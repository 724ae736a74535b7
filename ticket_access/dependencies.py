from collections.abc import Callable
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .auth import Principal, get_current_principal
from .config import settings
from .db import SessionLocal, get_db
from .services.notifications import Notifier, build_notifier
from .services.signing import TokenSigner
from .services.tenancy import Tenant, resolve_tenant


@lru_cache
def get_signer() -> TokenSigner:
    return TokenSigner(settings.qr_secret_key)


@lru_cache
def get_notifier() -> Notifier:
    return build_notifier(settings)


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_tenant(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Tenant:
    return resolve_tenant(db, principal)


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-real-ip") or request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
