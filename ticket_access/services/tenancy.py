"""Resolve the acting principal's organization and role.

Each lookup walks an ordered list of sources and stops at the first one that
yields a value. Sources report why they came up empty so a failed resolution
can say which sources were consulted.
"""

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..errors import AuthorizationError, NoOrganizationError
from ..models import RoleEnum, UserProfile


@dataclass(frozen=True)
class SourceResult:
    source: str
    value: str | None = None
    miss_reason: str | None = None


OrganizationSource = Callable[[Session, Principal], SourceResult]


def _load_profile(db: Session, principal: Principal) -> UserProfile | None:
    return db.execute(
        select(UserProfile).where(UserProfile.user_id == principal.user_id)
    ).scalar_one_or_none()


def organization_from_claims(db: Session, principal: Principal) -> SourceResult:
    org_id = principal.user_metadata.get("organization_id")
    if org_id:
        return SourceResult("claims", value=str(org_id))
    return SourceResult("claims", miss_reason="missing_claim")


def organization_from_profile(db: Session, principal: Principal) -> SourceResult:
    profile = _load_profile(db, principal)
    if profile is None:
        return SourceResult("profile", miss_reason="no_profile")
    if not profile.organization_id:
        return SourceResult("profile", miss_reason="profile_without_organization")
    return SourceResult("profile", value=profile.organization_id)


ORGANIZATION_SOURCES: tuple[OrganizationSource, ...] = (
    organization_from_claims,
    organization_from_profile,
)


def resolve_organization(
    db: Session,
    principal: Principal,
    sources: tuple[OrganizationSource, ...] = ORGANIZATION_SOURCES,
) -> str:
    misses: dict[str, str] = {}
    for source in sources:
        result = source(db, principal)
        if result.value:
            return result.value
        misses[result.source] = result.miss_reason or "empty"
    raise NoOrganizationError(details={"sources": misses})


def role_from_claims(db: Session, principal: Principal) -> SourceResult:
    role = principal.app_metadata.get("role")
    if role:
        return SourceResult("claims", value=str(role))
    return SourceResult("claims", miss_reason="missing_claim")


def role_from_profile(db: Session, principal: Principal) -> SourceResult:
    profile = _load_profile(db, principal)
    if profile is None:
        return SourceResult("profile", miss_reason="no_profile")
    return SourceResult("profile", value=profile.role)


def resolve_role(db: Session, principal: Principal) -> str | None:
    """First role any source yields, or ``None`` when no source knows the principal."""
    for source in (role_from_claims, role_from_profile):
        result = source(db, principal)
        if result.value:
            return result.value
    return None


def is_admin(role: str | None) -> bool:
    return role == RoleEnum.ADMIN.value


def ensure_same_organization(
    resource_org_id: str | None, caller_org_id: str, resource: str = "Resource"
) -> None:
    if resource_org_id != caller_org_id:
        raise AuthorizationError(f"{resource} does not belong to your organization")


@dataclass(frozen=True)
class Tenant:
    """Resolved identity for a single request."""

    principal: Principal
    organization_id: str
    role: str | None


def resolve_tenant(db: Session, principal: Principal) -> Tenant:
    return Tenant(
        principal=principal,
        organization_id=resolve_organization(db, principal),
        role=resolve_role(db, principal),
    )
