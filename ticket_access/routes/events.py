from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies import get_tenant
from ..errors import NotFoundError
from ..models import Event
from ..schemas import QuotaRead
from ..services.quota import QuotaLedger
from ..services.tenancy import Tenant, ensure_same_organization

router = APIRouter()


@router.get("/events/{event_id}/quota", response_model=QuotaRead)
def events_quota(
    event_id: str,
    tenant: Tenant = Depends(get_tenant),
    db: Session = Depends(get_db),
) -> QuotaRead:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    ensure_same_organization(event.organization_id, tenant.organization_id, "Event")
    quota = QuotaLedger(db).remaining(event.id, tenant.principal.user_id)
    if quota is None:
        raise NotFoundError("No invitation quota assigned for this event")
    return QuotaRead(event_id=event.id, **quota)
