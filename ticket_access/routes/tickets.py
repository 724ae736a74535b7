from collections.abc import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies import (
    client_ip,
    get_notifier,
    get_session_factory,
    get_signer,
    get_tenant,
)
from ..schemas import (
    CheckinResult,
    TicketCreate,
    TicketRead,
    ValidationRequest,
    VoidRequest,
    VoidResult,
)
from ..services.audit import record_audit
from ..services.checkin import CheckinCoordinator
from ..services.notifications import Notifier, deliver_ticket
from ..services.signing import TokenSigner
from ..services.tenancy import Tenant
from ..services.tickets import TicketStore

router = APIRouter()


@router.post("/tickets", response_model=TicketRead, status_code=status.HTTP_201_CREATED)
def tickets_create(
    payload: TicketCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_tenant),
    db: Session = Depends(get_db),
    signer: TokenSigner = Depends(get_signer),
    notifier: Notifier = Depends(get_notifier),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    ticket, created = TicketStore(db).issue(tenant, payload, signer, client_ip(request))
    body = TicketRead.model_validate(ticket)
    if not created:
        return JSONResponse(body.model_dump(mode="json"), status_code=status.HTTP_200_OK)
    background_tasks.add_task(deliver_ticket, session_factory, notifier, ticket.id)
    return body


@router.post("/tickets/validate", response_model=CheckinResult)
def tickets_validate(
    payload: ValidationRequest,
    tenant: Tenant = Depends(get_tenant),
    db: Session = Depends(get_db),
    signer: TokenSigner = Depends(get_signer),
) -> CheckinResult:
    return CheckinCoordinator(db, signer).validate(payload, tenant)


@router.get("/tickets/{ticket_id}", response_model=TicketRead)
def tickets_detail(
    ticket_id: str,
    tenant: Tenant = Depends(get_tenant),
    db: Session = Depends(get_db),
) -> TicketRead:
    return TicketRead.model_validate(TicketStore(db).get_for_tenant(ticket_id, tenant))


@router.post("/tickets/{ticket_id}/void", response_model=VoidResult)
def tickets_void(
    ticket_id: str,
    payload: VoidRequest | None = None,
    tenant: Tenant = Depends(get_tenant),
    db: Session = Depends(get_db),
) -> VoidResult:
    store = TicketStore(db)
    ticket = store.get_for_tenant(ticket_id, tenant)
    outcome = store.void(ticket, tenant, payload.notes if payload else None)
    return VoidResult(
        ticket=TicketRead.model_validate(outcome.ticket),
        changed=outcome.changed,
        message=outcome.message,
    )


@router.post("/tickets/{ticket_id}/resend", status_code=status.HTTP_202_ACCEPTED)
def tickets_resend(
    ticket_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_tenant),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> dict:
    ticket = TicketStore(db).get_for_tenant(ticket_id, tenant)
    record_audit(
        db,
        tenant.principal.user_id,
        "resend_ticket_email",
        f"ticket:{ticket.id}",
        {"buyer_email": ticket.buyer_email},
        client_ip(request),
    )
    db.commit()
    background_tasks.add_task(deliver_ticket, session_factory, notifier, ticket_id)
    return {"message": "Email queued", "ticket_id": ticket_id}
