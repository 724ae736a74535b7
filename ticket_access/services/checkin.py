import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import TokenError, ValidationError
from ..models import CheckinMethodEnum, CheckinResultEnum, Event, Ticket
from ..schemas import CheckinResult, ScanRequest, ValidationRequest
from .devices import authenticate_device, resolve_device
from .signing import TokenSigner
from .tenancy import Tenant, ensure_same_organization
from .tickets import RedeemContext, TicketStore, build_result

logger = logging.getLogger(__name__)


class CheckinCoordinator:
    """Obtain a ticket reference by one of the validation methods and redeem it.

    The methods differ only in how the ticket is found; every path ends in the
    same organization check and the same ``TicketStore.redeem`` call.
    """

    def __init__(self, db: Session, signer: TokenSigner) -> None:
        self.db = db
        self.signer = signer
        self.store = TicketStore(db)

    def validate(self, request: ValidationRequest, tenant: Tenant) -> CheckinResult:
        replay = self._replay(request.request_id, tenant.organization_id)
        if replay is not None:
            return replay

        requested_event = self._requested_event(request.event_id, tenant.organization_id)
        device = resolve_device(self.db, request.device_id, tenant.organization_id)
        context = RedeemContext(
            method=request.method,
            operator=tenant.principal.user_id,
            device_id=device.id if device is not None else None,
            notes=request.notes,
            request_id=request.request_id,
            event_id=requested_event.id if requested_event is not None else None,
        )

        if request.method == CheckinMethodEnum.QR:
            if not request.qr_token:
                raise ValidationError("QR token missing")
            return self._redeem_token(
                request.qr_token, request.event_id, tenant.organization_id, context
            )

        if request.method == CheckinMethodEnum.DOCUMENT:
            if not request.buyer_doc or not request.event_id:
                raise ValidationError("Document or event id missing")
            if not request.notes:
                raise ValidationError("Notes required for manual entry")
            if requested_event is None:
                return self.store.reject(None, context, CheckinResultEnum.NOT_FOUND, "Event not found")
            ticket = self.store.find_valid_by_document(request.buyer_doc, requested_event.id)
            if ticket is None:
                return self.store.reject(
                    None,
                    context,
                    CheckinResultEnum.NOT_FOUND,
                    "Ticket not found or already used",
                )
            return self._redeem(ticket, tenant.organization_id, context)

        if not request.ticket_id:
            raise ValidationError("Ticket id missing")
        if not request.notes:
            raise ValidationError("Notes required for manual entry")
        ticket = self.store.get(request.ticket_id)
        if ticket is None:
            return self.store.reject(None, context, CheckinResultEnum.NOT_FOUND)
        return self._redeem(ticket, tenant.organization_id, context)

    def scan(self, request: ScanRequest) -> CheckinResult:
        """QR validation from a kiosk device authenticated by alias and PIN."""
        device = authenticate_device(self.db, request.alias, request.pin)
        if device is None:
            context = RedeemContext(method=CheckinMethodEnum.QR)
            return self.store.reject(None, context, CheckinResultEnum.INVALID_DEVICE)

        replay = self._replay(request.request_id, device.organization_id)
        if replay is not None:
            return replay

        event = self.db.execute(
            select(Event).where(
                Event.slug == request.event_slug,
                Event.organization_id == device.organization_id,
            )
        ).scalar_one_or_none()
        context = RedeemContext(
            method=CheckinMethodEnum.QR,
            device_id=device.id,
            request_id=request.request_id,
            event_id=event.id if event is not None else None,
        )
        if event is None:
            return self.store.reject(None, context, CheckinResultEnum.NOT_FOUND, "Event not found")
        return self._redeem_token(request.qr_token, event.id, device.organization_id, context)

    def _redeem_token(
        self,
        token: str,
        requested_event_id: str | None,
        organization_id: str,
        context: RedeemContext,
    ) -> CheckinResult:
        try:
            payload = self.signer.verify(token)
        except TokenError as exc:
            logger.info("Rejected QR token: %s", exc.code)
            return self.store.reject(None, context, CheckinResultEnum(exc.code), exc.message)

        ticket = self.store.get_by_token(token)
        if ticket is None:
            return self.store.reject(
                None, context, CheckinResultEnum.NOT_FOUND, "Ticket not found in database"
            )
        ensure_same_organization(ticket.event.organization_id, organization_id, "Ticket")
        if requested_event_id and payload.event_id != requested_event_id:
            return self.store.reject(ticket, context, CheckinResultEnum.WRONG_EVENT)
        return self.store.redeem(ticket, context)

    def _redeem(self, ticket: Ticket, organization_id: str, context: RedeemContext) -> CheckinResult:
        ensure_same_organization(ticket.event.organization_id, organization_id, "Ticket")
        return self.store.redeem(ticket, context)

    def _requested_event(self, event_id: str | None, organization_id: str) -> Event | None:
        if not event_id:
            return None
        event = self.db.get(Event, event_id)
        if event is None:
            return None
        ensure_same_organization(event.organization_id, organization_id, "Event")
        return event

    def _replay(self, request_id: str | None, organization_id: str) -> CheckinResult | None:
        previous = self.store.checkin_by_request_id(request_id)
        if previous is None:
            return None
        ticket = self.store.get(previous.ticket_id) if previous.ticket_id else None
        if ticket is not None:
            ensure_same_organization(ticket.event.organization_id, organization_id, "Ticket")
        logger.info("Replaying check-in for request %s", request_id)
        return build_result(previous.result, previous.message, ticket)
